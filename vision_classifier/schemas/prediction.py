from pydantic import BaseModel, field_validator


class Prediction(BaseModel):
    """One class score produced by the classifier for a single frame."""
    label: str
    probability: float

    @field_validator("probability")
    @classmethod
    def clamp_probability(cls, v: float) -> float:
        """Softmax outputs can drift just past [0, 1] from float rounding."""
        return min(max(v, 0.0), 1.0)

    @property
    def percentage(self) -> str:
        """Probability as a percentage with one decimal place."""
        return f"{self.probability * 100:.1f}"
