from pydantic import BaseModel, Field


class ModelStatus(BaseModel):
    """Server -> Client: availability of the on-disk model bundle."""
    exists: bool
    message: str
    files: list[str] = Field(default_factory=list)
    missing: list[str] | None = None  # only set when exists is False


class ModelStatusError(BaseModel):
    """Body of a failed model-status check."""
    exists: bool = False
    message: str
    error: str


class ErrorBody(BaseModel):
    """Generic JSON error body."""
    error: str
    message: str
    path: str | None = None
