"""Environment-driven settings for the vision classifier server."""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()

PACKAGE_DIR = Path(__file__).resolve().parent
DEFAULT_STATIC_DIR = PACKAGE_DIR / "static"

MODEL_ROUTE = "/my_model"
REQUIRED_MODEL_FILES = ("model.json", "metadata.json")


class Settings(BaseModel):
    """Process-wide server settings."""
    host: str = Field(default="0.0.0.0", description="Server bind address")
    port: int = Field(default=3000, ge=1, le=65535, description="Server port")
    model_dir: Path = Field(default=Path("my_model"), description="Model bundle directory")
    static_dir: Path = Field(default=DEFAULT_STATIC_DIR, description="Page assets")
    log_level: str = Field(default="INFO", description="Logging level")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    acquire_timeout: float | None = Field(
        default=30.0, gt=0, description="Seconds allowed for model and camera acquisition"
    )
    pause_when_hidden: bool = Field(default=False, description="Stop capturing while the page is hidden")

    @field_validator("log_level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Invalid logging level. Must be one of {valid_levels}")
        return v

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, v):
        if isinstance(v, str):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v


def get_settings() -> Settings:
    """Build settings from environment variables, falling back to defaults."""
    env = {
        "host": os.environ.get("HOST"),
        "port": os.environ.get("PORT"),
        "model_dir": os.environ.get("MODEL_DIR"),
        "static_dir": os.environ.get("STATIC_DIR"),
        "log_level": os.environ.get("LOG_LEVEL"),
        "cors_origins": os.environ.get("CORS_ORIGINS"),
        "acquire_timeout": os.environ.get("ACQUIRE_TIMEOUT"),
        "pause_when_hidden": os.environ.get("PAUSE_WHEN_HIDDEN"),
    }
    return Settings(**{k: v for k, v in env.items() if v})
