"""
Runtime configuration for the MleziCare service.

Values are read from the environment, after loading an optional ``.env`` file.
"""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000


class Settings(BaseModel):
    """Process-wide settings."""

    api_key: str | None = Field(None, description="Gemini API key")
    model: str = Field(DEFAULT_MODEL, description="Generation model identifier")
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT


def load_settings() -> Settings:
    """Build settings from ``.env`` and the process environment."""
    load_dotenv()

    return Settings(
        api_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY"),
        model=os.getenv("MLEZI_MODEL", DEFAULT_MODEL),
        host=os.getenv("MLEZI_HOST", DEFAULT_HOST),
        port=int(os.getenv("MLEZI_PORT", str(DEFAULT_PORT))),
    )
