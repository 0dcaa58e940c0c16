from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

from drivescore.models.extraction import DobPolicy


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # AI Extraction
    anthropic_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("CLAUDE_API_KEY", "ANTHROPIC_API_KEY"),
        description="Anthropic API key (empty means not configured)",
    )
    anthropic_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Claude model ID for extraction",
    )
    max_tokens: int = Field(default=3000, description="Token budget for the reply")
    temperature: float = Field(default=0.0, description="Sampling temperature")
    json_strategy: Literal["marker", "outer"] = Field(
        default="marker",
        description="How the answer object is located in the reply text",
    )

    # Jurisdiction -> date-of-birth handling, keyed by normalized name
    jurisdiction_dob_policies: dict[str, DobPolicy] = Field(
        default={
            "georgia": DobPolicy.YEAR_ONLY,
            "ga": DobPolicy.YEAR_ONLY,
            "north carolina": DobPolicy.OMIT,
            "nc": DobPolicy.OMIT,
        },
        description="Date-of-birth policy per jurisdiction",
    )

    log_level: str = Field(default="INFO", description="loguru sink level")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }


@lru_cache
def get_settings() -> Settings:
    """Return the process settings, read once at startup."""
    return Settings()
