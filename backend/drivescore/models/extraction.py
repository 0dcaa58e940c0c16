from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, field_validator

# Answer schema requested from the model. Parsed replies are returned as-is,
# so any of these may be missing and unknown keys pass through.
RECORD_FIELDS: tuple[str, ...] = (
    "firstName",
    "middleName",
    "lastName",
    "suffix",
    "street",
    "apt",
    "city",
    "zipDigit1",
    "zipDigit2",
    "zipDigit3",
    "zipDigit4",
    "zipDigit5",
    "dob",
    "yearOfBirth",
    "confidence",
)

# Tags the answer object apart from brace-delimited text in the reasoning.
MARKER_KEY = "firstName"

ExtractedRecord = dict[str, Any]


class DobPolicy(str, Enum):
    """How date of birth is transcribed for a jurisdiction."""

    FULL_DATE = "full_date"
    YEAR_ONLY = "year_only"
    OMIT = "omit"


class ExtractionRequest(BaseModel):
    """Inbound request body: a base64 image plus the jurisdiction hint."""

    image: str = ""
    state: str = ""

    model_config = {"extra": "ignore"}

    @field_validator("image", "state", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class PromptConfig(BaseModel):
    """Instructions sent to the model for one request."""

    system_prompt: str
    user_prompt: str
    dob_policy: DobPolicy = DobPolicy.FULL_DATE


class ErrorBody(BaseModel):
    """JSON body of every error response."""

    error: str
