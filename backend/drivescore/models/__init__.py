from .extraction import (
    MARKER_KEY,
    RECORD_FIELDS,
    DobPolicy,
    ErrorBody,
    ExtractedRecord,
    ExtractionRequest,
    PromptConfig,
)

__all__ = [
    "MARKER_KEY",
    "RECORD_FIELDS",
    "DobPolicy",
    "ErrorBody",
    "ExtractedRecord",
    "ExtractionRequest",
    "PromptConfig",
]
