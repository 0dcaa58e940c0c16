"""Claude AI extraction service: form image to structured JSON.

Sends a photographed voter registration form to Claude's vision API with
literal-transcription instructions, then recovers the JSON answer from the
free-form reply. The reply normally contains a character-by-character
reading of each field before the JSON, so the answer object has to be told
apart from any brace-delimited text in that reasoning.
"""

from __future__ import annotations

import json
import re
from typing import Any, Literal

import anthropic
from loguru import logger
from pydantic import ValidationError

from drivescore.config import Settings
from drivescore.models.extraction import MARKER_KEY, ExtractedRecord, ExtractionRequest, PromptConfig
from drivescore.prompts.extraction_prompt import build_prompt, detect_media_type

RAW_PREVIEW_CHARS = 300

_FENCE_RE = re.compile(r"```(?:json)?\s*")


class ExtractionServiceError(Exception):
    """Base for failures that map to a JSON error response."""

    status_code = 500
    kind = "error"

    def __init__(self, message: str, status_code: int | None = None, kind: str | None = None):
        if status_code is not None:
            self.status_code = status_code
        if kind is not None:
            self.kind = kind
        self.message = message
        super().__init__(message)


class InvalidRequestError(ExtractionServiceError):
    """Raised when the inbound request body is unusable."""

    status_code = 400
    kind = "invalid_request"


class ConfigurationError(ExtractionServiceError):
    """Raised when server-side configuration is missing."""

    status_code = 500
    kind = "configuration"


class UpstreamAPIError(ExtractionServiceError):
    """Raised when the Claude API call fails or returns an error object."""

    status_code = 400
    kind = "upstream"


class ExtractionError(ExtractionServiceError):
    """Raised when no usable JSON answer can be recovered from the reply."""

    status_code = 400
    kind = "extraction"


# -- Request validation ----------------------------------------------------


def parse_extraction_request(body: Any) -> ExtractionRequest:
    """Validate the decoded request body."""
    if not isinstance(body, dict):
        raise InvalidRequestError("Request body must be a JSON object")

    try:
        request = ExtractionRequest.model_validate(body)
    except ValidationError as e:
        raise InvalidRequestError(f"Invalid request body: {e.errors()[0]['msg']}") from e

    if not request.image:
        raise InvalidRequestError("No image provided")
    return request


def ensure_configured(settings: Settings) -> None:
    if not settings.anthropic_api_key:
        raise ConfigurationError("API key not configured")


# -- Reply parsing -----------------------------------------------------------


def strip_code_fences(text: str) -> str:
    """Remove every ```json / ``` marker from ``text``."""
    return _FENCE_RE.sub("", text)


def find_marked_object(text: str, marker: str = MARKER_KEY) -> str | None:
    """Return the rightmost balanced ``{...}`` span that contains ``"marker"``.

    Scans backward keeping a brace depth. A ``}`` seen at depth zero opens a
    candidate; the ``{`` that brings the depth back to zero closes it. Stray
    ``{`` with no matching ``}`` are ignored.
    """
    quoted = f'"{marker}"'
    depth = 0
    end = -1

    for i in range(len(text) - 1, -1, -1):
        char = text[i]
        if char == "}":
            if depth == 0:
                end = i
            depth += 1
        elif char == "{":
            if depth == 0:
                continue
            depth -= 1
            if depth == 0:
                candidate = text[i : end + 1]
                if quoted in candidate:
                    return candidate
    return None


def find_outer_object(text: str) -> str | None:
    """Return the span from the first ``{`` to the last ``}``."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return None
    return text[start : end + 1]


def extract_json(raw_text: str, strategy: Literal["marker", "outer"] = "marker") -> ExtractedRecord:
    """Extract the answer object from Claude's reply text.

    Raises:
        ExtractionError: no candidate object was found, or the candidate
            is not a valid JSON object.
    """
    text = strip_code_fences(raw_text).strip()

    if strategy == "outer":
        candidate = find_outer_object(text)
    else:
        candidate = find_marked_object(text)

    if candidate is None:
        raise ExtractionError(
            "Could not find JSON in AI response. Raw: " + text[:RAW_PREVIEW_CHARS],
            kind="not_found",
        )

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ExtractionError(
            f"Could not parse JSON in AI response: {e.msg}. Raw: {candidate[:RAW_PREVIEW_CHARS]}",
            kind="parse_error",
        ) from e

    if not isinstance(data, dict):
        raise ExtractionError(
            "Could not parse JSON in AI response: expected an object. Raw: "
            + candidate[:RAW_PREVIEW_CHARS],
            kind="not_an_object",
        )

    return data


# -- Claude call -------------------------------------------------------------


def create_client(settings: Settings) -> anthropic.AsyncAnthropic:
    """Build a Claude client with SDK retries turned off."""
    return anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key, max_retries=0)


def _upstream_message(error: anthropic.APIStatusError) -> str:
    body = error.body
    if isinstance(body, dict):
        detail = body.get("error", body)
        if isinstance(detail, dict) and detail.get("message"):
            return str(detail["message"])
        return json.dumps(detail)
    return error.message


def first_text_block(content: Any) -> str:
    """Return the text of the first ``type == "text"`` block, or ``""``."""
    for block in content or []:
        if getattr(block, "type", None) == "text":
            return getattr(block, "text", "") or ""
    return ""


async def call_model(
    client: anthropic.AsyncAnthropic,
    prompt: PromptConfig,
    image_b64: str,
    media_type: str,
    settings: Settings,
) -> str:
    """Send one image + instructions to Claude and return the reply text."""
    content: list[dict] = [
        {
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": media_type,
                "data": image_b64,
            },
        },
        {
            "type": "text",
            "text": prompt.user_prompt,
        },
    ]

    logger.info("Sending form image to Claude (model: {}, {})", settings.anthropic_model, media_type)

    try:
        response = await client.messages.create(
            model=settings.anthropic_model,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
            system=prompt.system_prompt,
            messages=[{"role": "user", "content": content}],
        )
    except anthropic.APIStatusError as e:
        message = _upstream_message(e)
        logger.error("Claude API error ({}): {}", e.status_code, message)
        raise UpstreamAPIError(f"Claude API error: {message}", status_code=400) from e
    except anthropic.APIConnectionError as e:
        logger.error("Claude API request failed: {}", e)
        raise UpstreamAPIError(f"Claude API request failed: {e}", status_code=500) from e

    usage = getattr(response, "usage", None)
    if usage is not None:
        logger.debug(
            "Token usage: input {}, output {}",
            usage.input_tokens,
            usage.output_tokens,
        )

    raw_text = first_text_block(getattr(response, "content", None))
    if not raw_text:
        raise ExtractionError("No response from Claude AI", kind="empty_reply")

    logger.debug("Claude response length: {} chars", len(raw_text))
    return raw_text


async def extract_from_image(
    request: ExtractionRequest,
    settings: Settings,
    client: anthropic.AsyncAnthropic,
) -> ExtractedRecord:
    """Transcribe a voter registration form image via Claude vision.

    1. Builds the jurisdiction-specific prompt
    2. Detects PNG vs JPEG from the base64 prefix
    3. Calls Claude once (no retries)
    4. Recovers the JSON answer from the reply
    """
    prompt = build_prompt(request.state, settings.jurisdiction_dob_policies)
    media_type = detect_media_type(request.image)
    logger.info(
        "Starting form extraction ({} base64 chars, state={!r}, dob_policy={})",
        len(request.image),
        request.state,
        prompt.dob_policy.value,
    )

    raw_text = await call_model(client, prompt, request.image, media_type, settings)

    try:
        record = extract_json(raw_text, strategy=settings.json_strategy)
    except ExtractionError as e:
        logger.error("Failed to extract JSON from Claude response ({}, {} chars)", e.kind, len(raw_text))
        raise

    filled = sum(1 for value in record.values() if value not in ("", None))
    logger.info("Extraction complete: {} field(s), {} filled", len(record), filled)
    return record
