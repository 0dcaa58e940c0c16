"""Transcription prompts for handwritten voter registration forms.

The system prompt keeps the model in literal OCR mode: it must copy what is
written, never what it believes a real address, zip code or name would be.
Date-of-birth handling is the only part that varies by jurisdiction.
"""

from __future__ import annotations

import json
from collections.abc import Mapping

from drivescore.models.extraction import RECORD_FIELDS, DobPolicy, PromptConfig

SYSTEM_PROMPT = (
    "You are an OCR transcription tool. You read handwritten text from images character by character. "
    "You have no knowledge of real addresses, real street names, or real place names. You cannot validate or correct data. "
    "You MUST transcribe exactly what is written, even if it seems wrong, misspelled, or nonsensical. "
    "Street names may be unusual, made-up, or unfamiliar words. Transcribe them letter by letter as written. "
    "All numbers must be transcribed as the exact digits written. Never substitute different numbers. "
    "NEVER substitute a real or plausible value for what you actually see on the page."
)

DOB_INSTRUCTIONS: dict[DobPolicy, str] = {
    DobPolicy.YEAR_ONLY: (
        "For the date of birth, extract ONLY the year of birth (4-digit year). "
        "Return it in the 'yearOfBirth' field. Do NOT return a full date: leave 'dob' empty."
    ),
    DobPolicy.OMIT: (
        "Do NOT extract any date of birth information. Leave dob and yearOfBirth empty."
    ),
    DobPolicy.FULL_DATE: (
        "Extract the full date of birth. Dates on these forms are typically written as M/D/YY or MM/DD/YYYY "
        "with slashes between the parts. Read each number separately: the first number before the first slash "
        "is the MONTH, the second number between the slashes is the DAY, and the last number after the second "
        "slash is the YEAR. If the year is 2 digits (like 74), convert to 4 digits (1974). "
        "Return in MM/DD/YYYY format."
    ),
}

# Empty answer template; its "firstName" key is what the reply parser looks for.
JSON_TEMPLATE = json.dumps({field: "" for field in RECORD_FIELDS}, separators=(",", ":"))

USER_PROMPT_TEMPLATE = """Look at this voter registration form. I need you to transcribe the handwritten fields.

STEP 1: For each field below, describe EXACTLY what characters you see written, one at a time. For numbers, read each digit individually (e.g. 'I see the digits 4, 5, 7, 2, 8'). For words, read each letter (e.g. 'I see P-A-L-M'). Be especially careful with:
- The street number (read every digit)
- The street name. This could be ANY word, including unusual, uncommon, or made-up words. Do NOT try to match it to a known street name. Read each letter individually: e.g. 'I see Y-U-C-K-U-S'. Transcribe exactly those letters even if the result is not a word you recognize.
- The Apt. # field. This is a SMALL box, usually right after the street address line. It may contain a single digit or letter. Look very carefully for ANY handwriting in that small box.
- The 5-digit code field (the small box after the city name, sometimes labeled 'Zip' or 'Zip Code'). IGNORE what this field is used for. Treat it as 5 separate single digits. Read each digit position independently: 'Position 1 (leftmost): I see a ___. Position 2: I see a ___.' and so on through Position 5 (rightmost).
- The date of birth. This is usually written with slashes like 6/5/74. Read the number BEFORE the first slash (the month), the number BETWEEN the slashes (the day), and the number AFTER the second slash (the year).

STEP 2: Compile your character-by-character reading into this JSON. The JSON values MUST exactly match what you described in Step 1. No corrections, no changes.
For the 5-digit code: each zipDigit field must match your individual position reading exactly.

Additional rules:
- {dob_instruction}
- 'street' = street number + street name only (no apt/unit). The street name must match your letter-by-letter reading exactly.
- 'apt' = value from the Apt. # field (could be a single character like '7')
- 'zipDigit1' through 'zipDigit5' = each digit from the 5-digit code field, from your position-by-position reading. zipDigit1 is the leftmost digit, zipDigit5 is the rightmost.
- Leave empty string for any field you cannot read
- 'confidence' = 'high', 'medium', or 'low'

CRITICAL: The JSON values MUST be a direct copy of your character-by-character reading from Step 1. If you wrote 'Y-U-C-K-U-S' in Step 1, the JSON must say 'YUCKUS', not a different word. Each zipDigit must exactly match what you read for that position. Do NOT substitute any real-world code or number.

Begin with Step 1, then provide the JSON:
{json_template}"""

PNG_BASE64_PREFIX = "iVBO"


def normalize_jurisdiction(state: str | None) -> str:
    """Lower-case ``state`` and collapse its whitespace for policy lookup."""
    if not state:
        return ""
    return " ".join(state.split()).casefold()


def dob_policy_for(state: str | None, policies: Mapping[str, DobPolicy] | None = None) -> DobPolicy:
    """Return the date-of-birth policy for ``state``; unknown states get FULL_DATE."""
    if not policies:
        return DobPolicy.FULL_DATE
    key = normalize_jurisdiction(state)
    normalized = {normalize_jurisdiction(name): policy for name, policy in policies.items()}
    return DobPolicy(normalized.get(key, DobPolicy.FULL_DATE))


def build_prompt(state: str | None, policies: Mapping[str, DobPolicy] | None = None) -> PromptConfig:
    policy = dob_policy_for(state, policies)
    user_prompt = USER_PROMPT_TEMPLATE.format(
        dob_instruction=DOB_INSTRUCTIONS[policy],
        json_template=JSON_TEMPLATE,
    )
    return PromptConfig(system_prompt=SYSTEM_PROMPT, user_prompt=user_prompt, dob_policy=policy)


def detect_media_type(image_b64: str) -> str:
    """Sniff the media type from the base64 payload; anything not PNG is sent as JPEG."""
    if image_b64[:4] == PNG_BASE64_PREFIX:
        return "image/png"
    return "image/jpeg"
