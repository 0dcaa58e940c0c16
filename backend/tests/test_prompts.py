import pytest

from drivescore.config import Settings
from drivescore.models.extraction import RECORD_FIELDS, DobPolicy
from drivescore.prompts.extraction_prompt import (
    DOB_INSTRUCTIONS,
    SYSTEM_PROMPT,
    build_prompt,
    detect_media_type,
    dob_policy_for,
    normalize_jurisdiction,
)

POLICIES = Settings(_env_file=None).jurisdiction_dob_policies


def test_year_only_jurisdiction():
    prompt = build_prompt("Georgia", POLICIES)
    assert prompt.dob_policy is DobPolicy.YEAR_ONLY
    assert DOB_INSTRUCTIONS[DobPolicy.YEAR_ONLY] in prompt.user_prompt
    assert "ONLY the year of birth" in prompt.user_prompt
    assert "Return in MM/DD/YYYY format" not in prompt.user_prompt


def test_suppressed_jurisdiction_empties_both_date_fields():
    prompt = build_prompt("North Carolina", POLICIES)
    assert prompt.dob_policy is DobPolicy.OMIT
    assert "Leave dob and yearOfBirth empty" in prompt.user_prompt
    assert "convert to 4 digits" not in prompt.user_prompt


@pytest.mark.parametrize("state", ["", "Nevada", "Atlantis", None])
def test_default_full_date(state):
    prompt = build_prompt(state, POLICIES)
    assert prompt.dob_policy is DobPolicy.FULL_DATE
    assert "convert to 4 digits (1974)" in prompt.user_prompt
    assert "MM/DD/YYYY" in prompt.user_prompt


@pytest.mark.parametrize("state", ["georgia", "  GEORGIA ", "GA"])
def test_jurisdiction_normalization(state):
    assert dob_policy_for(state, POLICIES) is DobPolicy.YEAR_ONLY


def test_normalize_collapses_whitespace():
    assert normalize_jurisdiction("  North\tCarolina ") == "north carolina"


def test_no_policies_means_full_date():
    assert dob_policy_for("Georgia", None) is DobPolicy.FULL_DATE


def test_custom_policy_table():
    assert dob_policy_for("Texas", {"Texas": DobPolicy.OMIT}) is DobPolicy.OMIT


def test_system_prompt_forbids_substitution():
    prompt = build_prompt("", POLICIES)
    assert prompt.system_prompt == SYSTEM_PROMPT
    assert "NEVER substitute a real or plausible value" in prompt.system_prompt
    assert "transcribe exactly what is written" in prompt.system_prompt


def test_user_prompt_ends_with_template_containing_marker():
    prompt = build_prompt("", POLICIES)
    template = prompt.user_prompt.rsplit("\n", 1)[-1]
    assert template.startswith('{"firstName":""')
    for field in RECORD_FIELDS:
        assert f'"{field}":""' in template


def test_detect_media_type():
    assert detect_media_type("iVBORw0KGgo") == "image/png"
    assert detect_media_type("/9j/4AAQ") == "image/jpeg"
    assert detect_media_type("R0lGODlh") == "image/jpeg"
    assert detect_media_type("iVB") == "image/jpeg"
