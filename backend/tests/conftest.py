"""Test configuration and fixtures."""

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from drivescore.config import Settings, get_settings
from drivescore.main import app
from drivescore.routers.extraction import get_client_factory

PNG_B64 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNk"
JPEG_B64 = "/9j/4AAQSkZJRgABAQAAAQABAAD/2wBDAAgGBgcGBQgHBwcJCQgKDBQNDAsL"

ANSWER_REPLY = (
    "STEP 1:\n"
    "First name: I see J-O-H-N\n"
    "Street: I see the digits 1, 2, 3 and the letters Y-U-C-K-U-S L-N\n\n"
    "STEP 2:\n"
    "```json\n"
    '{"firstName":"JOHN","middleName":"","lastName":"DOE","suffix":"","street":"123 YUCKUS LN",'
    '"apt":"7","city":"RENO","zipDigit1":"8","zipDigit2":"9","zipDigit3":"5","zipDigit4":"0",'
    '"zipDigit5":"1","dob":"06/05/1974","yearOfBirth":"","confidence":"high"}\n'
    "```"
)


def make_message(*blocks, input_tokens=1200, output_tokens=400):
    """Build an object shaped like an anthropic Message."""
    return SimpleNamespace(
        content=list(blocks),
        usage=SimpleNamespace(input_tokens=input_tokens, output_tokens=output_tokens),
    )


def text_block(text):
    return SimpleNamespace(type="text", text=text)


class FakeMessages:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.reply


class FakeClaude:
    """Stand-in for anthropic.AsyncAnthropic exposing ``messages.create``."""

    def __init__(self, reply=None, error=None):
        self.messages = FakeMessages(reply=reply, error=error)


@pytest.fixture
def settings():
    return Settings(anthropic_api_key="test-key", _env_file=None)


@pytest.fixture
def fake_claude():
    return FakeClaude(reply=make_message(text_block(ANSWER_REPLY)))


@pytest.fixture
def client(settings, fake_claude):
    """Test client with settings and the Claude client overridden."""
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_client_factory] = lambda: (lambda _settings: fake_claude)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
