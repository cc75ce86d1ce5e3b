"""Fixtures for testing the openai_chat package."""
import json
import os
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock
import pytest
from openai_chat import Chat


OPENAI_TEST_MODEL = 'gpt-4o-mini'
TEST_IMAGE_URL = 'https://example.com/image.jpg'


def pytest_configure(config: pytest.Config):
    config.addinivalue_line("markers", "integration: mark test as an integration test that makes API calls")  # noqa: E501


def pytest_runtest_setup(item: pytest.Item):
    """Skip integration tests when OPENAI_API_KEY is not set."""
    if (
        any(marker.name == "integration" for marker in item.iter_markers())
        and not os.getenv('OPENAI_API_KEY')
    ):
        pytest.skip("OPENAI_API_KEY is not set")


@pytest.fixture
def project_root() -> Path:
    """Get the tests directory."""
    return Path(__file__).parent


@pytest.fixture
def test_files_path(project_root: Path) -> Path:
    """Get the path to the test_files directory."""
    return project_root / 'test_files'


@pytest.fixture
def test_image_path(test_files_path: Path) -> Path:
    """Path to a small JPEG image."""
    return test_files_path / 'test_image.jpg'


@pytest.fixture
def test_image_url() -> str:
    return TEST_IMAGE_URL


@pytest.fixture
def chat() -> Chat:
    """A Chat with a dummy token; no request is made unless `send` is called."""
    return Chat(api_key='dummy_token')


def completion_body(content: str | None, **overrides: object) -> str:
    """Build a chat completion response body as returned by the API."""
    body = {
        'id': 'chatcmpl-123',
        'object': 'chat.completion',
        'model': OPENAI_TEST_MODEL,
        'choices': [
            {
                'index': 0,
                'message': {'role': 'assistant', 'content': content},
                'finish_reason': 'stop',
            },
        ],
        'usage': {'prompt_tokens': 12, 'completion_tokens': 5, 'total_tokens': 17},
    }
    body.update(overrides)
    return json.dumps(body)


@pytest.fixture
def mock_completion(chat: Chat):  # noqa: ANN201
    """
    Replace the chat's HTTP client. Call the returned function with a response body; the mocked
    `create` method is returned so the request can be inspected.
    """
    def _mock(body: str) -> MagicMock:
        chat.client = MagicMock()
        create = chat.client.chat.completions.with_raw_response.create
        create.return_value = SimpleNamespace(text=body)
        return create
    return _mock
