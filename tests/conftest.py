# tests/conftest.py
import pytest
from unittest.mock import MagicMock
from pathlib import Path

# Settings is imported before the autouse fixture below patches it,
# so test_config.py still exercises the real class.
from drivescribe.config import Settings, get_settings
from drivescribe.storage.base import ContentStream

STATIC_DIR = Path(__file__).resolve().parent.parent / "drivescribe" / "static"


class FakeContentStream(ContentStream):
    """
    In-memory content stream: yields the given chunks in order, then raises
    `error` if one is given, otherwise ends normally.
    """

    def __init__(self, chunks, error=None):
        self.chunks = list(chunks)
        self.error = error
        self.closed = False
        self.chunks_delivered = 0

    def __iter__(self):
        for chunk in self.chunks:
            if self.closed:
                return
            self.chunks_delivered += 1
            yield chunk
        if self.error is not None:
            raise self.error

    def close(self):
        self.closed = True


@pytest.fixture
def mock_settings():
    """
    Provides a mock of the application settings for testing.
    This avoids the need for environment variables during tests.
    """
    settings = MagicMock(spec=Settings)
    settings.APP_HOST = "127.0.0.1"
    settings.APP_PORT = 3000
    settings.LOG_LEVEL = "INFO"
    settings.OPENAI_API_KEY = "test_api_key"
    settings.OPENAI_BASE_URL = "https://example.test/v1/"
    settings.RECOGNITION_MODEL = "gemini-2.0-flash"
    settings.RECOGNITION_PROMPT = "test prompt"
    settings.GDRIVE_SERVICE_ACCOUNT_FILE = "/tmp/service-account.json"
    settings.GDRIVE_ROOT_FOLDER_ID = "root_folder"
    settings.GDRIVE_DOWNLOAD_CHUNK_SIZE = 1024
    settings.BASE_DIR = Path("/tmp")
    settings.LOG_FILE = Path("/tmp/app.log")
    settings.STATIC_DIR = STATIC_DIR
    return settings


@pytest.fixture
def mock_storage_client():
    """Fixture for a mock storage client."""
    return MagicMock()


@pytest.fixture
def mock_recognition_client():
    """Fixture for a mock recognition client."""
    return MagicMock()


@pytest.fixture(autouse=True)
def patch_settings_class(monkeypatch, mock_settings):
    """
    This autouse fixture automatically replaces the `Settings` class constructor.
    Any part of the app code that calls `Settings()` during a test run will
    receive the `mock_settings` instance instead of a real settings object.
    """
    # Clear the cache on get_settings, in case it cached a real instance
    # during test collection.
    get_settings.cache_clear()
    monkeypatch.setattr("drivescribe.config.Settings", lambda *args, **kwargs: mock_settings)
    yield
    get_settings.cache_clear()
