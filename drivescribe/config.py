from pathlib import Path
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
import logging
from functools import lru_cache

GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


class Settings(BaseSettings):
    """
    Centralized application configuration with type validation.
    Automatically reads variables from the environment and loads the
    recognition prompt from its text file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- General Settings ---
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    # --- Inference Settings ---
    OPENAI_API_KEY: str
    OPENAI_BASE_URL: str = GEMINI_OPENAI_BASE_URL
    RECOGNITION_MODEL: str = Field(
        "gemini-2.0-flash", validation_alias="RECOGNITION_MODEL"
    )
    RECOGNITION_PROMPT_FILE: Optional[Path] = None
    RECOGNITION_PROMPT: Optional[str] = None

    # --- Google Drive Settings ---
    GDRIVE_SERVICE_ACCOUNT_FILE: str
    GDRIVE_ROOT_FOLDER_ID: str
    GDRIVE_DOWNLOAD_CHUNK_SIZE: int = Field(
        1024 * 1024, validation_alias="GDRIVE_DOWNLOAD_CHUNK_SIZE"
    )  # 1 MiB default

    # --- Constants and Computed Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent

    @model_validator(mode="after")
    def check_values(self):
        if not self.GDRIVE_ROOT_FOLDER_ID.strip():
            raise ValueError("GDRIVE_ROOT_FOLDER_ID cannot be empty")
        if self.GDRIVE_DOWNLOAD_CHUNK_SIZE <= 0:
            raise ValueError("GDRIVE_DOWNLOAD_CHUNK_SIZE must be positive")
        return self

    def model_post_init(self, __context):
        """
        After settings are loaded from the environment, read the
        recognition prompt from its text file unless it was given inline.
        """
        if self.RECOGNITION_PROMPT:
            return
        prompt_file = self.RECOGNITION_PROMPT_FILE or self.BASE_DIR / "prompt.txt"
        if not prompt_file.is_file():
            raise ValueError(f"Recognition prompt file not found: {prompt_file}")
        content = prompt_file.read_text(encoding="utf-8").strip()
        if not content:
            raise ValueError(f"Recognition prompt file is empty: {prompt_file}")
        self.RECOGNITION_PROMPT = content
        logging.info(f"Loaded recognition prompt from file: {prompt_file}")

    @property
    def STATIC_DIR(self) -> Path:
        return self.BASE_DIR / "static"

    @property
    def LOG_FILE(self) -> Path:
        return self.BASE_DIR / "app.log"


@lru_cache()
def get_settings() -> Settings:
    """
    Returns a cached instance of the application settings.
    The first call to this function will initialize the settings.
    """
    return Settings()
