"""Application configuration using environment variables."""

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root once so that `.env` is discovered regardless of CWD
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """Load configuration from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # NVIDIA NIM credentials; local containers usually run without a key
    nvidia_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("NVIDIA_API_KEY", "nvidia_api_key"),
    )
    nim_asr_url: str = Field(
        default="https://ai.api.nvidia.com/v1/genai/nvidia/riva-asr-canary-1b",
        validation_alias=AliasChoices("NIM_ASR_URL", "nim_asr_url"),
        description="Hosted NVIDIA endpoint or a local /v1/audio/transcriptions URL.",
    )
    nim_asr_model: str = Field(
        default="canary-1b",
        validation_alias=AliasChoices("NIM_ASR_MODEL", "nim_asr_model"),
    )
    nim_tts_url: str = Field(
        default="http://localhost:9000/v1/tts/synthesize",
        validation_alias=AliasChoices("NIM_TTS_URL", "nim_tts_url"),
    )
    nim_tts_speaker: str = Field(
        default="English-US.Female-1",
        validation_alias=AliasChoices("NIM_TTS_SPEAKER", "nim_tts_speaker"),
    )
    backend_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        validation_alias=AliasChoices(
            "BACKEND_TIMEOUT_SECONDS",
            "backend_timeout_seconds",
        ),
        description="Upper bound for a single transcription or synthesis call.",
    )
    connection_queue_size: int = Field(
        default=32,
        ge=1,
        validation_alias=AliasChoices(
            "CONNECTION_QUEUE_SIZE",
            "connection_queue_size",
        ),
    )

    host: str = Field(
        default="0.0.0.0",
        validation_alias=AliasChoices("HOST", "host"),
    )
    port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        validation_alias=AliasChoices("PORT", "port"),
    )
    static_dir: Path = Field(
        default_factory=lambda: Path("public"),
        validation_alias=AliasChoices("STATIC_DIR", "static_dir"),
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        validation_alias=AliasChoices("CORS_ORIGINS", "cors_origins"),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()  # pyright: ignore[reportCallIssue]


__all__ = ["Settings", "get_settings"]
