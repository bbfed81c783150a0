"""Configuration settings for the Cadence syllable service."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class CadenceSettings(BaseSettings):
    """Cadence configuration loaded from environment variables."""

    # Service settings
    service_name: str = "cadence"
    host: str = "0.0.0.0"
    port: int = 8057
    log_level: str = "INFO"
    api_key: str = ""  # empty disables the X-API-Key check

    # Hyphenation
    hyphenation_backend: str = "pyphen"  # pyphen | heuristic
    hyphenation_language: str = "en_US"
    hyphenation_left: int = 2
    hyphenation_right: int = 2

    # Background channel
    channel_kind: str = "thread"  # thread | inline
    max_channel_failures: int = 3
    request_timeout_seconds: float = 10.0  # <= 0 disables

    # Document session
    debounce_seconds: float = 0.25
    error_log_size: int = 10
    max_line_length: int = 5000

    class Config:
        env_prefix = "CADENCE_"
        case_sensitive = False


@lru_cache()
def get_settings() -> CadenceSettings:
    """Get cached settings instance."""
    return CadenceSettings()
