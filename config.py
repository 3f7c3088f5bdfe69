"""
Application configuration via Pydantic Settings.
All values can be overridden by environment variables or a .env file.
"""
from __future__ import annotations

from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


MIN_RSA_KEY_SIZE = 2048


def check_key_size(v: int) -> int:
    """Shared by the RSA_KEY_SIZE validator and the --key-size CLI flag."""
    if v < MIN_RSA_KEY_SIZE or v % 8:
        raise ValueError(f"RSA key size must be at least {MIN_RSA_KEY_SIZE} and a multiple of 8, got {v}")
    return v


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Subject ────────────────────────────────────────────────────────────
    CSR_COMMON_NAME: str = "someone@example.com"
    CSR_EMAIL: str = "someone@example.com"

    # ── Key generation ─────────────────────────────────────────────────────
    RSA_KEY_SIZE: int = 4096
    RSA_PUBLIC_EXPONENT: int = 65537

    # ── Output ─────────────────────────────────────────────────────────────
    OUTPUT_DIR: str = "./csr-out"
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @field_validator("RSA_KEY_SIZE")
    @classmethod
    def validate_key_size(cls, v: int) -> int:
        return check_key_size(v)

    @field_validator("RSA_PUBLIC_EXPONENT")
    @classmethod
    def validate_public_exponent(cls, v: int) -> int:
        allowed = {3, 65537}
        if v not in allowed:
            raise ValueError(f"RSA_PUBLIC_EXPONENT must be one of {allowed}")
        return v

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalise_log_level(cls, v: object) -> object:
        """Accept lower-case level names from the environment."""
        if isinstance(v, str):
            return v.upper()
        return v


# Module-level singleton, imported by the CLI.
settings = Settings()
