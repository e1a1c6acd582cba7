"""Store configuration via environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings

from .codec import KeyPair
from .options import CookieOptions


class Settings(BaseSettings):
    auth_key: str
    enc_key: str = ""
    previous_auth_key: str = ""  # still accepted while cookies signed with it are live
    previous_enc_key: str = ""
    cookie_path: str = "/"
    cookie_domain: str = ""
    cookie_max_age: int = 30 * 24 * 3600
    cookie_secure: bool = False
    cookie_http_only: bool = True
    cookie_same_site: Literal["lax", "strict", "none"] = "lax"
    backend: Literal["memory", "dynamodb"] = "memory"
    dynamodb_table: str = "sessions"
    dynamodb_endpoint: str = ""  # For local DynamoDB
    region: str = "us-west-2"
    operation_timeout: float | None = None

    @property
    def key_pairs(self) -> list[KeyPair]:
        pairs = [KeyPair(self.auth_key.encode(), self.enc_key.encode() or None)]
        if self.previous_auth_key:
            pairs.append(
                KeyPair(self.previous_auth_key.encode(), self.previous_enc_key.encode() or None)
            )
        return pairs

    @property
    def cookie_options(self) -> CookieOptions:
        return CookieOptions.from_max_age(
            self.cookie_max_age,
            path=self.cookie_path,
            domain=self.cookie_domain or None,
            secure=self.cookie_secure,
            http_only=self.cookie_http_only,
            same_site=self.cookie_same_site,
        )

    model_config = {"env_prefix": "SESSION_", "case_sensitive": False}


settings: Settings | None = None


def get_settings() -> Settings:
    global settings
    if settings is None:
        settings = Settings()
    return settings


def override_settings(s: Settings | None) -> None:
    """For testing: inject a Settings instance (None resets to the environment)."""
    global settings
    settings = s
