from __future__ import annotations

from functools import lru_cache
import json
from typing import Annotated, Literal

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    # Load from env vars in production/docker, but also support local dev via .env.
    # Order matters: prefer ./.env, then workspace-root/.env.
    model_config = SettingsConfigDict(env_file=(".env", "../.env"), extra="ignore")

    api_base_url: str = Field(
        default="http://localhost:4000",
        validation_alias=AliasChoices("LEDGER_API_BASE_URL", "API_BASE_URL", "api_base_url"),
    )

    # Most backend routes live under this prefix; see `unprefixed_routes` for the rest.
    api_prefix: str = Field(default="/api", validation_alias=AliasChoices("LEDGER_API_PREFIX", "api_prefix"))

    # Route families the backend serves without the API prefix.
    # Accepts either JSON array (preferred) or comma-separated string.
    unprefixed_routes: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["/journal-hub", "/fx"],
        validation_alias=AliasChoices("LEDGER_UNPREFIXED_ROUTES", "unprefixed_routes"),
    )

    # Requests are never sent without tenant scoping.
    default_tenant_id: str = Field(
        default="tenant_demo",
        validation_alias=AliasChoices("LEDGER_TENANT_ID", "DEFAULT_TENANT_ID", "default_tenant_id"),
    )

    environment: Literal["development", "production", "test"] = Field(
        default="development",
        validation_alias=AliasChoices("ENV", "ENVIRONMENT", "environment"),
    )

    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        validation_alias=AliasChoices("LEDGER_REQUEST_TIMEOUT", "request_timeout_seconds"),
    )

    # Demo credentials are a non-production convenience only.
    demo_fallback_enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices("LEDGER_DEMO_FALLBACK", "demo_fallback_enabled"),
    )
    demo_subject: str = Field(default="demo_user", validation_alias=AliasChoices("LEDGER_DEMO_SUBJECT", "demo_subject"))
    demo_roles: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["admin", "accountant"],
        validation_alias=AliasChoices("LEDGER_DEMO_ROLES", "demo_roles"),
    )

    # When unset the session only lives in memory.
    session_store_path: str | None = Field(
        default=None,
        validation_alias=AliasChoices("LEDGER_SESSION_FILE", "session_store_path"),
    )

    log_level: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "log_level"))

    @field_validator("api_base_url", mode="after")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("api_prefix", mode="after")
    @classmethod
    def _normalize_prefix(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if v and not v.startswith("/"):
            v = "/" + v
        return v

    @field_validator("unprefixed_routes", "demo_roles", mode="before")
    @classmethod
    def _split_csv_or_passthrough(cls, v):
        if v is None:
            return []
        if isinstance(v, (list, tuple, set)):
            return [str(x).strip() for x in v if str(x).strip()]
        if isinstance(v, str):
            raw = v.strip()
            if not raw:
                return []
            # Accept JSON arrays (preferred) like: ["/journal-hub", "/fx"]
            if raw.startswith("[") and raw.endswith("]"):
                try:
                    parsed = json.loads(raw)
                except Exception:
                    # Fall back to a best-effort CSV parse.
                    return [x.strip() for x in raw.strip("[]").split(",") if x.strip()]

                if isinstance(parsed, list):
                    return [str(x).strip() for x in parsed if str(x).strip()]
                if isinstance(parsed, str) and parsed.strip():
                    return [parsed.strip()]
                return []
            return [x.strip() for x in raw.split(",") if x.strip()]
        return v

    @model_validator(mode="after")
    def _validate_tenant(self) -> "Settings":
        if self.default_tenant_id and self.default_tenant_id.strip():
            return self
        raise ValueError("Missing tenant scope: set LEDGER_TENANT_ID to a non-empty value")

    @property
    def demo_fallback_active(self) -> bool:
        if self.environment == "production":
            return False
        return self.demo_fallback_enabled


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
