from __future__ import annotations

from typing import Any, List, Optional

from pydantic import Field

from ledger_client.schemas.common import ApiModel


class LoginResponse(ApiModel):
    access_token: str = ""
    refresh_token: str = ""
    token_type: str = "Bearer"
    expires_in: int = 3600
    user: Optional[Any] = None


class RefreshResponse(ApiModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: Optional[int] = None


class DemoToken(ApiModel):
    token: str = ""


class LoginResult(ApiModel):
    """Outcome of an MFA-aware login: tokens, or a challenge to verify."""

    ok: bool
    tokens: Optional[LoginResponse] = None
    challenge_token: Optional[str] = None


class RegisterRequest(ApiModel):
    email: str
    password: str
    name: Optional[str] = None
    role: Optional[str] = None
    company_name: Optional[str] = None


class RegisteredUser(ApiModel):
    id: str = ""
    email: str = ""
    tenant_id: Optional[str] = None
    company_id: Optional[str] = None
    company_name: Optional[str] = None
    roles: List[str] = Field(default_factory=list)
