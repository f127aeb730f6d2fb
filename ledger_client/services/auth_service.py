from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence

from ledger_client.core.errors import ApiError, AuthExpiredError
from ledger_client.core.normalizer import unwrap
from ledger_client.schemas.auth import (
    DemoToken,
    LoginResponse,
    LoginResult,
    RefreshResponse,
    RegisteredUser,
    RegisterRequest,
)

if TYPE_CHECKING:
    from ledger_client.client import ApiClient

logger = logging.getLogger(__name__)


def _tokens_from_login_payload(payload: Any) -> LoginResponse:
    """Accept both login reply formats.

    Current: `{tokens: {...}}` or the token fields at the top level.
    Legacy: `{token, user}`.
    """

    if not isinstance(payload, dict):
        return LoginResponse()
    if isinstance(payload.get("tokens"), dict):
        tokens = dict(payload["tokens"])
        if "user" in payload and "user" not in tokens:
            tokens["user"] = payload["user"]
        return LoginResponse.model_validate(tokens)
    if payload.get("token") and "accessToken" not in payload:
        return LoginResponse(access_token=str(payload["token"]), user=payload.get("user"))
    return LoginResponse.model_validate(payload)


class AuthService:
    """Login/register/logout flows layered on the shared client.

    Every flow that yields credentials writes them to the session, so the next
    request (and the next process, when a file store is configured) uses them.
    Credential endpoints never go through 401 recovery: a 401 there means the
    credentials were rejected.
    """

    def __init__(self, client: "ApiClient") -> None:
        self._client = client

    async def login(self, email: str, password: str) -> LoginResponse:
        payload = await self._client.post(
            "/auth/login",
            {"email": email, "password": password},
            recover=False,
        )
        tokens = _tokens_from_login_payload(payload)
        await self._store_tokens(tokens)
        logger.info("Login succeeded")
        return tokens

    async def login_mfa(self, email: str, password: str) -> LoginResult:
        """Login that may stop at an MFA challenge instead of returning tokens."""

        try:
            payload = await self._client.post(
                "/auth/login",
                {"email": email, "password": password},
                recover=False,
            )
        except AuthExpiredError as exc:
            challenge = _challenge_token(exc.details)
            if challenge:
                logger.info("Login requires MFA verification")
                return LoginResult(ok=False, challenge_token=challenge)
            raise

        tokens = _tokens_from_login_payload(payload)
        await self._store_tokens(tokens)
        return LoginResult(ok=True, tokens=tokens)

    async def verify_mfa_login(self, challenge_token: str, code: str) -> LoginResponse:
        payload = await self._client.post(
            "/auth/mfa/login/verify",
            {"challengeToken": challenge_token, "code": code},
            recover=False,
        )
        tokens = _tokens_from_login_payload(payload)
        await self._store_tokens(tokens)
        return tokens

    async def register(self, data: RegisterRequest | Dict[str, Any]) -> RegisteredUser:
        body = data if isinstance(data, RegisterRequest) else RegisterRequest.model_validate(data)
        user = await self._client.post("/auth/register", body, recover=False, model=RegisteredUser)
        if user.tenant_id or user.company_id:
            await self._client.session.set_session(
                **{k: v for k, v in (("tenant_id", user.tenant_id), ("company_id", user.company_id)) if v}
            )
        return user

    async def refresh(self, refresh_token: Optional[str] = None) -> RefreshResponse:
        """Exchange the refresh token now; joins any refresh already running."""

        if refresh_token:
            await self._client.session.set_session(refresh_token=refresh_token)
        grant = await self._client.recovery.refresh_access_token()
        if grant is None:
            raise AuthExpiredError("Token refresh failed")
        return RefreshResponse(
            access_token=grant.access_token,
            token_type=grant.token_type,
            expires_in=grant.expires_in,
        )

    async def demo_token(self, sub: Optional[str] = None, roles: Optional[Sequence[str]] = None) -> DemoToken:
        if not self._client.settings.demo_fallback_active:
            raise AuthExpiredError("Demo credentials are disabled in this environment", status=0)
        grant = await self._client.recovery.demo_token(subject=sub, roles=roles)
        if grant is None:
            raise AuthExpiredError("Demo credentials unavailable", status=0)
        return DemoToken(token=grant.access_token)

    async def logout(self) -> None:
        """Revoke the refresh token server-side and clear the local session.

        The endpoint may answer 204 or a non-JSON body; both count as success.
        The local session is cleared even when the call fails.
        """

        refresh_token = await self._client.session.get_refresh_token()
        try:
            await self._client.post("/auth/logout", {"refreshToken": refresh_token}, recover=False)
        except ApiError as exc:
            logger.warning("Logout request failed: %s", exc)
            raise
        finally:
            await self._client.session.clear_session()

    async def _store_tokens(self, tokens: LoginResponse) -> None:
        if not tokens.access_token:
            raise AuthExpiredError("Login response carried no access token", status=0)
        if tokens.refresh_token:
            await self._client.session.set_session(
                access_token=tokens.access_token,
                refresh_token=tokens.refresh_token,
            )
        else:
            await self._client.session.set_session(access_token=tokens.access_token)


def _challenge_token(details: Any) -> Optional[str]:
    if not isinstance(details, dict):
        return None
    body = unwrap(details)
    for candidate in (body, details):
        if isinstance(candidate, dict) and isinstance(candidate.get("challengeToken"), str):
            return candidate["challengeToken"]
    return None
