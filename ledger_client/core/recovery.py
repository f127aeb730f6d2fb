"""Unauthorized-response recovery.

Per request:

    SENDING --2xx/other--> DONE
    SENDING --401--> RECOVERING --token--> RETRYING --non-401--> DONE
                                                   --401------> FAILED
                     RECOVERING --no token--> FAILED

Recovery tries the refresh exchange first, then the demo credential (when
enabled). Concurrent 401s share one in-flight recovery, and a request whose
token was already replaced by someone else's recovery simply retries with the
new token.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Optional, Sequence, TypeVar

import httpx

from ledger_client.core.errors import ApiError, AuthExpiredError
from ledger_client.core.normalizer import error_from_response, parse_body, unwrap
from ledger_client.core.request_builder import RequestBuilder, RequestDescriptor
from ledger_client.core.session import Session, SessionState
from ledger_client.core.transport import Transport

logger = logging.getLogger(__name__)

R = TypeVar("R")

REFRESH_PATH = "/api/auth/refresh"
DEMO_TOKEN_PATH = "/api/auth/demo-token"


class RecoveryState(str, Enum):
    SENDING = "sending"
    RECOVERING = "recovering"
    RETRYING = "retrying"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class TokenGrant:
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"
    expires_in: Optional[int] = None
    source: str = "refresh"


class SingleFlight(Generic[R]):
    """At most one running coroutine; later callers await the same result."""

    def __init__(self) -> None:
        self._task: Optional[asyncio.Task[R]] = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self, factory: Callable[[], Awaitable[R]]) -> R:
        task = self._task
        if task is None or task.done():
            task = asyncio.ensure_future(factory())
            self._task = task
            task.add_done_callback(self._forget)
        # Cancelling one waiter must not cancel the exchange the others wait on.
        return await asyncio.shield(task)

    def _forget(self, task: asyncio.Task[R]) -> None:
        if self._task is task:
            self._task = None


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


class RecoveryPolicy:
    def __init__(
        self,
        *,
        transport: Transport,
        builder: RequestBuilder,
        session: SessionState,
        demo_enabled: bool = False,
        demo_subject: str = "demo_user",
        demo_roles: Sequence[str] = ("admin", "accountant"),
        refresh_path: str = REFRESH_PATH,
        demo_path: str = DEMO_TOKEN_PATH,
    ) -> None:
        self._transport = transport
        self._builder = builder
        self._session = session
        self._demo_enabled = demo_enabled
        self._demo_subject = demo_subject
        self._demo_roles = list(demo_roles)
        self._refresh_path = refresh_path
        self._demo_path = demo_path
        self._recovery: SingleFlight[Optional[str]] = SingleFlight()
        self._refresh: SingleFlight[Optional[TokenGrant]] = SingleFlight()

    @property
    def recovery_in_flight(self) -> bool:
        return self._recovery.in_flight

    async def execute(self, descriptor: RequestDescriptor) -> httpx.Response:
        """Send `descriptor`, recovering once from a 401.

        Returns the final response for any status other than an unrecoverable
        401, which raises `AuthExpiredError`. Network failures raise
        `NetworkError` and never trigger recovery.
        """

        state = RecoveryState.SENDING
        sent_with = await self._session.snapshot()
        response = await self._send(descriptor, sent_with)
        if response.status_code != 401:
            return response

        state = RecoveryState.RECOVERING
        logger.info("%s %s -> 401; %s", descriptor.method, descriptor.path, state.value)
        token = await self._recover(stale_token=sent_with.access_token)
        if not token:
            state = RecoveryState.FAILED
            logger.warning("%s %s: no recovery path; %s", descriptor.method, descriptor.path, state.value)
            raise self._auth_expired(response)

        # Session already carries the new token; rebuild from the same descriptor.
        state = RecoveryState.RETRYING
        logger.info("%s %s: %s with recovered credentials", descriptor.method, descriptor.path, state.value)
        retried = await self._send(descriptor, await self._session.snapshot())
        if retried.status_code == 401:
            state = RecoveryState.FAILED
            logger.warning("%s %s: retry still unauthorized; %s", descriptor.method, descriptor.path, state.value)
            # Report the original rejection; the retry is attached for diagnosis.
            error = self._auth_expired(response)
            retry_error = error_from_response(retried)
            error.details = {
                "response": error.details,
                "retry": {"status": retried.status_code, "message": retry_error.message, "details": retry_error.details},
            }
            raise error

        state = RecoveryState.DONE
        logger.debug("%s %s: %s after retry", descriptor.method, descriptor.path, state.value)
        return retried

    async def send_once(self, descriptor: RequestDescriptor) -> httpx.Response:
        """Single attempt, no recovery. For endpoints where 401 is an answer
        (credentials rejected, MFA challenge) rather than an expired session."""

        return await self._send(descriptor, await self._session.snapshot())

    async def refresh_access_token(self) -> Optional[TokenGrant]:
        """Run (or join) the refresh exchange; `None` when it is not possible."""

        return await self._refresh.run(self._exchange_refresh)

    async def demo_token(
        self, subject: Optional[str] = None, roles: Optional[Sequence[str]] = None
    ) -> Optional[TokenGrant]:
        return await self._exchange_demo(subject=subject, roles=roles)

    async def _send(self, descriptor: RequestDescriptor, session: Session) -> httpx.Response:
        return await self._transport.send(self._builder.build(descriptor, session))

    async def _recover(self, *, stale_token: Optional[str]) -> Optional[str]:
        current = self._session.current.access_token
        if current and current != stale_token:
            logger.info("Token already replaced by a concurrent recovery; reusing it")
            return current
        return await self._recovery.run(self._run_recovery)

    async def _run_recovery(self) -> Optional[str]:
        grant = await self.refresh_access_token()
        if grant is not None:
            return grant.access_token

        if not self._demo_enabled:
            return None

        grant = await self._exchange_demo()
        return grant.access_token if grant is not None else None

    async def _exchange(self, path: str, body: dict[str, Any]) -> Any:
        """POST to a token endpoint bypassing recovery; `None` on any failure."""

        tenant_id = await self._session.get_tenant_id()
        descriptor = RequestDescriptor(method="POST", path=path, body=body)
        try:
            response = await self._send(descriptor, Session(tenant_id=tenant_id))
        except ApiError as exc:
            logger.warning("Token exchange %s failed: %s", path, exc)
            return None

        if not response.is_success:
            logger.warning("Token exchange %s rejected: %s", path, error_from_response(response))
            return None

        payload = unwrap(parse_body(response.text).value)
        if not isinstance(payload, dict):
            logger.warning("Token exchange %s returned an unexpected body", path)
            return None
        return payload

    async def _exchange_refresh(self) -> Optional[TokenGrant]:
        refresh_token = await self._session.get_refresh_token()
        if not refresh_token:
            return None

        payload = await self._exchange(self._refresh_path, {"refreshToken": refresh_token})
        if payload is None:
            return None
        access_token = payload.get("accessToken")
        if not isinstance(access_token, str) or not access_token:
            logger.warning("Refresh response carried no access token")
            return None

        rotated = payload.get("refreshToken")
        grant = TokenGrant(
            access_token=access_token,
            refresh_token=rotated if isinstance(rotated, str) and rotated else None,
            token_type=str(payload.get("tokenType") or "Bearer"),
            expires_in=_as_int(payload.get("expiresIn")),
            source="refresh",
        )
        if grant.refresh_token:
            await self._session.set_session(access_token=grant.access_token, refresh_token=grant.refresh_token)
        else:
            await self._session.set_session(access_token=grant.access_token)
        logger.info("Access token refreshed")
        return grant

    async def _exchange_demo(
        self, *, subject: Optional[str] = None, roles: Optional[Sequence[str]] = None
    ) -> Optional[TokenGrant]:
        body = {
            "sub": subject or self._demo_subject,
            "roles": list(roles) if roles is not None else self._demo_roles,
        }
        payload = await self._exchange(self._demo_path, body)
        if payload is None:
            return None
        token = payload.get("token") or payload.get("accessToken")
        if not isinstance(token, str) or not token:
            logger.warning("Demo token response carried no token")
            return None

        await self._session.set_session(access_token=token)
        logger.info("Using demo credentials")
        return TokenGrant(access_token=token, source="demo")

    @staticmethod
    def _auth_expired(response: httpx.Response) -> AuthExpiredError:
        error = error_from_response(response)
        if isinstance(error, AuthExpiredError):
            return error
        return AuthExpiredError(error.message, status=error.status, details=error.details, code=error.code)
