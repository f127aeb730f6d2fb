from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Mapping, Optional, Type, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from ledger_client.core.errors import MalformedResponseError
from ledger_client.core.normalizer import EnvelopeMode, error_from_response, normalize, normalize_envelope
from ledger_client.core.recovery import RecoveryPolicy
from ledger_client.core.request_builder import RequestBuilder, RequestDescriptor
from ledger_client.core.routing import RouteTable
from ledger_client.core.session import SessionState
from ledger_client.core.store import JsonFileSessionStore, SessionStore
from ledger_client.core.transport import Transport
from ledger_client.schemas.common import Page
from ledger_client.services.auth_service import AuthService
from ledger_client.services.banking_service import BankingService
from ledger_client.services.companies_service import CompaniesService
from ledger_client.services.invoices_service import InvoicesService
from ledger_client.services.journal_service import JournalService
from ledger_client.services.tax_service import TaxService
from ledger_client.settings import Settings, get_settings

logger = logging.getLogger(__name__)

M = TypeVar("M")


@lru_cache(maxsize=256)
def _adapter(tp: Any) -> TypeAdapter[Any]:
    return TypeAdapter(tp)


def _validate(payload: Any, model: Any, *, status: int) -> Any:
    if model is None:
        return payload
    if isinstance(payload, str):
        # Typed callers cannot use a raw-text fallback.
        raise MalformedResponseError(
            "Expected a JSON payload, got text",
            status=status,
            details={"raw": payload},
        )
    try:
        return _adapter(model).validate_python(payload)
    except ValidationError as exc:
        raise MalformedResponseError(
            "Response did not match the expected shape",
            status=status,
            details={"errors": exc.errors(include_url=False), "payload": payload},
        ) from exc


class ApiClient:
    """Shared HTTP access layer for every feature of the app.

    Usage::

        async with ApiClient() as api:
            await api.auth.login("owner@example.com", "secret")
            company = await api.get("/companies/123")

    Every call carries tenant/company/bearer context, recovers once from an
    expired token, and unwraps `{data: ...}` envelopes. Failures raise
    `ApiError` subclasses.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        store: SessionStore | None = None,
        session: SessionState | None = None,
        http_client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        s = self._settings

        if store is None and s.session_store_path:
            store = JsonFileSessionStore(s.session_store_path)
        self._session = session or SessionState(default_tenant_id=s.default_tenant_id, store=store)

        self._routes = RouteTable.from_families(s.api_base_url, s.api_prefix, s.unprefixed_routes)
        self._builder = RequestBuilder(self._routes, default_tenant_id=s.default_tenant_id)
        self._transport = Transport(
            timeout_seconds=s.request_timeout_seconds,
            http_client=http_client,
            transport=transport,
        )
        self._policy = RecoveryPolicy(
            transport=self._transport,
            builder=self._builder,
            session=self._session,
            demo_enabled=s.demo_fallback_active,
            demo_subject=s.demo_subject,
            demo_roles=s.demo_roles,
        )

        self.auth = AuthService(self)
        self.companies = CompaniesService(self)
        self.invoices = InvoicesService(self)
        self.journal = JournalService(self)
        self.banking = BankingService(self)
        self.tax = TaxService(self)

        logger.debug("ApiClient initialized with base URL %s", s.api_base_url)

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def session(self) -> SessionState:
        return self._session

    @property
    def recovery(self) -> RecoveryPolicy:
        return self._policy

    @property
    def routes(self) -> RouteTable:
        return self._routes

    async def send(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        recover: bool = True,
    ) -> httpx.Response:
        """Issue a request and return the raw successful response.

        Raises `ApiError` for every non-2xx outcome. `recover=False` skips the
        401 refresh/demo retry.
        """

        descriptor = RequestDescriptor(
            method=method.upper(),
            path=path,
            body=body,
            params=params,
            extra_headers=headers,
        )
        if recover:
            response = await self._policy.execute(descriptor)
        else:
            response = await self._policy.send_once(descriptor)
        if not response.is_success:
            raise error_from_response(response)
        return response

    async def request(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        envelope: EnvelopeMode = EnvelopeMode.AUTO,
        model: Any = None,
        recover: bool = True,
    ) -> Any:
        response = await self.send(method, path, body=body, params=params, headers=headers, recover=recover)
        return _validate(normalize(response, envelope), model, status=response.status_code)

    async def get(self, path: str, *, params: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> Any:
        return await self.request("GET", path, params=params, **kwargs)

    async def post(self, path: str, body: Any = None, **kwargs: Any) -> Any:
        return await self.request("POST", path, body=body, **kwargs)

    async def put(self, path: str, body: Any = None, **kwargs: Any) -> Any:
        return await self.request("PUT", path, body=body, **kwargs)

    async def patch(self, path: str, body: Any = None, **kwargs: Any) -> Any:
        return await self.request("PATCH", path, body=body, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", path, **kwargs)

    async def get_page(
        self,
        path: str,
        model: Type[M],
        *,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Page[M]:
        """Fetch a list endpoint keeping its pagination metadata."""

        response = await self.send("GET", path, params=params)
        envelope = normalize_envelope(response)
        items = envelope.value
        if items is None or items == {}:
            items = []
        if not isinstance(items, list):
            raise MalformedResponseError(
                "Expected a list payload",
                status=response.status_code,
                details={"payload": items},
            )
        return _validate({**envelope.meta, "data": items}, Page[model], status=response.status_code)

    async def get_bytes(
        self,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> bytes:
        """Binary download (PDF, exports); no JSON handling, non-OK always raises."""

        response = await self.send("GET", path, params=params, headers=headers)
        return response.content

    async def get_text(
        self,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> str:
        response = await self.send("GET", path, params=params, headers=headers)
        return response.text

    async def close(self) -> None:
        await self._transport.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
