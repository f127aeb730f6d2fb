from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel

from ledger_client.core.routing import RouteTable
from ledger_client.core.session import Session

TENANT_HEADER = "x-tenant-id"
COMPANY_HEADER = "x-company-id"


@dataclass(frozen=True)
class Multipart:
    """Multipart form body; httpx picks the boundary and Content-Type."""

    data: Mapping[str, Any] = field(default_factory=dict)
    files: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RequestDescriptor:
    method: str
    path: str
    body: Any = None
    params: Optional[Mapping[str, Any]] = None
    extra_headers: Optional[Mapping[str, str]] = None


@dataclass(frozen=True)
class BuiltRequest:
    method: str
    url: str
    headers: Dict[str, str]
    params: Dict[str, Any] = field(default_factory=dict)
    content: Optional[bytes] = None
    data: Optional[Dict[str, Any]] = None
    files: Optional[Dict[str, Any]] = None

    @property
    def is_multipart(self) -> bool:
        return self.files is not None or self.data is not None


def _jsonable(body: Any) -> Any:
    if isinstance(body, BaseModel):
        return body.model_dump(mode="json", by_alias=True, exclude_none=True)
    return body


def _form_parts(data: Mapping[str, Any]) -> Dict[str, Any]:
    # httpx only switches to multipart when file parts exist; fields without a
    # filename render as plain form fields inside the multipart body.
    return {k: (None, v if isinstance(v, (bytes, str)) else str(v)) for k, v in data.items()}


def _clean_params(params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    if not params:
        return {}
    out: Dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            # Backend expects the JS spelling.
            out[key] = "true" if value else "false"
        else:
            out[key] = value
    return out


class RequestBuilder:
    """Turns a descriptor plus the current session into a concrete request."""

    def __init__(self, routes: RouteTable, *, default_tenant_id: str) -> None:
        self._routes = routes
        self._default_tenant_id = default_tenant_id

    @property
    def routes(self) -> RouteTable:
        return self._routes

    def build(self, descriptor: RequestDescriptor, session: Session) -> BuiltRequest:
        headers: Dict[str, str] = {k.lower(): v for k, v in (descriptor.extra_headers or {}).items()}

        content: Optional[bytes] = None
        data: Optional[Dict[str, Any]] = None
        files: Optional[Dict[str, Any]] = None

        body = descriptor.body
        if isinstance(body, Multipart):
            if body.files:
                data = dict(body.data)
                files = dict(body.files)
            else:
                files = _form_parts(body.data)
            # A caller-provided Content-Type would lack the boundary.
            headers.pop("content-type", None)
        elif isinstance(body, (bytes, bytearray)):
            content = bytes(body)
        else:
            headers["content-type"] = "application/json"
            if body is not None:
                content = json.dumps(_jsonable(body), default=str).encode("utf-8")

        if session.access_token:
            headers["authorization"] = f"Bearer {session.access_token}"
        else:
            headers.pop("authorization", None)

        headers[TENANT_HEADER] = session.tenant_id or self._default_tenant_id

        if session.company_id:
            headers[COMPANY_HEADER] = session.company_id

        return BuiltRequest(
            method=descriptor.method.upper(),
            url=self._routes.url_for(descriptor.path),
            headers=headers,
            params=_clean_params(descriptor.params),
            content=content,
            data=data,
            files=files,
        )
