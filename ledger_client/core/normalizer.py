"""Response-shape handling shared by every client call.

The backend mixes two conventions: some endpoints wrap payloads as
`{"data": ..., "error": ..., "page": ...}`, others return the payload bare.
Nothing in the request tells us which one a given endpoint uses, so the shape
is classified per response by `classify` and unwrapped in one place.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, TypeVar, Union

import httpx

from ledger_client.core.errors import ApiError, AuthExpiredError, HttpError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EnvelopeMode(str, Enum):
    AUTO = "auto"
    ENVELOPED = "enveloped"
    BARE = "bare"


@dataclass(frozen=True)
class ParsedBody:
    value: Any
    text: str
    malformed: bool = False


@dataclass(frozen=True)
class Enveloped(Generic[T]):
    value: T
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Bare(Generic[T]):
    value: T


Shape = Union[Enveloped[Any], Bare[Any]]


def parse_body(text: str) -> ParsedBody:
    """Parse a response body without assuming it is JSON.

    Empty bodies parse to `{}`; bodies that are not JSON come back as the raw
    text with `malformed=True`.
    """

    if not text or not text.strip():
        return ParsedBody(value={}, text=text or "")
    try:
        return ParsedBody(value=json.loads(text), text=text)
    except ValueError:
        return ParsedBody(value=text, text=text, malformed=True)


def classify(value: Any, mode: EnvelopeMode = EnvelopeMode.AUTO) -> Shape:
    if mode is EnvelopeMode.BARE:
        return Bare(value)

    if isinstance(value, dict) and "data" in value:
        data = value["data"]
        meta = {k: v for k, v in value.items() if k != "data"}
        if mode is EnvelopeMode.ENVELOPED or data is not None:
            return Enveloped(data, meta)
        # `{"data": null}` keeps the whole object, same as the `??` fallback callers relied on.
        return Bare(value)

    if mode is EnvelopeMode.ENVELOPED:
        logger.warning("Expected an enveloped response, got %s; returning it unwrapped", type(value).__name__)
    return Bare(value)


def unwrap(value: Any, mode: EnvelopeMode = EnvelopeMode.AUTO) -> Any:
    return classify(value, mode).value


def _describe_request(response: httpx.Response) -> str:
    try:
        request = response.request
    except RuntimeError:
        # Responses built by hand (tests, fakes) carry no request.
        return "<unknown request>"
    return f"{request.method} {request.url}"


def read_body(response: httpx.Response) -> ParsedBody:
    parsed = parse_body(response.text)
    if parsed.malformed:
        # Degrade to raw text; HTML error pages from proxies end up here.
        logger.warning(
            "Non-JSON body from %s (status=%s, %d chars); returning raw text",
            _describe_request(response),
            response.status_code,
            len(parsed.text),
        )
    return parsed


def normalize(response: httpx.Response, mode: EnvelopeMode = EnvelopeMode.AUTO) -> Any:
    """Payload of a successful response, envelope removed."""

    return unwrap(read_body(response).value, mode)


def normalize_envelope(response: httpx.Response) -> Enveloped[Any]:
    """Payload plus envelope metadata (pagination, warnings).

    A bare list is treated as a single unpaginated page; `{"data": null}`
    keeps its metadata with a `None` payload.
    """

    value = read_body(response).value
    if isinstance(value, dict) and "data" in value:
        return Enveloped(value["data"], {k: v for k, v in value.items() if k != "data"})
    return Enveloped(value, {})


def _message_from_body(body: Dict[str, Any]) -> str | None:
    message = body.get("message")
    if isinstance(message, str) and message:
        return message
    error = body.get("error")
    if isinstance(error, str) and error:
        return error
    if isinstance(error, dict):
        nested = error.get("message")
        if isinstance(nested, str) and nested:
            return nested
    return None


def _code_from_body(body: Dict[str, Any]) -> str | None:
    error = body.get("error")
    if isinstance(error, dict) and isinstance(error.get("code"), str):
        return error["code"]
    if isinstance(body.get("code"), str):
        return body["code"]
    return None


def error_from_response(response: httpx.Response) -> ApiError:
    """Build the caller-facing error for a non-2xx response.

    Message priority: `message`, string `error`, `error.message`, raw text
    (non-JSON bodies), then `HTTP <status>`.
    """

    status = response.status_code
    message = f"HTTP {status}"
    details: Any = None
    code: str | None = None

    text = response.text
    if text:
        parsed = parse_body(text)
        if parsed.malformed:
            message = text
            details = {"raw": text}
        else:
            details = parsed.value
            if isinstance(parsed.value, dict):
                message = _message_from_body(parsed.value) or message
                code = _code_from_body(parsed.value)

    if status == 401:
        return AuthExpiredError(message, status=status, details=details, code=code)
    return HttpError(message, status=status, details=details, code=code)
