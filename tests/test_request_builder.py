import json

import pytest

from ledger_client.core.request_builder import Multipart, RequestBuilder, RequestDescriptor
from ledger_client.core.routing import RouteTable
from ledger_client.core.session import Session
from ledger_client.schemas.companies import CompanyInput

ROUTES = RouteTable.from_families("http://localhost:4000/", "/api", ["/journal-hub", "fx/"])


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/companies/123", "/api/companies/123"),
        ("companies", "/api/companies"),
        ("/api/auth/login", "/api/auth/login"),
        ("/journal-hub/entries", "/journal-hub/entries"),
        ("/journal-hub?x=1", "/journal-hub?x=1"),
        ("/fx/rate", "/fx/rate"),
        ("/fxrates", "/api/fxrates"),
        ("/apis", "/api/apis"),
    ],
)
def test_route_families(path: str, expected: str) -> None:
    assert ROUTES.resolve_path(path) == expected


def test_absolute_urls_pass_through() -> None:
    assert ROUTES.url_for("https://cdn.example.com/x.png") == "https://cdn.example.com/x.png"
    assert ROUTES.url_for("/companies") == "http://localhost:4000/api/companies"


def test_anonymous_request_still_carries_tenant() -> None:
    builder = RequestBuilder(ROUTES, default_tenant_id="tenant_demo")
    built = builder.build(RequestDescriptor("GET", "/companies"), Session())

    assert "authorization" not in built.headers
    assert built.headers["x-tenant-id"] == "tenant_demo"
    assert "x-company-id" not in built.headers
    assert built.headers["content-type"] == "application/json"
    assert built.content is None


def test_session_context_and_json_body() -> None:
    builder = RequestBuilder(ROUTES, default_tenant_id="tenant_demo")
    session = Session(access_token="tok", tenant_id="t1", company_id="c1")
    built = builder.build(
        RequestDescriptor(
            "post",
            "/companies",
            body=CompanyInput(name="Acme", tax_id="T-1"),
            params={"dryRun": True, "skip": None, "page": 2},
            extra_headers={"X-Request-Id": "r1", "Authorization": "Basic zzz"},
        ),
        session,
    )

    assert built.method == "POST"
    assert built.headers["authorization"] == "Bearer tok"
    assert built.headers["x-tenant-id"] == "t1"
    assert built.headers["x-company-id"] == "c1"
    assert built.headers["x-request-id"] == "r1"
    assert built.params == {"dryRun": "true", "page": 2}
    assert json.loads(built.content) == {"name": "Acme", "taxId": "T-1"}


def test_multipart_drops_json_content_type() -> None:
    builder = RequestBuilder(ROUTES, default_tenant_id="tenant_demo")
    body = Multipart(files={"logo": ("logo.png", b"\x89PNG", "image/png")})
    built = builder.build(
        RequestDescriptor("POST", "/companies/c1/logo", body=body, extra_headers={"Content-Type": "application/json"}),
        Session(access_token="tok"),
    )

    assert built.is_multipart
    assert "content-type" not in built.headers
    assert built.files == {"logo": ("logo.png", b"\x89PNG", "image/png")}
    assert built.content is None


def test_fields_only_multipart_still_uses_form_parts() -> None:
    builder = RequestBuilder(ROUTES, default_tenant_id="tenant_demo")
    built = builder.build(
        RequestDescriptor("POST", "/documents/import", body=Multipart(data={"kind": "receipt", "pages": 2})),
        Session(),
    )

    assert built.is_multipart
    assert built.data is None
    assert built.files == {"kind": (None, "receipt"), "pages": (None, "2")}
