"""
Pytest configuration: a small in-process fake of the accounting backend.

The fake is a FastAPI app mounted behind `httpx.ASGITransport`, so the client
runs its real request/recovery/normalization path without a network.
"""

from __future__ import annotations

from typing import Any, Dict, List

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from ledger_client.client import ApiClient
from ledger_client.core.store import MemorySessionStore
from ledger_client.settings import Settings

BASE_URL = "http://testserver"


class FakeBackend:
    """Records every request and hands out tokens like the real auth service."""

    def __init__(self) -> None:
        self.valid_tokens = {"access_1"}
        self.refresh_token = "refresh_1"
        self.issued = 1
        self.demo_enabled = True
        self.calls: List[Dict[str, Any]] = []
        self.app = self._build_app()

    def paths(self) -> List[str]:
        return [c["path"] for c in self.calls]

    def expire_all(self) -> None:
        self.valid_tokens.clear()

    def _authorized(self, request: Request) -> bool:
        header = request.headers.get("authorization", "")
        return header.startswith("Bearer ") and header[len("Bearer ") :] in self.valid_tokens

    def _build_app(self) -> FastAPI:
        app = FastAPI()
        backend = self

        @app.middleware("http")
        async def record(request: Request, call_next):
            backend.calls.append(
                {
                    "method": request.method,
                    "path": request.url.path,
                    "query": dict(request.query_params),
                    "headers": dict(request.headers),
                }
            )
            return await call_next(request)

        def unauthorized() -> JSONResponse:
            return JSONResponse({"message": "Token expired"}, status_code=401)

        @app.post("/api/auth/login")
        async def login(request: Request):
            body = await request.json()
            if body.get("password") == "mfa":
                return JSONResponse({"challengeToken": "chal_1"}, status_code=401)
            if body.get("password") != "secret":
                return JSONResponse({"error": {"code": "INVALID_CREDENTIALS", "message": "Invalid credentials"}}, status_code=401)
            return {
                "tokens": {
                    "accessToken": "access_1",
                    "refreshToken": "refresh_1",
                    "tokenType": "Bearer",
                    "expiresIn": 900,
                },
                "user": {"id": "u1", "email": body.get("email")},
            }

        @app.post("/api/auth/refresh")
        async def refresh(request: Request):
            body = await request.json()
            if body.get("refreshToken") != backend.refresh_token:
                return JSONResponse({"message": "Invalid refresh token"}, status_code=401)
            backend.issued += 1
            token = f"access_{backend.issued}"
            backend.valid_tokens.add(token)
            return {"accessToken": token, "tokenType": "Bearer", "expiresIn": 900}

        @app.post("/api/auth/demo-token")
        async def demo_token(request: Request):
            if not backend.demo_enabled:
                return JSONResponse({"message": "Not found"}, status_code=404)
            backend.valid_tokens.add("demo_token")
            return {"token": "demo_token"}

        @app.post("/api/auth/logout")
        async def logout():
            return Response(status_code=204)

        @app.get("/api/companies")
        async def list_companies(request: Request):
            if not backend._authorized(request):
                return unauthorized()
            return {
                "data": [{"id": "c1", "name": "Acme", "_count": {"invoices": 3}}],
                "page": 1,
                "pageSize": 20,
                "total": 21,
                "totalPages": 2,
            }

        @app.get("/api/companies/{company_id}")
        async def get_company(company_id: str, request: Request):
            if not backend._authorized(request):
                return unauthorized()
            return {"id": company_id, "name": "Acme"}

        @app.get("/api/companies-enveloped/{company_id}")
        async def get_company_enveloped(company_id: str, request: Request):
            if not backend._authorized(request):
                return unauthorized()
            return {"data": {"id": company_id, "name": "Acme"}}

        @app.get("/api/echo")
        async def echo():
            return {"ok": True}

        @app.api_route("/api/echo-shape/{shape}", methods=["POST", "PUT", "DELETE"])
        async def echo_shape(shape: str, request: Request):
            payload = {"id": "1", "verb": request.method}
            return {"data": payload} if shape == "enveloped" else payload

        @app.get("/api/empty")
        async def empty():
            return Response(status_code=200)

        @app.get("/api/html")
        async def html():
            return PlainTextResponse("<html>gateway</html>", media_type="text/html")

        @app.get("/api/broken")
        async def broken():
            return PlainTextResponse("upstream exploded", status_code=502)

        @app.get("/api/conflict")
        async def conflict():
            return JSONResponse({"error": "Invoice already posted"}, status_code=409)

        @app.get("/api/invoices/next-number")
        async def next_number(request: Request):
            return {"data": {"invoiceNumber": "INV-0042", "companyId": request.query_params.get("companyId")}}

        @app.get("/api/invoices/{invoice_id}/pdf")
        async def invoice_pdf(invoice_id: str, request: Request):
            if not backend._authorized(request):
                return unauthorized()
            return Response(b"%PDF-1.4 fake", media_type="application/pdf")

        @app.post("/api/invoices/{invoice_id}/payment-link")
        async def payment_link(invoice_id: str):
            return {}

        @app.get("/journal-hub/entries")
        async def journal_entries(request: Request):
            if not backend._authorized(request):
                return unauthorized()
            return {"data": [{"id": "je1", "status": "POSTED", "lines": []}], "page": 1, "totalPages": 1}

        @app.get("/journal-hub/search/suggestions")
        async def suggestions(request: Request):
            return {"data": ["Rent", "Payroll"]}

        @app.get("/fx/rate")
        async def fx_rate(request: Request):
            if request.query_params.get("target") == "XXX":
                return JSONResponse({"message": "Unknown currency"}, status_code=400)
            return {"base": request.query_params.get("base"), "target": request.query_params.get("target"), "rate": 0.92}

        return app


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        api_base_url=BASE_URL,
        default_tenant_id="tenant_demo",
        demo_fallback_enabled=True,
        session_store_path=None,
    )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest_asyncio.fixture
async def api(settings: Settings, store: MemorySessionStore, backend: FakeBackend):
    client = ApiClient(settings, store=store, transport=httpx.ASGITransport(app=backend.app))
    yield client
    await client.close()
