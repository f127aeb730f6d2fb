from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from ledger_client.core.request_builder import Multipart
from ledger_client.schemas.common import Page
from ledger_client.schemas.companies import Company, CompanyInput

if TYPE_CHECKING:
    from ledger_client.client import ApiClient


class CompaniesService:
    def __init__(self, client: "ApiClient") -> None:
        self._client = client

    async def list(
        self,
        *,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
        country: Optional[str] = None,
        currency: Optional[str] = None,
        q: Optional[str] = None,
    ) -> Page[Company]:
        params = {"page": page, "pageSize": page_size, "country": country, "currency": currency, "q": q}
        return await self._client.get_page("/companies", Company, params=params)

    async def get(self, company_id: str) -> Company:
        return await self._client.get(f"/companies/{company_id}", model=Company)

    async def create(self, data: CompanyInput | Dict[str, Any]) -> Company:
        return await self._client.post("/companies", data, model=Company)

    async def update(self, company_id: str, data: Dict[str, Any]) -> Company:
        return await self._client.put(f"/companies/{company_id}", data, model=Company)

    async def delete(self, company_id: str) -> None:
        await self._client.delete(f"/companies/{company_id}")

    async def upload_logo(
        self,
        company_id: str,
        *,
        filename: str,
        content: bytes,
        content_type: str = "image/png",
    ) -> Company:
        body = Multipart(files={"logo": (filename, content, content_type)})
        return await self._client.post(f"/companies/{company_id}/logo", body, model=Company)

    async def select(self, company_id: Optional[str]) -> None:
        """Make `company_id` the company every following request is scoped to."""

        await self._client.session.set_session(company_id=company_id)
