from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ledger_client.schemas.common import Page
from ledger_client.schemas.journal import JournalEntry, JournalEntryInput, PdfFormat

if TYPE_CHECKING:
    from ledger_client.client import ApiClient


def _pdf_params(
    include_audit_trail: Optional[bool],
    include_company_header: Optional[bool],
    fmt: Optional[PdfFormat],
) -> Dict[str, Any]:
    return {
        "includeAuditTrail": include_audit_trail,
        "includeCompanyHeader": include_company_header,
        "format": fmt,
    }


class JournalService:
    """Journal hub endpoints.

    These are served at `/journal-hub/...` without the API prefix.
    """

    def __init__(self, client: "ApiClient") -> None:
        self._client = client

    async def list_entries(
        self,
        *,
        status: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> Page[JournalEntry]:
        params = {
            "status": status,
            "dateFrom": date_from,
            "dateTo": date_to,
            "page": page,
            "pageSize": page_size,
        }
        return await self._client.get_page("/journal-hub/entries", JournalEntry, params=params)

    async def create_entry(self, data: JournalEntryInput | Dict[str, Any]) -> JournalEntry:
        return await self._client.post("/journal-hub/entries", data, model=JournalEntry)

    async def post_entry(self, entry_id: str) -> JournalEntry:
        return await self._client.post(f"/journal-hub/entries/{entry_id}/post", model=JournalEntry)

    async def reverse_entry(self, entry_id: str, *, reason: str) -> JournalEntry:
        return await self._client.post(
            f"/journal-hub/entries/{entry_id}/reverse",
            {"reason": reason},
            model=JournalEntry,
        )

    async def entry_pdf(
        self,
        entry_id: str,
        *,
        include_audit_trail: Optional[bool] = None,
        include_company_header: Optional[bool] = None,
        fmt: Optional[PdfFormat] = None,
    ) -> bytes:
        return await self._client.get_bytes(
            f"/journal-hub/entries/{entry_id}/pdf",
            params=_pdf_params(include_audit_trail, include_company_header, fmt),
        )

    async def entry_preview(
        self,
        entry_id: str,
        *,
        include_audit_trail: Optional[bool] = None,
        include_company_header: Optional[bool] = None,
        fmt: Optional[PdfFormat] = None,
    ) -> str:
        """HTML preview of the PDF rendering."""
        return await self._client.get_text(
            f"/journal-hub/entries/{entry_id}/preview",
            params=_pdf_params(include_audit_trail, include_company_header, fmt),
        )

    async def search_suggestions(self, field: str, query: str) -> List[str]:
        """Autocomplete values; an unexpected reply shape yields `[]`."""

        payload = await self._client.get(
            "/journal-hub/search/suggestions",
            params={"field": field, "query": query},
        )
        if not isinstance(payload, list):
            return []
        return [str(x) for x in payload if x is not None]
