from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Optional

from ledger_client.core.errors import ApiError
from ledger_client.schemas.common import Page
from ledger_client.schemas.invoices import ExchangeRate, Invoice, InvoiceNumber, PaymentLink

if TYPE_CHECKING:
    from ledger_client.client import ApiClient

logger = logging.getLogger(__name__)


class InvoicesService:
    def __init__(self, client: "ApiClient") -> None:
        self._client = client

    async def list(
        self,
        *,
        company_id: Optional[str] = None,
        status: Optional[str] = None,
        q: Optional[str] = None,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> Page[Invoice]:
        params = {"companyId": company_id, "status": status, "q": q, "page": page, "pageSize": page_size}
        return await self._client.get_page("/invoices", Invoice, params=params)

    async def get(self, invoice_id: str) -> Invoice:
        return await self._client.get(f"/invoices/{invoice_id}", model=Invoice)

    async def create(self, data: Dict[str, Any]) -> Invoice:
        return await self._client.post("/invoices", data, model=Invoice)

    async def update(self, invoice_id: str, data: Dict[str, Any]) -> Invoice:
        return await self._client.put(f"/invoices/{invoice_id}", data, model=Invoice)

    async def post(self, invoice_id: str) -> Invoice:
        """Post a draft invoice to the ledger."""
        return await self._client.post(f"/invoices/{invoice_id}/post", model=Invoice)

    async def next_number(self, company_id: Optional[str] = None) -> str:
        result = await self._client.get(
            "/invoices/next-number",
            params={"companyId": company_id},
            model=InvoiceNumber,
        )
        return result.invoice_number

    async def pdf(self, invoice_id: str) -> bytes:
        return await self._client.get_bytes(f"/invoices/{invoice_id}/pdf")

    async def payment_link(
        self,
        invoice_id: str,
        *,
        expires_in_minutes: Optional[int] = None,
        customer_email: Optional[str] = None,
        customer_name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> PaymentLink:
        """Create a hosted payment link.

        When the backend answers without a URL, a link to the app's own
        `/pay/<invoice_id>` page is returned with a zero amount.
        """

        body = {
            k: v
            for k, v in {
                "expiresInMinutes": expires_in_minutes,
                "customerEmail": customer_email,
                "customerName": customer_name,
                "description": description,
            }.items()
            if v is not None
        }
        payload = await self._client.post(f"/invoices/{invoice_id}/payment-link", body)
        if isinstance(payload, dict) and payload.get("url"):
            return PaymentLink.model_validate(payload)
        logger.warning("Payment link response for invoice %s had no url; using app pay page", invoice_id)
        return PaymentLink(url=f"{self._client.settings.api_base_url}/pay/{invoice_id}")

    async def exchange_rate(self, base: str, target: str) -> ExchangeRate:
        """Current FX rate; falls back to 1.0 (flagged `fallback=True`) on any failure."""

        try:
            payload = await self._client.get("/fx/rate", params={"base": base, "target": target})
        except ApiError as exc:
            logger.warning("FX rate %s->%s unavailable: %s", base, target, exc)
            payload = None

        rate = payload.get("rate") if isinstance(payload, dict) else None
        if isinstance(rate, (int, float, str)) and not isinstance(rate, bool):
            try:
                return ExchangeRate(base=base, target=target, rate=Decimal(str(rate)))
            except ArithmeticError:
                logger.warning("FX rate %s->%s not numeric: %r", base, target, rate)
        return ExchangeRate(base=base, target=target, rate=Decimal("1"), fallback=True)
