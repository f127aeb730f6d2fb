from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Sequence

from ledger_client.schemas.tax import TaxCalculation, TaxLineInput, TaxRate

if TYPE_CHECKING:
    from ledger_client.client import ApiClient


class TaxService:
    def __init__(self, client: "ApiClient") -> None:
        self._client = client

    async def list_rates(self, *, company_id: Optional[str] = None, active_only: Optional[bool] = None) -> List[TaxRate]:
        return await self._client.get(
            "/tax/rates",
            params={"companyId": company_id, "isActive": active_only},
            model=List[TaxRate],
        )

    async def calculate(
        self,
        lines: Sequence[TaxLineInput],
        *,
        company_id: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> TaxCalculation:
        body = {
            "companyId": company_id,
            "currency": currency,
            "lines": [line.model_dump(mode="json", by_alias=True, exclude_none=True) for line in lines],
        }
        return await self._client.post("/tax/calculate", body, model=TaxCalculation)
