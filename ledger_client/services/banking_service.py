from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from ledger_client.schemas.banking import BankAccount, BankTransaction
from ledger_client.schemas.common import Page

if TYPE_CHECKING:
    from ledger_client.client import ApiClient


class BankingService:
    def __init__(self, client: "ApiClient") -> None:
        self._client = client

    async def list_accounts(self, company_id: Optional[str] = None) -> List[BankAccount]:
        return await self._client.get(
            "/bank-accounts",
            params={"companyId": company_id},
            model=List[BankAccount],
        )

    async def list_transactions(
        self,
        *,
        bank_account_id: Optional[str] = None,
        company_id: Optional[str] = None,
        status: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Page[BankTransaction]:
        params = {
            "bankAccountId": bank_account_id,
            "companyId": company_id,
            "status": status,
            "page": page,
            "pageSize": page_size,
        }
        return await self._client.get_page("/bank-transactions", BankTransaction, params=params)

    async def reconcile(self, transaction_id: str, *, payment_id: Optional[str] = None) -> BankTransaction:
        body = {"paymentId": payment_id} if payment_id else {}
        return await self._client.post(
            f"/bank-transactions/{transaction_id}/reconcile",
            body,
            model=BankTransaction,
        )
