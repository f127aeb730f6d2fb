from __future__ import annotations

from decimal import Decimal
from typing import Literal, Optional

from ledger_client.schemas.common import ApiModel


class BankAccount(ApiModel):
    id: str
    bank_name: str
    account_number: str
    account_type: Optional[str] = None
    currency: Optional[str] = None
    balance: Optional[Decimal] = None
    status: Optional[str] = None
    last_sync_at: Optional[str] = None


class BankTransaction(ApiModel):
    id: str
    bank_account_id: Optional[str] = None
    transaction_date: str
    amount: Decimal
    currency: Optional[str] = None
    description: Optional[str] = None
    transaction_type: Literal["credit", "debit", "transfer"]
    status: Optional[str] = None
    is_reconciled: bool = False
    reconciled_payment_id: Optional[str] = None
