from __future__ import annotations

from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import Field

from ledger_client.schemas.common import ApiModel


class JournalLine(ApiModel):
    account_id: str
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")
    memo: Optional[str] = None


class JournalEntry(ApiModel):
    id: str
    date: Optional[str] = None
    memo: Optional[str] = None
    reference: Optional[str] = None
    status: str = "DRAFT"
    entry_type_id: Optional[str] = None
    lines: List[JournalLine] = Field(default_factory=list)


class JournalEntryInput(ApiModel):
    date: str
    memo: Optional[str] = None
    reference: Optional[str] = None
    entry_type_id: Optional[str] = None
    lines: List[JournalLine]


PdfFormat = Literal["detailed", "summary"]
