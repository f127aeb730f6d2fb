from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from ledger_client.schemas.common import ApiModel


class TaxRate(ApiModel):
    id: str
    tax_name: str = ""
    rate: Decimal
    applies_to: Optional[str] = None
    is_active: bool = True


class TaxLineInput(ApiModel):
    amount: Decimal
    tax_rate_id: Optional[str] = None
    tax_exempt: bool = False


class TaxCalculation(ApiModel):
    total_tax: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    lines: List[dict] = Field(default_factory=list)
