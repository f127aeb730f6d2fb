from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from ledger_client.schemas.common import ApiModel


class InvoiceCustomer(ApiModel):
    id: Optional[str] = None
    name: str = ""
    email: Optional[str] = None
    customer_code: Optional[str] = None


class InvoiceLine(ApiModel):
    id: Optional[str] = None
    product_id: Optional[str] = None
    description: Optional[str] = None
    quantity: Decimal = Decimal("1")
    unit_price: Decimal = Decimal("0")
    tax_rate: Decimal = Decimal("0")
    line_total: Optional[Decimal] = None


class Invoice(ApiModel):
    id: str
    company_id: Optional[str] = None
    customer_id: Optional[str] = None
    invoice_number: str = ""
    issue_date: Optional[str] = None
    due_date: Optional[str] = None
    status: str = "draft"
    currency: str = "USD"
    subtotal: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    balance_due: Decimal = Decimal("0")
    customer: Optional[InvoiceCustomer] = None
    lines: List[InvoiceLine] = Field(default_factory=list)


class InvoiceNumber(ApiModel):
    invoice_number: str


class PaymentLink(ApiModel):
    url: str
    expires_at: Optional[datetime] = None
    amount: Decimal = Decimal("0")
    currency: str = "USD"


class ExchangeRate(ApiModel):
    base: str
    target: str
    rate: Decimal
    fallback: bool = False
