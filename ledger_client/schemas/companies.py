from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, Field

from ledger_client.schemas.common import ApiModel


class CompanyCounts(ApiModel):
    invoices: int = 0
    bills: int = 0
    customers: int = 0
    vendors: int = 0
    transactions: int = 0
    products: int = 0


class Company(ApiModel):
    id: str
    name: str
    logo_url: Optional[str] = None
    industry: Optional[str] = None
    tax_id: Optional[str] = None
    country: Optional[str] = None
    currency: Optional[str] = None
    fiscal_year_start: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    # Prisma-style relation counts arrive as `_count`.
    counts: Optional[CompanyCounts] = Field(default=None, validation_alias=AliasChoices("_count", "counts"))


class CompanyInput(ApiModel):
    name: str
    tenant_id: Optional[str] = None
    industry: Optional[str] = None
    tax_id: Optional[str] = None
    country: Optional[str] = None
    currency: Optional[str] = None
    fiscal_year_start: Optional[str] = None
