from __future__ import annotations

from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class ApiModel(BaseModel):
    """Base for backend payloads: camelCase on the wire, snake_case in Python.

    Unknown fields are kept; the backend adds columns faster than we model them.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class Page(ApiModel, Generic[T]):
    """A list endpoint's envelope: items plus pagination metadata.

    Bare list responses become a single page with only `data` set.
    """

    data: List[T] = Field(default_factory=list)
    page: Optional[int] = None
    page_size: Optional[int] = None
    total: Optional[int] = None
    total_pages: Optional[int] = None

    @property
    def has_more(self) -> bool:
        if self.page is None or self.total_pages is None:
            return False
        return self.page < self.total_pages
