"""Pydantic schemas for FAQ products and their issue/solution items."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from akcent.schemas.base import CamelModel


# ─── Products ───────────────────────────────────────────

class FaqProductCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    display_order: int = 0


class FaqProductUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    display_order: Optional[int] = None


class FaqProductRead(CamelModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    display_order: int
    created_at: datetime
    updated_at: datetime


# ─── Items ──────────────────────────────────────────────

def _clean_solutions(v: Optional[list[str]]) -> Optional[list[str]]:
    if v is None:
        return v
    cleaned = [s.strip() for s in v if s.strip()]
    if not cleaned:
        raise ValueError("At least one solution is required")
    return cleaned


class FaqItemCreate(CamelModel):
    product_id: uuid.UUID
    issue: str = Field(..., min_length=1)
    solutions: list[str] = Field(..., min_length=1)
    display_order: int = 0

    @field_validator("solutions")
    @classmethod
    def _solutions(cls, v):
        return _clean_solutions(v)


class FaqItemUpdate(CamelModel):
    issue: Optional[str] = Field(None, min_length=1)
    solutions: Optional[list[str]] = Field(None, min_length=1)
    display_order: Optional[int] = None

    @field_validator("solutions")
    @classmethod
    def _solutions(cls, v):
        return _clean_solutions(v)


class FaqItemRead(CamelModel):
    id: uuid.UUID
    product_id: uuid.UUID
    issue: str
    solutions: list[str]
    display_order: int
    created_at: datetime
    updated_at: datetime
