"""
domain/models.py

Pydantic models for the session record and the CRM entities served by the
backend.

Field names are snake_case in Python and camelCase on the wire
(``customer_id`` <-> ``customerId``); both spellings are accepted on input.
Unknown fields from the backend are ignored so additive API changes don't
break the client.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Server-assigned identity: numeric from the REST backend, string for
# locally created records.
EntityId = Union[int, str]


class CrmModel(BaseModel):
    """Base model: camelCase aliases, populate by either name, ignore extras."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_wire(self, *, exclude: Optional[set[str]] = None) -> dict:
        """Serialize for the backend / storage (camelCase, no None values)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True, exclude=exclude)


# ==================== Session ====================


class SessionUser(CrmModel):
    """Identity fields supplied at login (both optional)."""

    username: Optional[str] = None
    role: Optional[str] = None


class Session(CrmModel):
    """
    The current credential plus identity claims.

    ``token`` is an opaque bearer credential issued by the backend. It is
    never verified client-side.
    """

    token: str
    user: Optional[SessionUser] = None
    logged_in_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ==================== CRM entities ====================

# Fields the server owns; stripped from create/update payloads.
SERVER_FIELDS: set[str] = {"id", "created_at", "updated_at"}


class Customer(CrmModel):
    id: EntityId
    name: str
    industry: Optional[str] = None
    level: str = "C"  # A | B | C
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    owner: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Order(CrmModel):
    id: EntityId
    customer_id: EntityId
    customer_name: str = ""  # denormalized at last fetch
    title: str
    amount: float = 0.0
    status: str = "draft"  # draft | confirmed | delivered | cancelled
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Visit(CrmModel):
    id: EntityId
    customer_id: EntityId
    customer_name: str = ""
    date: str
    method: str  # call | onsite | online
    summary: str = ""
    next_action: Optional[str] = None
    owner: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class FinanceRecord(CrmModel):
    id: EntityId
    customer_id: EntityId
    customer_name: str = ""
    type: str  # invoice | payment | refund
    amount: float = 0.0
    date: str
    status: str = "pending"  # pending | done
    note: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Employee(CrmModel):
    id: EntityId
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    status: Optional[str] = None  # active | inactive
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class NewsItem(CrmModel):
    id: EntityId
    title: str
    source: Optional[str] = None
    source_url: Optional[str] = None
    summary: Optional[str] = None
    content: Optional[str] = None
    status: str = "DRAFT"  # DRAFT | PUBLISHED
    published_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Banner(CrmModel):
    id: EntityId
    name: str = ""
    position: str = "HOME_TOP"  # HOME_TOP | HOME_MID | HOME_BOTTOM
    status: str = "DRAFT"  # DRAFT | ONLINE | OFFLINE
    image_url: Optional[str] = None
    link_url: Optional[str] = None
    locale: Optional[str] = None
    start_at: Optional[str] = None
    end_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Article(CrmModel):
    """Locally authored article (never sent to the backend)."""

    id: str
    title: str
    cover_url: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    status: str = "draft"  # draft | published
    content_html: str = ""
    created_at: str
    updated_at: str
