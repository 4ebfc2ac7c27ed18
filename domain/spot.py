"""
domain/spot.py

Synthetic spot-market entities: ticker, order book, trade tape, simulated
orders.

Simulated order lifecycle:
    OPEN → FILLED     (market order on placement, limit order on a crossing tick)
    OPEN → CANCELED   (explicit cancel)

FILLED and CANCELED are terminal. Orders are frozen models; every state
change produces a new instance via ``model_copy``.

Timestamps (``ts``, ``created_at``, ``updated_at``) are epoch milliseconds.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import ConfigDict, Field

from domain.models import CrmModel


class Side(str, Enum):
    BUY = "buy"
    SELL = "sell"


class OrderType(str, Enum):
    MARKET = "market"
    LIMIT = "limit"


class SpotOrderStatus(str, Enum):
    """Simulated order lifecycle states"""

    OPEN = "OPEN"  # Resting, eligible for fill or cancel
    FILLED = "FILLED"  # Fully filled (terminal)
    CANCELED = "CANCELED"  # Canceled by user (terminal)


class Ticker(CrmModel):
    symbol: str
    last: float
    change_24h_pct: float = Field(alias="change24hPct")
    high_24h: float = Field(alias="high24h")
    low_24h: float = Field(alias="low24h")
    vol_24h: float = Field(alias="vol24h")  # base asset volume
    ts: int


class OrderBookLevel(CrmModel):
    price: float
    qty: float


class OrderBook(CrmModel):
    bids: list[OrderBookLevel] = Field(default_factory=list)  # best (highest) first
    asks: list[OrderBookLevel] = Field(default_factory=list)  # best (lowest) first
    ts: int = 0


class Trade(CrmModel):
    id: str
    side: Side
    price: float
    qty: float
    ts: int


class MarketSnapshot(CrmModel):
    """One feed tick: ticker, freshly synthesized book, trade tape (newest first)."""

    ticker: Ticker
    order_book: OrderBook
    trades: list[Trade]


class SpotOrder(CrmModel):
    """
    Simulated order record.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    symbol: str
    side: Side
    type: OrderType
    price: Optional[float] = None  # limit price; None for market orders
    qty: float
    status: SpotOrderStatus = SpotOrderStatus.OPEN
    filled_qty: float = 0.0
    avg_price: Optional[float] = None
    created_at: int
    updated_at: int

    @property
    def is_open(self) -> bool:
        return self.status == SpotOrderStatus.OPEN
