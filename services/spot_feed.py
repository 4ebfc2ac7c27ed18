"""
services/spot_feed.py

Synthetic spot-market feed (pull-based, no backend).

Each ``get_snapshot()`` call advances the simulation one tick:
    - price: bounded uniform drift plus a rare larger jump, floored at 1
    - trades: a burst of 2-5 prints around the new price, prepended to a
      fixed-length tape (oldest dropped)
    - order book: regenerated from scratch at fixed offsets around the new
      price with random quantities (no memory between ticks)
    - 24h stats: running high/low/volume since the last anchor reset, change
      relative to the anchor price

Callers poll on their own schedule. Randomness comes from a
``numpy.random.Generator`` so tests can seed it.
"""

from __future__ import annotations

import time
from collections import deque
from typing import Callable, Optional

import numpy as np

from config.settings import SPOT_BOOK_LEVELS, SPOT_START_PRICE, SPOT_SYMBOL, SPOT_TAPE_SIZE
from domain.spot import MarketSnapshot, OrderBook, OrderBookLevel, Side, Ticker, Trade
from utils.logger import get_logger

log = get_logger(__name__)

Clock = Callable[[], int]

DRIFT = 0.35  # per-tick uniform drift bound
JUMP = 25.0  # jump size bound
JUMP_PROBABILITY = 0.02
MIN_PRICE = 1.0
MIN_QUOTE = 0.01  # floor for printed trade and book prices
TRADE_SPREAD = 2.5
TRADE_SPACING_MS = 120
OPEN_DISCOUNT = 0.02  # initial anchor sits 2% below the start price


def now_ms() -> int:
    return int(time.time() * 1000)


class MockSpotFeed:
    """
    Random-walk ticker, trade tape and order book for one symbol.

    Usage:
        feed = MockSpotFeed(rng=np.random.default_rng(7))
        snap = feed.get_snapshot()
        snap.ticker.last, snap.order_book.bids[0], snap.trades[0]
    """

    def __init__(
        self,
        symbol: str = SPOT_SYMBOL,
        start_price: float = SPOT_START_PRICE,
        levels: int = SPOT_BOOK_LEVELS,
        tape_size: int = SPOT_TAPE_SIZE,
        rng: Optional[np.random.Generator] = None,
        clock: Optional[Clock] = None,
        warmup_ticks: int = 5,
    ):
        self.symbol = symbol
        self.levels = levels
        self._rng = rng if rng is not None else np.random.default_rng()
        self._clock = clock or now_ms

        self.last = float(start_price)
        self.open_24h = self.last * (1 - OPEN_DISCOUNT)
        self.high_24h = self.last
        self.low_24h = self.last
        self.vol_24h = 0.0

        self.trades: deque[Trade] = deque(maxlen=tape_size)
        self.order_book = OrderBook(ts=self._clock())

        for _ in range(warmup_ticks):
            self._tick()

        log.debug("spot_feed.created", symbol=symbol, start=start_price, levels=levels)

    # ---- Public API ----
    def get_snapshot(self) -> MarketSnapshot:
        """Advance one tick and return ticker, fresh book and tape (newest first)."""
        return self._tick()

    def reset_24h_anchor(self) -> None:
        """Re-anchor 24h stats at the current price."""
        self.open_24h = self.last
        self.high_24h = self.last
        self.low_24h = self.last
        self.vol_24h = 0.0
        log.info("spot_feed.anchor_reset", symbol=self.symbol, price=round(self.last, 2))

    # ---- Simulation ----
    def _uniform(self, lo: float, hi: float) -> float:
        return float(self._rng.uniform(lo, hi))

    def _new_id(self, prefix: str, ts: int) -> str:
        return f"{prefix}_{int(self._rng.integers(0, 2**48)):x}_{ts}"

    def _tick(self) -> MarketSnapshot:
        ts = self._clock()

        drift = self._uniform(-DRIFT, DRIFT)
        jump = self._uniform(-JUMP, JUMP) if self._rng.random() < JUMP_PROBABILITY else 0.0
        self.last = max(MIN_PRICE, self.last + drift + jump)

        self.high_24h = max(self.high_24h, self.last)
        self.low_24h = min(self.low_24h, self.last)

        # Trades, newest first
        for i in range(int(self._rng.integers(2, 6))):
            side = Side.BUY if self._rng.random() > 0.5 else Side.SELL
            price = round(max(MIN_QUOTE, self.last + self._uniform(-TRADE_SPREAD, TRADE_SPREAD)), 2)
            qty = round(self._uniform(0.0005, 0.03), 6)
            self.vol_24h += qty
            self.trades.appendleft(Trade(id=self._new_id("t", ts), side=side, price=price, qty=qty, ts=ts - i * TRADE_SPACING_MS))

        # Book, rebuilt every tick
        bids: list[OrderBookLevel] = []
        asks: list[OrderBookLevel] = []
        for i in range(1, self.levels + 1):
            step = 1 + i * 0.8
            bids.append(OrderBookLevel(price=round(max(MIN_QUOTE, self.last - step), 2), qty=round(self._uniform(0.01, 0.35), 6)))
            asks.append(OrderBookLevel(price=round(self.last + step, 2), qty=round(self._uniform(0.01, 0.35), 6)))
        self.order_book = OrderBook(bids=bids, asks=asks, ts=ts)

        change_pct = (self.last - self.open_24h) / self.open_24h * 100
        ticker = Ticker(
            symbol=self.symbol,
            last=round(self.last, 2),
            change_24h_pct=round(change_pct, 2),
            high_24h=round(self.high_24h, 2),
            low_24h=round(self.low_24h, 2),
            vol_24h=round(self.vol_24h, 4),
            ts=ts,
        )
        return MarketSnapshot(ticker=ticker, order_book=self.order_book, trades=list(self.trades))
