"""
services/spot_session.py

Spot widget driver: the polling loop behind the trading panel, minus
rendering.

Per poll:
    1. pull one snapshot from the feed
    2. append the last price to a capped price series
    3. run limit-order fills; persist and announce only if something filled
    4. announce the tick (``bus.spot_tick``)

Orders are kept newest first and capped; persisted under the spot orders
key after every change. Another process writing that key is picked up via
``bus.storage_changed``.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional, Union

from config.settings import SPOT_ORDER_CAP, SPOT_ORDERS_KEY, SPOT_POLL_INTERVAL_SEC, SPOT_SERIES_SIZE
from core.local_storage import LocalStorage
from domain.spot import MarketSnapshot, OrderType, Side, SpotOrder
from services.spot_feed import MockSpotFeed, now_ms
from services.spot_orders import cancel_order, load_orders, place_order, save_orders, split_orders, try_fill_limit_orders
from utils.logger import get_logger
from utils.ring_buffer import RingBuffer
from utils.signal_bus import SignalBus, bus as default_bus

log = get_logger(__name__)

# Series is pre-filled so the chart has a baseline before the first poll.
SERIES_WARMUP_POINTS = 60
SERIES_WARMUP_SPACING_MS = 1000


class SpotSession:
    """
    Usage:
        session = SpotSession(MockSpotFeed(), storage)
        session.poll()
        session.submit(side="buy", type="limit", qty=0.01, price=85000)
        open_orders, history = session.split()
    """

    def __init__(
        self,
        feed: MockSpotFeed,
        storage: LocalStorage,
        bus: Optional[SignalBus] = None,
        order_cap: int = SPOT_ORDER_CAP,
        series_size: int = SPOT_SERIES_SIZE,
        clock: Optional[Callable[[], int]] = None,
        orders_key: str = SPOT_ORDERS_KEY,
    ):
        self.feed = feed
        self.storage = storage
        self.order_cap = order_cap
        self.orders_key = orders_key
        self._bus = bus or default_bus
        self._clock = clock or now_ms
        self._lock = threading.RLock()

        self.orders: list[SpotOrder] = load_orders(storage, orders_key)
        self.snapshot: MarketSnapshot = feed.get_snapshot()

        self.series = RingBuffer(series_size)
        start = self._clock()
        for i in range(SERIES_WARMUP_POINTS):
            self.series.append(start - (SERIES_WARMUP_POINTS - i) * SERIES_WARMUP_SPACING_MS, self.snapshot.ticker.last)

        self._bus.storage_changed.connect(self._on_storage_changed, sender=storage)

    @property
    def last_price(self) -> float:
        return self.snapshot.ticker.last

    # ---- Polling ----
    def poll(self) -> MarketSnapshot:
        snap = self.feed.get_snapshot()
        with self._lock:
            self.snapshot = snap
            self.series.append(snap.ticker.ts, snap.ticker.last)

            prev = self.orders
            filled = try_fill_limit_orders(prev, snap.ticker.last, clock=self._clock)
            changed = any(a is not b for a, b in zip(prev, filled))
            if changed:
                self.orders = filled
                self._persist()

        if changed:
            self._announce_orders()
        self._bus.spot_tick.send(self, snapshot=snap)
        return snap

    def run(
        self,
        ticks: int,
        interval: float = SPOT_POLL_INTERVAL_SEC,
        sleep: Callable[[float], None] = time.sleep,
        on_tick: Optional[Callable[[MarketSnapshot], None]] = None,
    ) -> None:
        """Poll ``ticks`` times, ``interval`` seconds apart."""
        for i in range(ticks):
            if i:
                sleep(interval)
            snap = self.poll()
            if on_tick is not None:
                on_tick(snap)

    # ---- Orders ----
    def submit(
        self,
        *,
        side: Union[Side, str],
        type: Union[OrderType, str],
        qty: float,
        price: Optional[float] = None,
    ) -> SpotOrder:
        with self._lock:
            order = place_order(
                symbol=self.feed.symbol,
                side=side,
                type=type,
                qty=qty,
                price=price,
                last_price=self.last_price,
                clock=self._clock,
            )
            self.orders = [order, *self.orders][: self.order_cap]
            self._persist()
        self._announce_orders()
        return order

    def cancel(self, order_id: str) -> bool:
        """True if an OPEN order was canceled."""
        with self._lock:
            prev = self.orders
            updated = cancel_order(prev, order_id, clock=self._clock)
            changed = any(a is not b for a, b in zip(prev, updated))
            if changed:
                self.orders = updated
                self._persist()
        if changed:
            self._announce_orders()
        return changed

    def split(self) -> tuple[list[SpotOrder], list[SpotOrder]]:
        with self._lock:
            return split_orders(self.orders)

    def price_range(self) -> tuple[float, float]:
        """(low, high) over the retained price series."""
        with self._lock:
            _, values = self.series.get_numpy_arrays()
        return float(values.min()), float(values.max())

    def reset_24h(self) -> None:
        self.feed.reset_24h_anchor()

    # ---- Internals ----
    def _persist(self) -> None:
        if not save_orders(self.storage, self.orders, self.orders_key):
            log.warning("spot.orders_not_persisted", count=len(self.orders))

    def _announce_orders(self) -> None:
        with self._lock:
            orders = list(self.orders)
        self._bus.spot_orders_changed.send(self, orders=orders)

    def _on_storage_changed(self, sender, key: str = "", **kwargs) -> None:
        if key != self.orders_key:
            return
        with self._lock:
            self.orders = load_orders(self.storage, self.orders_key)
        log.info("spot.orders_reloaded", count=len(self.orders))
        self._announce_orders()
