"""
services/spot_orders.py

Simulated order book-keeping for the spot widget.

``place_order``, ``try_fill_limit_orders`` and ``cancel_order`` are pure:
they take an order list and return a new one, never touching storage.
Orders that do not change are returned as the same objects, so callers can
detect "nothing happened" with an identity check. Persisting afterwards is
the caller's job (``save_orders``).

Fill rules (full fills only, no priority between orders):
    market              -> FILLED at placement, avg price = last price
    limit buy  @ P      -> FILLED on a tick with last <= P
    limit sell @ P      -> FILLED on a tick with last >= P
"""

from __future__ import annotations

import time
import uuid
from typing import Callable, Iterable, Optional, Union

from pydantic import ValidationError

from config.settings import SPOT_ORDERS_KEY
from core.local_storage import LocalStorage
from domain.spot import OrderType, Side, SpotOrder, SpotOrderStatus
from utils.logger import get_logger

log = get_logger(__name__)

Clock = Callable[[], int]


def _now_ms() -> int:
    return int(time.time() * 1000)


def new_order_id(ts: int) -> str:
    return f"o_{uuid.uuid4().hex[:12]}_{ts}"


def place_order(
    *,
    symbol: str,
    side: Union[Side, str],
    type: Union[OrderType, str],
    qty: float,
    last_price: float,
    price: Optional[float] = None,
    clock: Optional[Clock] = None,
) -> SpotOrder:
    """Create an order; market orders come back FILLED at ``last_price``."""
    now = (clock or _now_ms)()
    order_type = OrderType(type)

    if order_type == OrderType.MARKET:
        order = SpotOrder(
            id=new_order_id(now),
            symbol=symbol,
            side=Side(side),
            type=order_type,
            qty=qty,
            status=SpotOrderStatus.FILLED,
            filled_qty=qty,
            avg_price=last_price,
            created_at=now,
            updated_at=now,
        )
    else:
        order = SpotOrder(
            id=new_order_id(now),
            symbol=symbol,
            side=Side(side),
            type=order_type,
            price=price,
            qty=qty,
            created_at=now,
            updated_at=now,
        )

    log.info("spot.order_placed", id=order.id, side=order.side.value, type=order.type.value, status=order.status.value)
    return order


def _crosses(order: SpotOrder, last_price: float) -> bool:
    if order.side == Side.BUY:
        return last_price <= order.price
    return last_price >= order.price


def try_fill_limit_orders(
    orders: Iterable[SpotOrder], last_price: float, clock: Optional[Clock] = None
) -> list[SpotOrder]:
    """Fill every OPEN limit order whose limit the price has crossed."""
    now: Optional[int] = None
    result: list[SpotOrder] = []

    for order in orders:
        if not order.is_open or order.type != OrderType.LIMIT or not order.price:
            result.append(order)
            continue
        if not _crosses(order, last_price):
            result.append(order)
            continue

        if now is None:
            now = (clock or _now_ms)()
        result.append(
            order.model_copy(
                update={
                    "status": SpotOrderStatus.FILLED,
                    "filled_qty": order.qty,
                    "avg_price": last_price,
                    "updated_at": now,
                }
            )
        )
        log.info("spot.limit_filled", id=order.id, price=last_price)

    return result


def cancel_order(orders: Iterable[SpotOrder], order_id: str, clock: Optional[Clock] = None) -> list[SpotOrder]:
    """Cancel the matching OPEN order; terminal or unknown ids are a no-op."""
    now = (clock or _now_ms)()
    result: list[SpotOrder] = []
    for order in orders:
        if order.id == order_id and order.is_open:
            result.append(order.model_copy(update={"status": SpotOrderStatus.CANCELED, "updated_at": now}))
            log.info("spot.order_canceled", id=order_id)
        else:
            result.append(order)
    return result


def split_orders(orders: Iterable[SpotOrder]) -> tuple[list[SpotOrder], list[SpotOrder]]:
    """-> (open, history)"""
    open_orders: list[SpotOrder] = []
    history: list[SpotOrder] = []
    for order in orders:
        (open_orders if order.is_open else history).append(order)
    return open_orders, history


# ---- Persistence ----
def load_orders(storage: LocalStorage, key: str = SPOT_ORDERS_KEY) -> list[SpotOrder]:
    """Stored orders; anything unreadable degrades to ``[]``."""
    raw = storage.load_json(key, [])
    if not isinstance(raw, list):
        log.warning("spot.orders_corrupt", key=key)
        return []
    try:
        return [SpotOrder.model_validate(entry) for entry in raw]
    except ValidationError as e:
        log.warning("spot.orders_invalid", key=key, errors=e.error_count())
        return []


def save_orders(storage: LocalStorage, orders: Iterable[SpotOrder], key: str = SPOT_ORDERS_KEY) -> bool:
    return storage.save_json(key, [o.to_wire() for o in orders])
