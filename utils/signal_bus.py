"""
SignalBus - Centralized signal registry for the CRM console

Provides one place for every application signal so the topology stays
visible and tests can swap in a fresh bus.

Usage:
    from utils.signal_bus import bus

    # Connect to signals
    bus.session_changed.connect(handler)

    # Emit signals
    bus.session_changed.send(store, source="local")

Receivers follow the blinker convention: ``handler(sender, **kwargs)``.
"""

from __future__ import annotations

from blinker import Signal


class SignalBus:
    """
    Centralized signal registry.

    Components accept an optional bus; they fall back to the module
    singleton ``bus``.
    """

    def __init__(self):
        # ===== SESSION SIGNALS =====
        # kwargs: source="local" (this process) or "external" (another process)
        self.session_changed = Signal("session_changed")

        # ===== STORAGE SIGNALS =====
        # Raised for keys changed by another process sharing the storage dir
        # kwargs: key
        self.storage_changed = Signal("storage_changed")

        # ===== CRM DATA SIGNALS =====
        # kwargs: collection, count
        self.crm_refreshed = Signal("crm_refreshed")
        # kwargs: collection, error
        self.crm_fetch_failed = Signal("crm_fetch_failed")

        # ===== SPOT SIGNALS =====
        # kwargs: snapshot
        self.spot_tick = Signal("spot_tick")
        # kwargs: orders
        self.spot_orders_changed = Signal("spot_orders_changed")


# Global singleton bus instance
bus = SignalBus()
