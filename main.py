#!/usr/bin/env python3
"""
main.py

Command line front end for the CRM console.

Usage:
    crm-console login --username carl --password secret
    crm-console whoami
    crm-console route /employees
    crm-console list orders
    crm-console list news --status PUBLISHED
    crm-console dashboard
    crm-console spot --ticks 5 --seed 7
    crm-console spot-order --side buy --type limit --qty 0.01 --price 85000
    crm-console spot-orders
    crm-console logout
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Optional, Sequence

import numpy as np

from core.app_context import AppContext, get_app_context
from core.errors import ApiError, AuthenticationError, NetworkError
from core.route_guards import resolve_route
from domain.spot import MarketSnapshot, SpotOrder
from services.crm_store import COLLECTIONS
from services.spot_feed import MockSpotFeed
from services.spot_session import SpotSession

LISTABLE = (*COLLECTIONS, "news", "banners", "articles")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="crm-console",
        description="CRM console: session, backend collections and the spot simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s login --username carl --password secret
  %(prog)s list banners --status ONLINE --name spring
  %(prog)s spot --ticks 10 --seed 1
        """,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("login", help="Log in and store the session")
    p.add_argument("--username", "-u", required=True)
    p.add_argument("--password", "-p", required=True)

    sub.add_parser("logout", help="Clear the stored session")
    sub.add_parser("whoami", help="Show the current identity")

    p = sub.add_parser("route", help="Show where a navigation to PATH ends up")
    p.add_argument("path")

    p = sub.add_parser("list", help="List a collection")
    p.add_argument("collection", choices=LISTABLE)
    p.add_argument("--status", help="news/banners status filter")
    p.add_argument("--position", help="banners position filter")
    p.add_argument("--name", help="banners name filter (substring)")

    sub.add_parser("dashboard", help="Fetch all collections and print the summary")

    p = sub.add_parser("spot", help="Run the spot feed for a few ticks")
    p.add_argument("--ticks", type=int, default=5)
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--interval", type=float, default=0.0, help="seconds between ticks (default: 0)")

    p = sub.add_parser("spot-order", help="Place a simulated order")
    p.add_argument("--side", choices=["buy", "sell"], required=True)
    p.add_argument("--type", choices=["market", "limit"], required=True)
    p.add_argument("--qty", type=float, required=True)
    p.add_argument("--price", type=float, default=None, help="limit price")
    p.add_argument("--seed", type=int, default=None)

    p = sub.add_parser("spot-cancel", help="Cancel an open simulated order")
    p.add_argument("order_id")

    sub.add_parser("spot-orders", help="Show open orders and history")
    return parser


# ---- Output helpers ----
def _print_json(value) -> None:
    print(json.dumps(value, indent=2, ensure_ascii=False))


def _fmt_tick(snap: MarketSnapshot) -> str:
    t = snap.ticker
    best_bid = snap.order_book.bids[0].price if snap.order_book.bids else "-"
    best_ask = snap.order_book.asks[0].price if snap.order_book.asks else "-"
    return (
        f"{t.symbol} last={t.last:.2f} chg={t.change_24h_pct:+.2f}% "
        f"hi={t.high_24h:.2f} lo={t.low_24h:.2f} vol={t.vol_24h:.4f} bid={best_bid} ask={best_ask}"
    )


def _fmt_order(o: SpotOrder) -> str:
    price = f"{o.price:.2f}" if o.price is not None else "mkt"
    avg = f"{o.avg_price:.2f}" if o.avg_price is not None else "-"
    return f"{o.id} {o.side.value:<4} {o.type.value:<6} qty={o.qty} px={price} status={o.status.value} avg={avg}"


def _spot_session(ctx: AppContext, seed: Optional[int] = None) -> SpotSession:
    rng = np.random.default_rng(seed)
    return SpotSession(MockSpotFeed(rng=rng), ctx.storage, bus=ctx.bus)


# ---- Commands ----
def cmd_login(ctx: AppContext, args) -> int:
    session = ctx.auth.login(args.username, args.password)
    print(f"[OK] Logged in as {session.user.username if session.user else '-'}")
    return 0


def cmd_logout(ctx: AppContext, args) -> int:
    ctx.auth.logout()
    print("[OK] Logged out")
    return 0


def cmd_whoami(ctx: AppContext, args) -> int:
    if not ctx.session.is_authenticated():
        print("Not logged in")
        return 1
    print(f"user:  {ctx.session.get_display_name()}")
    print(f"role:  {ctx.session.get_role() or '-'}")
    print(f"admin: {'yes' if ctx.session.is_admin() else 'no'}")
    return 0


def cmd_route(ctx: AppContext, args) -> int:
    print(resolve_route(ctx.session, args.path))
    return 0


def cmd_list(ctx: AppContext, args) -> int:
    name = args.collection
    if name == "articles":
        items = ctx.articles.list()
    elif name == "news":
        items = ctx.api.news.list(status=args.status)
    elif name == "banners":
        items = ctx.api.banners.list(status=args.status, position=args.position, name=args.name)
    else:
        items = ctx.api.resource(name).list()
    _print_json([i.to_wire() for i in items])
    return 0


def cmd_dashboard(ctx: AppContext, args) -> int:
    results = ctx.crm.refresh()
    failed = sorted(k for k, ok in results.items() if not ok)
    s = ctx.crm.summary()
    print(f"Customers:        {s.customer_count}")
    print(f"Orders:           {s.order_count}")
    print(f"Order amount:     {s.total_order_amount:,.2f}")
    print(f"Pending invoices: {s.pending_invoices:,.2f}")
    print(f"Done payments:    {s.done_payments:,.2f}")
    if failed:
        print(f"[WARN] Showing cached data for: {', '.join(failed)}")
    return 0


def cmd_spot(ctx: AppContext, args) -> int:
    session = _spot_session(ctx, args.seed)
    session.run(args.ticks, interval=args.interval, on_tick=lambda snap: print(_fmt_tick(snap)))
    low, high = session.price_range()
    print(f"[INFO] series {len(session.series)} pts ({session.series.total_added} seen), range {low:,.2f} - {high:,.2f}")
    open_orders, _ = session.split()
    print(f"[INFO] {len(open_orders)} open order(s)")
    return 0


def cmd_spot_order(ctx: AppContext, args) -> int:
    if args.type == "limit" and not args.price:
        print("[ERROR] --price is required for limit orders", file=sys.stderr)
        return 1
    session = _spot_session(ctx, args.seed)
    order = session.submit(side=args.side, type=args.type, qty=args.qty, price=args.price)
    print(_fmt_order(order))
    return 0


def cmd_spot_cancel(ctx: AppContext, args) -> int:
    session = _spot_session(ctx)
    if not session.cancel(args.order_id):
        print(f"[WARN] No open order {args.order_id}")
        return 1
    print(f"[OK] Canceled {args.order_id}")
    return 0


def cmd_spot_orders(ctx: AppContext, args) -> int:
    session = _spot_session(ctx)
    open_orders, history = session.split()
    print(f"Open ({len(open_orders)}):")
    for o in open_orders:
        print("  " + _fmt_order(o))
    print(f"History ({len(history)}):")
    for o in history:
        print("  " + _fmt_order(o))
    return 0


COMMANDS = {
    "login": cmd_login,
    "logout": cmd_logout,
    "whoami": cmd_whoami,
    "route": cmd_route,
    "list": cmd_list,
    "dashboard": cmd_dashboard,
    "spot": cmd_spot,
    "spot-order": cmd_spot_order,
    "spot-cancel": cmd_spot_cancel,
    "spot-orders": cmd_spot_orders,
}


def main(argv: Optional[Sequence[str]] = None, ctx: Optional[AppContext] = None) -> int:
    args = build_parser().parse_args(argv)
    ctx = ctx or get_app_context()

    try:
        return COMMANDS[args.command](ctx, args)
    except ApiError as e:
        print(f"[ERROR] {e} {e.body if e.body is not None else ''}".rstrip(), file=sys.stderr)
        return 1
    except (NetworkError, AuthenticationError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
