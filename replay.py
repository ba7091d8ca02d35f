"""Offline replay of recorded top-of-book snapshots.

Feeds a CSV of snapshots through an AutoTrader wired to a PaperGateway, a
minimal stand-in for the exchange:

  - An ETF insert that crosses the latest ETF book fills immediately and
    completely at the touch (buy at the best ask, sell at the best bid),
    followed by a zero-remaining status.
  - A non-crossing insert rests until a later snapshot crosses it, or until
    it is cancelled (reported as a zero-remaining status).
  - Hedge orders are acknowledged with a hedge fill at the future's touch.

Exchange responses are queued and delivered after the handler that caused
them returns, one at a time and in order, like the live framework does.
Replays are therefore deterministic.

CSV columns:
    time, instrument, bid_price, bid_volume, ask_price, ask_volume
`instrument` is "ETF" / "FUTURE" (or 1 / 0).  Prices are integer cents.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd

from autotrader import AutoTrader
from pair_engine import EngineConfig, Instrument, Lifespan, Side, TOP_LEVEL_COUNT

log = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("time", "instrument", "bid_price", "bid_volume", "ask_price", "ask_volume")

_INSTRUMENT_NAMES = {"ETF": Instrument.ETF, "FUTURE": Instrument.FUTURE}


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------

def _parse_instrument(value) -> int:
    if isinstance(value, str):
        key = value.strip().upper()
        if key in _INSTRUMENT_NAMES:
            return int(_INSTRUMENT_NAMES[key])
        return int(Instrument(int(key)))
    return int(Instrument(int(value)))


def load_snapshots(path) -> pd.DataFrame:
    """Read and normalise a snapshot CSV.

    Raises:
        ValueError: if a required column is missing or an instrument is unknown.
    """
    df = pd.read_csv(path)
    return normalise_snapshots(df)


def normalise_snapshots(df: pd.DataFrame) -> pd.DataFrame:
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"snapshot data missing columns: {', '.join(missing)}")

    out = df.loc[:, list(REQUIRED_COLUMNS)].copy()
    out["instrument"] = out["instrument"].map(_parse_instrument)
    for col in ("bid_price", "bid_volume", "ask_price", "ask_volume"):
        out[col] = out[col].fillna(0).astype(np.int64)
    # Stable sort keeps the recorded order for equal timestamps
    out = out.sort_values("time", kind="mergesort").reset_index(drop=True)
    return out


# ---------------------------------------------------------------------------
# Paper exchange
# ---------------------------------------------------------------------------

@dataclass
class _RestingOrder:
    side:   Side
    price:  int
    volume: int


class PaperGateway:
    """ExecutionGateway that simulates immediate fills against the last book."""

    def __init__(self) -> None:
        self._books: dict[int, tuple[int, int]] = {}   # instrument -> (best bid, best ask)
        self._resting: dict[int, _RestingOrder] = {}
        self._events: deque[tuple[str, tuple]] = deque()

    # ── Market side ────────────────────────────────────────────────────────

    def update_book(self, instrument: int, best_bid: int, best_ask: int) -> None:
        self._books[int(instrument)] = (int(best_bid), int(best_ask))
        if instrument == Instrument.ETF:
            for order_id in sorted(self._resting):
                self._try_fill(order_id)

    def _crosses(self, side: Side, price: int) -> Optional[int]:
        bid, ask = self._books.get(Instrument.ETF, (0, 0))
        if side is Side.BUY and ask > 0 and price >= ask:
            return ask
        if side is Side.SELL and bid > 0 and price <= bid:
            return bid
        return None

    def _try_fill(self, order_id: int) -> None:
        order = self._resting[order_id]
        fill_price = self._crosses(order.side, order.price)
        if fill_price is None:
            return
        del self._resting[order_id]
        self._events.append(("on_order_filled", (order_id, fill_price, order.volume)))
        self._events.append(("on_order_status", (order_id, order.volume, 0, 0)))

    # ── Gateway interface ──────────────────────────────────────────────────

    def send_insert_order(self, client_order_id: int, side: Side, price: int,
                          volume: int, lifespan: Lifespan) -> None:
        if volume <= 0:
            self._events.append(("on_error", (client_order_id, "invalid order volume")))
            return
        self._resting[client_order_id] = _RestingOrder(side, int(price), int(volume))
        self._try_fill(client_order_id)
        if lifespan is Lifespan.FILL_AND_KILL and client_order_id in self._resting:
            order = self._resting.pop(client_order_id)
            self._events.append(("on_order_status", (client_order_id, 0, 0, 0)))
            log.debug("fill-and-kill order %d expired unfilled (%d lots)", client_order_id, order.volume)

    def send_cancel_order(self, client_order_id: int) -> None:
        if self._resting.pop(client_order_id, None) is not None:
            self._events.append(("on_order_status", (client_order_id, 0, 0, 0)))

    def send_hedge_order(self, client_order_id: int, side: Side, price: int,
                         volume: int) -> None:
        bid, ask = self._books.get(Instrument.FUTURE, (0, 0))
        fill_price = ask if side is Side.BUY else bid
        if fill_price == 0:
            self._events.append(("on_error", (client_order_id, "no liquidity for hedge")))
            return
        self._events.append(("on_hedge_filled", (client_order_id, fill_price, volume)))

    # ── Delivery ───────────────────────────────────────────────────────────

    def deliver(self, trader: AutoTrader) -> int:
        """Hand queued responses to the trader in order; returns how many."""
        delivered = 0
        while self._events:
            handler, args = self._events.popleft()
            getattr(trader, handler)(*args)
            delivered += 1
        return delivered

    @property
    def resting_orders(self) -> dict[int, _RestingOrder]:
        return dict(self._resting)


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

@dataclass
class ReplayResult:
    trader:   AutoTrader
    commands: pd.DataFrame
    ticks:    pd.DataFrame


def _levels(top: int) -> list[int]:
    return [int(top)] + [0] * (TOP_LEVEL_COUNT - 1)


def run_replay(snapshots: pd.DataFrame, config: Optional[EngineConfig] = None) -> ReplayResult:
    """Drive a fresh AutoTrader through every snapshot in order.

    Returns the trader plus two frames:
      commands  one row per emitted command, tagged with the snapshot time,
                the ratio and the position when it was sent
      ticks     one row per ETF snapshot once both mids are known, with the
                mids, ratio, position and sizing-policy state
    """
    snapshots = normalise_snapshots(snapshots)
    gateway = PaperGateway()
    trader = AutoTrader(gateway, config or EngineConfig())

    command_rows: list[dict] = []
    tick_rows: list[dict] = []
    seen = 0

    for seq, row in enumerate(snapshots.itertuples(index=False), start=1):
        instrument = int(row.instrument)
        gateway.update_book(instrument, row.bid_price, row.ask_price)
        gateway.deliver(trader)

        trader.on_order_book(
            Instrument(instrument), seq,
            _levels(row.ask_price), _levels(row.ask_volume),
            _levels(row.bid_price), _levels(row.bid_volume),
        )
        gateway.deliver(trader)

        ratio = trader.engine.last_ratio
        history = trader.emitter.history
        for cmd in history[seen:]:
            command_rows.append({
                "time":     row.time,
                "kind":     cmd.kind,
                "order_id": cmd.order_id,
                "side":     cmd.side.name if cmd.side is not None else "",
                "price":    cmd.price,
                "volume":   cmd.volume,
                "ratio":    ratio,
                "position": trader.position,
            })
        seen = len(history)

        if instrument == Instrument.ETF and trader.tracker.ready():
            tick_rows.append({
                "time":       row.time,
                "etf_mid":    trader.tracker.etf_mid,
                "future_mid": trader.tracker.future_mid,
                "ratio":      ratio,
                "position":   trader.position,
                **trader.engine.policy.state(),
            })

    commands = pd.DataFrame(
        command_rows,
        columns=["time", "kind", "order_id", "side", "price", "volume", "ratio", "position"],
    )
    ticks = pd.DataFrame(tick_rows)
    log.info(
        "replayed %d snapshots: %d commands, final position %+d",
        len(snapshots), len(commands), trader.position,
    )
    return ReplayResult(trader=trader, commands=commands, ticks=ticks)
