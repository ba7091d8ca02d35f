"""ETF / future pair-trading auto-trader: strategy entry point.

Plugs the pair_engine core into an exchange-connectivity framework.  The
framework owns sessions, book building and order routing; it calls one
handler per event and receives insert / cancel / hedge requests through an
`ExecutionGateway`.

Flow per event:
  - order book   → refresh the instrument's mid; on ETF books run the
                   signal engine and apply its cancel/open decisions
  - order filled → move the position and hedge the fill on the future
  - order status → retire orders with zero remaining volume
  - error        → treated as a terminal status for that order id

Usage (offline replay of recorded snapshots):
    python autotrader.py replay snapshots.csv --policy bollinger --out commands.csv
"""

import argparse
import logging
import sys
from dataclasses import replace
from typing import Optional, Sequence

from pair_engine import (
    Action,
    CommandEmitter,
    Decision,
    EngineConfig,
    ExecutionGateway,
    HedgeCoordinator,
    Instrument,
    Lifespan,
    MidPriceTracker,
    PositionLedger,
    Side,
    SignalEngine,
)

log = logging.getLogger("autotrader")


class AutoTrader:
    """Pair-trading strategy bound to one execution gateway.

    All state lives on the instance, so independent traders (e.g. one per
    test) never share order ids, extremes or ratio history.
    """

    def __init__(self, gateway: ExecutionGateway, config: Optional[EngineConfig] = None) -> None:
        self.config = config or EngineConfig.from_env()
        self.tracker = MidPriceTracker(self.config.tick_size)
        self.engine = SignalEngine(self.config, self.tracker)
        self.ledger = PositionLedger()
        self.emitter = CommandEmitter(gateway)
        self.hedger = HedgeCoordinator(self.emitter, self.config.tick_size)
        self.decisions: list[Decision] = []

    @property
    def position(self) -> int:
        return self.ledger.position

    # ── Framework callbacks ────────────────────────────────────────────────

    def on_disconnect(self) -> None:
        try:
            log.info("execution connection lost")
        except Exception:
            log.exception("disconnect handler error")

    def on_error(self, client_order_id: int, error_message: str) -> None:
        """A rejected or failed order is retired as if it reported zero remaining."""
        try:
            log.warning("error with order %d: %s", client_order_id, error_message)
            if client_order_id != 0:
                self.on_order_status(client_order_id, 0, 0, 0)
        except Exception:
            log.exception("error handler failed for order %r", client_order_id)

    def on_hedge_filled(self, client_order_id: int, price: int, volume: int) -> None:
        try:
            log.info(
                "hedge order %d filled for %d lots at $%d average price in cents",
                client_order_id, volume, price,
            )
        except Exception:
            log.exception("hedge fill handler error for order %r", client_order_id)

    def on_order_book(
        self,
        instrument: Instrument,
        sequence_number: int,
        ask_prices: Sequence[int],
        ask_volumes: Sequence[int],
        bid_prices: Sequence[int],
        bid_volumes: Sequence[int],
    ) -> None:
        """Refresh the mid and, for ETF books, run one signal pass."""
        try:
            log.info(
                "order book received for %s instrument: ask prices: %d; ask volumes: %d; "
                "bid prices: %d; bid volumes: %d",
                Instrument(instrument).name, ask_prices[0], ask_volumes[0],
                bid_prices[0], bid_volumes[0],
            )
            self.tracker.update_mid(instrument, bid_prices[0], ask_prices[0])

            if instrument != Instrument.ETF:
                return

            decisions = self.engine.evaluate(bid_prices[0], ask_prices[0], self.ledger)
            if self.tracker.ready():
                log.info("ratio: %.6f", self.engine.last_ratio)
            for decision in decisions:
                self._apply(decision)
        except Exception:
            log.exception("order book handler error (sequence %d)", sequence_number)

    def on_order_filled(self, client_order_id: int, price: int, volume: int) -> None:
        try:
            log.info("order %d filled for %d lots at $%d cents", client_order_id, volume, price)
            hedge_side = self.ledger.apply_fill(client_order_id, volume)
            if hedge_side is not None:
                self.hedger.hedge(hedge_side, volume)
                log.info("position now %+d", self.ledger.position)
        except Exception:
            log.exception("fill handler error for order %d", client_order_id)

    def on_order_status(
        self,
        client_order_id: int,
        fill_volume: int,
        remaining_volume: int,
        fees: int,
    ) -> None:
        try:
            log.info(
                "order %d was updated. filled: %d remaining: %d fees: %d",
                client_order_id, fill_volume, remaining_volume, fees,
            )
            self.ledger.apply_status(client_order_id, remaining_volume)
        except Exception:
            log.exception("status handler error for order %d", client_order_id)

    def on_trade_ticks(
        self,
        instrument: Instrument,
        sequence_number: int,
        ask_prices: Sequence[int],
        ask_volumes: Sequence[int],
        bid_prices: Sequence[int],
        bid_volumes: Sequence[int],
    ) -> None:
        try:
            log.info(
                "trade ticks received for %s instrument: ask prices: %d; ask volumes: %d; "
                "bid prices: %d; bid volumes: %d",
                Instrument(instrument).name, ask_prices[0], ask_volumes[0],
                bid_prices[0], bid_volumes[0],
            )
        except Exception:
            log.exception("trade ticks handler error (sequence %r)", sequence_number)

    # ── Decision application ───────────────────────────────────────────────

    def _apply(self, decision: Decision) -> None:
        self.decisions.append(decision)

        if decision.action is Action.CANCEL_ASK or decision.action is Action.CANCEL_BID:
            self.emitter.cancel_order(decision.order_id)
            self.ledger.clear_active(decision.side)
            return

        order_id = self.emitter.insert_order(
            decision.side, decision.price, decision.volume, Lifespan.GOOD_FOR_DAY,
        )
        self.ledger.record_open(decision.side, order_id, decision.volume)
        log.info(
            "%s %d lots at %d (ratio %.6f, position %+d)",
            "buy" if decision.side is Side.BUY else "sell",
            decision.volume, decision.price, decision.ratio, self.ledger.position,
        )


# ── Entry point ───────────────────────────────────────────────────────────────

def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="ETF / future pair-trading auto-trader.")
    sub = parser.add_subparsers(dest="command", required=True)

    rp = sub.add_parser("replay", help="Replay recorded book snapshots through a paper gateway.")
    rp.add_argument("csv", help="Snapshot CSV: time,instrument,bid_price,bid_volume,ask_price,ask_volume")
    rp.add_argument(
        "--policy",
        choices=("static", "extrema", "bollinger"),
        default=None,
        help="Sizing policy (defaults to PAIR_SIZING_POLICY or bollinger).",
    )
    rp.add_argument("--out", default=None, help="Write the emitted commands to this CSV.")
    rp.add_argument("--plot", default=None, help="Save a ratio/band chart to this PNG.")
    rp.add_argument("-v", "--verbose", action="store_true", help="Log every event.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    from replay import load_snapshots, run_replay

    config = EngineConfig.from_env()
    if args.policy:
        config = replace(config, sizing_policy=args.policy)

    try:
        snapshots = load_snapshots(args.csv)
    except (OSError, ValueError) as err:
        print(f"ERROR: {err}", file=sys.stderr)
        return 1

    result = run_replay(snapshots, config)
    commands = result.commands

    print(f"policy:          {config.sizing_policy}")
    print(f"snapshots:       {len(snapshots)}")
    print(f"inserts:         {int((commands['kind'] == 'insert').sum()) if len(commands) else 0}")
    print(f"cancels:         {int((commands['kind'] == 'cancel').sum()) if len(commands) else 0}")
    print(f"hedges:          {int((commands['kind'] == 'hedge').sum()) if len(commands) else 0}")
    print(f"final position:  {result.trader.position:+d}")

    if args.out:
        commands.to_csv(args.out, index=False)
        print(f"commands written to {args.out}")
    if args.plot:
        from plot_signals import plot_replay
        plot_replay(result, args.plot)
        print(f"chart written to {args.plot}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
