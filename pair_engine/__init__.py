"""ETF / future pair-trading core.

Consumes top-of-book snapshots for the two instruments, computes the
ETF/future mid ratio, and decides when to open, hold or cancel a single
resting bid and ask on the ETF.  Every ETF fill is hedged on the future.

Quick start:
    from pair_engine import EngineConfig, Instrument, MidPriceTracker, SignalEngine, PositionLedger

    config  = EngineConfig.from_env()
    tracker = MidPriceTracker(config.tick_size)
    engine  = SignalEngine(config, tracker)
    ledger  = PositionLedger()

    tracker.update_mid(Instrument.FUTURE, 9900, 10100)
    tracker.update_mid(Instrument.ETF, 9800, 9900)
    decisions = engine.evaluate(9800, 9900, ledger)
"""

from .config import EngineConfig
from .models import (
    Action,
    Command,
    Decision,
    Instrument,
    Lifespan,
    Side,
    MAXIMUM_ASK,
    MINIMUM_BID,
    TOP_LEVEL_COUNT,
)
from .mid_price import MidPriceTracker
from .ledger import PositionLedger
from .commands import CommandEmitter, ExecutionGateway
from .hedge import HedgeCoordinator
from .signal_engine import (
    RatioSeries,
    SizingPolicy,
    StaticSizing,
    DecayingExtremaSizing,
    BollingerSizing,
    SignalEngine,
    make_sizing_policy,
)

__all__ = [
    "EngineConfig",
    "Action",
    "Command",
    "Decision",
    "Instrument",
    "Lifespan",
    "Side",
    "MAXIMUM_ASK",
    "MINIMUM_BID",
    "TOP_LEVEL_COUNT",
    "MidPriceTracker",
    "PositionLedger",
    "CommandEmitter",
    "ExecutionGateway",
    "HedgeCoordinator",
    "RatioSeries",
    "SizingPolicy",
    "StaticSizing",
    "DecayingExtremaSizing",
    "BollingerSizing",
    "SignalEngine",
    "make_sizing_policy",
]
