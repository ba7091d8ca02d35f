"""Value types shared by the pair-trading core.

Prices are integers in cents, volumes are whole lots.  Order id 0 is
reserved: it means "no order" in the ledger and "not order specific" in
framework error callbacks.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional

# Exchange price extremes.  Hedge orders are sent at these so they always cross.
MINIMUM_BID = 1
MAXIMUM_ASK = 2 ** 31 - 1

# Depth of the book snapshots the framework delivers (only level 0 is used).
TOP_LEVEL_COUNT = 5


class Instrument(IntEnum):
    FUTURE = 0
    ETF = 1


class Side(IntEnum):
    SELL = 0
    BUY = 1

    @property
    def opposite(self) -> "Side":
        return Side.BUY if self is Side.SELL else Side.SELL


class Lifespan(IntEnum):
    FILL_AND_KILL = 0
    GOOD_FOR_DAY = 1


class Action(str, Enum):
    OPEN_BUY = "OPEN_BUY"
    OPEN_SELL = "OPEN_SELL"
    CANCEL_BID = "CANCEL_BID"
    CANCEL_ASK = "CANCEL_ASK"


@dataclass(frozen=True)
class Decision:
    """One instruction produced by the signal engine for a single ETF tick.

    For opens, `price` is the ETF price to trade at and `volume` is already
    clamped to the position limit.  For cancels, `order_id` is the resting
    order being withdrawn.
    """
    action:   Action
    ratio:    float
    price:    int = 0
    volume:   int = 0
    order_id: int = 0

    @property
    def side(self) -> Side:
        if self.action in (Action.OPEN_BUY, Action.CANCEL_BID):
            return Side.BUY
        return Side.SELL


@dataclass(frozen=True)
class Command:
    """Record of a request sent to the execution framework."""
    kind:       str                  # "insert", "cancel" or "hedge"
    order_id:   int
    side:       Optional[Side] = None
    price:      int = 0
    volume:     int = 0
    lifespan:   Optional[Lifespan] = None
