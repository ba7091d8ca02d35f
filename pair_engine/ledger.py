"""Position & order ledger.

Authoritative book-keeping for the ETF leg:

  - `position`: net signed inventory, moved only by fills.
  - `active_bid_id` / `active_ask_id`: the single resting order per side
    (0 = none).  Cleared either when the strategy decides to cancel or when
    the order reaches a terminal status.
  - `bids` / `asks`: every live order id this engine originated, split by
    side.  Fills are routed through these sets, so an id stays here after a
    cancel decision until the exchange confirms zero remaining volume (a
    fill can still arrive in between).
  - `remaining`: unfilled volume of every live order.  A cancelled order
    that has not been acknowledged still counts, so new opens are sized
    against position plus everything that could still fill.

Nothing here raises.  Unknown or duplicate ids are no-ops; a missed clean-up
is repaired by the next terminal status for the same id.
"""

import logging
from typing import Optional

from .models import Side

log = logging.getLogger(__name__)


class PositionLedger:

    def __init__(self) -> None:
        self.position: int = 0
        self.active_bid_id: int = 0
        self.active_ask_id: int = 0
        self.bids: set[int] = set()
        self.asks: set[int] = set()
        self.remaining: dict[int, int] = {}

    def record_open(self, side: Side, order_id: int, volume: int = 0) -> None:
        """Register a newly inserted order as the resting order for `side`.

        The caller guarantees the slot is empty (the signal engine only opens
        on a free side).
        """
        if side is Side.BUY:
            self.active_bid_id = order_id
            self.bids.add(order_id)
        else:
            self.active_ask_id = order_id
            self.asks.add(order_id)
        self.remaining[order_id] = max(0, int(volume))

    def clear_active(self, side: Side) -> int:
        """Drop the resting slot for `side` after a cancel decision.

        The id stays in its tracking set until a terminal status arrives.
        Returns the id that was cleared (0 if the slot was already empty).
        """
        if side is Side.BUY:
            order_id, self.active_bid_id = self.active_bid_id, 0
        else:
            order_id, self.active_ask_id = self.active_ask_id, 0
        return order_id

    def side_of(self, order_id: int) -> Optional[Side]:
        if order_id in self.asks:
            return Side.SELL
        if order_id in self.bids:
            return Side.BUY
        return None

    @property
    def outstanding_bid_volume(self) -> int:
        """Unfilled volume on live bids, including cancels not yet confirmed."""
        return sum(self.remaining.get(i, 0) for i in self.bids)

    @property
    def outstanding_ask_volume(self) -> int:
        return sum(self.remaining.get(i, 0) for i in self.asks)

    def apply_fill(self, order_id: int, volume: int) -> Optional[Side]:
        """Move the position for a fill on one of our orders.

        Returns the side that needs hedging on the future (the inverse of the
        side that filled), or None if the id is not ours.
        """
        side = self.side_of(order_id)
        if side is None:
            log.debug("fill for unknown order %d ignored", order_id)
            return None

        if side is Side.SELL:
            self.position -= int(volume)
        else:
            self.position += int(volume)
        if order_id in self.remaining:
            self.remaining[order_id] = max(0, self.remaining[order_id] - int(volume))
        return side.opposite

    def apply_status(self, order_id: int, remaining_volume: int) -> bool:
        """Retire an order once it reports zero remaining volume.

        Returns True if the update was terminal.  A partial update only
        refreshes the order's unfilled volume.
        """
        if remaining_volume != 0:
            if order_id in self.remaining:
                self.remaining[order_id] = int(remaining_volume)
            return False

        if order_id == self.active_ask_id:
            self.active_ask_id = 0
        elif order_id == self.active_bid_id:
            self.active_bid_id = 0

        self.asks.discard(order_id)
        self.bids.discard(order_id)
        self.remaining.pop(order_id, None)
        return True

    def snapshot(self) -> dict:
        return {
            "position": self.position,
            "active_bid_id": self.active_bid_id,
            "active_ask_id": self.active_ask_id,
            "bids": sorted(self.bids),
            "asks": sorted(self.asks),
        }
