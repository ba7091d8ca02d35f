"""Latest tick-aligned mid price per instrument."""

import logging

from .models import Instrument

log = logging.getLogger(__name__)


class MidPriceTracker:
    """Keeps one mid price per instrument, updated from the top of book.

    A mid of 0 means "never seen a two-sided book".  An update with an empty
    side (price 0) leaves the previous mid in place so the ratio downstream
    never divides by zero.
    """

    def __init__(self, tick_size: int = 100):
        self.tick_size = int(tick_size)
        self._mids: dict[Instrument, int] = {
            Instrument.FUTURE: 0,
            Instrument.ETF: 0,
        }

    def update_mid(self, instrument: Instrument, best_bid: int, best_ask: int) -> int:
        """Recompute the mid for one instrument and return the stored value.

        Off-tick mids are moved up to the next tick (biased toward the ask).
        """
        if best_bid == 0 or best_ask == 0:
            return self._mids[instrument]

        mid = (int(best_bid) + int(best_ask)) // 2
        remainder = mid % self.tick_size
        if remainder != 0:
            mid += self.tick_size - remainder

        self._mids[instrument] = mid
        return mid

    def mid(self, instrument: Instrument) -> int:
        return self._mids[instrument]

    @property
    def etf_mid(self) -> int:
        return self._mids[Instrument.ETF]

    @property
    def future_mid(self) -> int:
        return self._mids[Instrument.FUTURE]

    def ready(self) -> bool:
        """True once both instruments have a usable mid."""
        return self.etf_mid > 0 and self.future_mid > 0

    def ratio(self) -> float:
        """ETF mid / future mid, or NaN while either mid is unknown."""
        if not self.ready():
            return float("nan")
        return self.etf_mid / self.future_mid
