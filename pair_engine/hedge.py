"""Hedge coordinator: offsets every ETF fill in the future."""

from .commands import CommandEmitter
from .models import MAXIMUM_ASK, MINIMUM_BID, Side


class HedgeCoordinator:
    """Sends one future order per ETF fill, priced at the edge of the book.

    A buy hedge goes out at MAXIMUM_ASK rounded down to the tick size, a sell
    hedge at MINIMUM_BID, so both cross immediately.  There is no retry: a
    rejected hedge comes back through the framework's error callback.
    """

    def __init__(self, emitter: CommandEmitter, tick_size: int = 100):
        self.emitter = emitter
        self.tick_size = int(tick_size)

    @property
    def buy_price(self) -> int:
        return MAXIMUM_ASK // self.tick_size * self.tick_size

    @property
    def sell_price(self) -> int:
        return MINIMUM_BID

    def hedge(self, side: Side, volume: int) -> int:
        """Emit the hedge for a fill and return its client order id.

        Args:
            side:   Direction of the hedge (already inverted from the fill).
            volume: Full filled volume of the ETF order.
        """
        price = self.buy_price if side is Side.BUY else self.sell_price
        return self.emitter.hedge_order(side, price, int(volume))
