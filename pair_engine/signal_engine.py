"""ETF / future ratio signal and lot sizing.

The engine runs once per ETF book update:

  1. ratio = etf_mid / future_mid
  2. Expiry: a resting ask is cancelled once ratio <= neutral, a resting bid
     once ratio >= neutral.  Both sides are checked independently.
  3. The sizing policy observes the ratio (its only state mutation per tick).
  4. Open-buy if no resting bid, ratio < buy_ratio and room below the limit.
  5. Open-sell if no resting ask, ratio > sell_ratio and room above -limit.

Sizing policies:
    static     fixed lot size
    extrema    lot * extrema_bonus when the ratio sets a fresh high (sell) or
               low (buy); the tracked extremes decay toward neutral while
               they sit beyond their activation limits
    bollinger  lot * bollinger_bonus when the ratio breaches mean ± width·std
               of the last `window_size` ratios; plain lot until the window
               is full

The position-limit clamp is applied after any multiplier.  A clamp that
leaves no positive volume produces no decision.
"""

import logging
from collections import deque
from typing import Optional

import numpy as np

from .config import EngineConfig
from .ledger import PositionLedger
from .mid_price import MidPriceTracker
from .models import Action, Decision

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Statistics helpers
# ---------------------------------------------------------------------------

class RatioSeries:
    """Fixed-capacity window of the most recent ratios (oldest evicted first)."""

    def __init__(self, n: int = 20):
        self.n = int(n)
        self._x: deque[float] = deque(maxlen=self.n)

    def add(self, v: float) -> None:
        self._x.append(float(v))

    def mean(self) -> float:
        return float(np.mean(self._x)) if self._x else float("nan")

    def std(self) -> float:
        """Population standard deviation over the window."""
        return float(np.std(self._x)) if self._x else float("nan")

    def ready(self) -> bool:
        return len(self._x) >= self.n

    def values(self) -> list[float]:
        return list(self._x)

    def __len__(self) -> int:
        return len(self._x)


# ---------------------------------------------------------------------------
# Sizing policies
# ---------------------------------------------------------------------------

class SizingPolicy:
    """Base policy: fixed lot, no adaptive state."""

    name = "static"

    def __init__(self, config: EngineConfig):
        self.config = config

    def observe(self, ratio: float) -> None:
        """Fold one ratio into the policy state.  Called once per ETF tick."""

    def buy_volume(self, ratio: float) -> int:
        return self.config.lot_size

    def sell_volume(self, ratio: float) -> int:
        return self.config.lot_size

    def state(self) -> dict:
        return {}


class StaticSizing(SizingPolicy):
    name = "static"


class DecayingExtremaSizing(SizingPolicy):
    """Doubles the lot on a fresh extreme and lets stale extremes fade.

    `max_ratio_seen` / `min_ratio_seen` start at the neutral ratio.  On each
    tick that does not set a new extreme, an extreme that is still beyond its
    activation limit moves `decay_rate` of the way back toward neutral, so
    an old spike stops suppressing the bonus for later opportunities.
    Decay runs whether or not a position is open.
    """

    name = "extrema"

    def __init__(self, config: EngineConfig):
        super().__init__(config)
        self.max_ratio_seen: float = config.neutral_ratio
        self.min_ratio_seen: float = config.neutral_ratio
        self._fresh_high = False
        self._fresh_low = False

    def _decay(self, extreme: float) -> float:
        neutral = self.config.neutral_ratio
        return neutral + (extreme - neutral) * (1.0 - self.config.decay_rate)

    def observe(self, ratio: float) -> None:
        cfg = self.config

        self._fresh_high = ratio > self.max_ratio_seen
        if self._fresh_high:
            self.max_ratio_seen = ratio
        elif self.max_ratio_seen > cfg.max_ratio_limit:
            self.max_ratio_seen = self._decay(self.max_ratio_seen)

        self._fresh_low = ratio < self.min_ratio_seen
        if self._fresh_low:
            self.min_ratio_seen = ratio
        elif self.min_ratio_seen < cfg.min_ratio_limit:
            self.min_ratio_seen = self._decay(self.min_ratio_seen)

    def buy_volume(self, ratio: float) -> int:
        if self._fresh_low:
            return self.config.lot_size * self.config.extrema_bonus
        return self.config.lot_size

    def sell_volume(self, ratio: float) -> int:
        if self._fresh_high:
            return self.config.lot_size * self.config.extrema_bonus
        return self.config.lot_size

    def state(self) -> dict:
        return {"max_ratio_seen": self.max_ratio_seen, "min_ratio_seen": self.min_ratio_seen}


class BollingerSizing(SizingPolicy):
    """Lot bonus when the ratio falls outside the Bollinger band."""

    name = "bollinger"

    def __init__(self, config: EngineConfig):
        super().__init__(config)
        self.ratios = RatioSeries(config.window_size)
        self.moving_average: Optional[float] = None
        self.standard_deviation: Optional[float] = None
        self.high_band: Optional[float] = None
        self.low_band: Optional[float] = None

    def observe(self, ratio: float) -> None:
        self.ratios.add(ratio)
        if not self.ratios.ready():
            return
        self.moving_average = self.ratios.mean()
        self.standard_deviation = self.ratios.std()
        width = self.config.band_width * self.standard_deviation
        self.high_band = self.moving_average + width
        self.low_band = self.moving_average - width

    def buy_volume(self, ratio: float) -> int:
        if self.low_band is not None and ratio < self.low_band:
            return self.config.lot_size * self.config.bollinger_bonus
        return self.config.lot_size

    def sell_volume(self, ratio: float) -> int:
        if self.high_band is not None and ratio > self.high_band:
            return self.config.lot_size * self.config.bollinger_bonus
        return self.config.lot_size

    def state(self) -> dict:
        return {
            "moving_average": self.moving_average,
            "standard_deviation": self.standard_deviation,
            "high_band": self.high_band,
            "low_band": self.low_band,
        }


_POLICIES: dict[str, type[SizingPolicy]] = {
    "static": StaticSizing,
    "extrema": DecayingExtremaSizing,
    "bollinger": BollingerSizing,
}


def make_sizing_policy(config: EngineConfig) -> SizingPolicy:
    return _POLICIES[config.sizing_policy](config)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class SignalEngine:
    """Turns the current mids and ledger state into open/cancel decisions.

    The engine never mutates the ledger; the caller applies the decisions
    (sending commands and recording the new order ids).

    Args:
        config:  Strategy parameters.
        tracker: Mid-price tracker shared with the book handler.
        policy:  Sizing policy; built from `config.sizing_policy` if omitted.
    """

    def __init__(
        self,
        config: EngineConfig,
        tracker: MidPriceTracker,
        policy: Optional[SizingPolicy] = None,
    ):
        self.config = config
        self.tracker = tracker
        self.policy = policy or make_sizing_policy(config)
        self.last_ratio: float = float("nan")

    def _clamp(self, volume: int, headroom: int) -> int:
        return max(0, min(int(volume), int(headroom)))

    def evaluate(self, best_bid: int, best_ask: int, ledger: PositionLedger) -> list[Decision]:
        """Run one signal pass for an ETF book update.

        Args:
            best_bid: Best ETF bid (price for an open-sell).
            best_ask: Best ETF ask (price for an open-buy).
            ledger:   Current position and resting order ids.

        Returns:
            Decisions in emission order: cancels first, then opens.
        """
        if not self.tracker.ready():
            return []

        cfg = self.config
        ratio = self.tracker.ratio()
        self.last_ratio = ratio
        decisions: list[Decision] = []

        # ── Expiry: the spread that justified the resting order has closed ──
        if ledger.active_ask_id != 0 and ratio <= cfg.neutral_ratio:
            decisions.append(Decision(Action.CANCEL_ASK, ratio, order_id=ledger.active_ask_id))
        if ledger.active_bid_id != 0 and ratio >= cfg.neutral_ratio:
            decisions.append(Decision(Action.CANCEL_BID, ratio, order_id=ledger.active_bid_id))

        self.policy.observe(ratio)
        if log.isEnabledFor(logging.DEBUG):
            log.debug("ratio %.6f policy=%s state=%s", ratio, self.policy.name, self.policy.state())

        position = ledger.position

        # ── Open-buy ───────────────────────────────────────────────────────
        if ledger.active_bid_id == 0 and ratio < cfg.buy_ratio and position < cfg.position_limit:
            headroom = cfg.position_limit - position - ledger.outstanding_bid_volume
            volume = self._clamp(self.policy.buy_volume(ratio), headroom)
            if volume > 0 and best_ask > 0:
                decisions.append(Decision(Action.OPEN_BUY, ratio, price=int(best_ask), volume=volume))
            else:
                log.debug("open-buy skipped: volume=%d ask=%d", volume, best_ask)

        # ── Open-sell ──────────────────────────────────────────────────────
        if ledger.active_ask_id == 0 and ratio > cfg.sell_ratio and position > -cfg.position_limit:
            headroom = cfg.position_limit + position - ledger.outstanding_ask_volume
            volume = self._clamp(self.policy.sell_volume(ratio), headroom)
            if volume > 0 and best_bid > 0:
                decisions.append(Decision(Action.OPEN_SELL, ratio, price=int(best_bid), volume=volume))
            else:
                log.debug("open-sell skipped: volume=%d bid=%d", volume, best_bid)

        return decisions
