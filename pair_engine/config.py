import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load variables from .env in the project root (one level up from this file)
_env_path = Path(__file__).parent.parent / ".env"
load_dotenv(_env_path)

# --- Sizing / limits ---
LOT_SIZE = 10           # lots per opening order before any bonus multiplier
POSITION_LIMIT = 100    # hard cap on |ETF position|
TICK_SIZE_IN_CENTS = 100

# --- Static ratio thresholds ---
BUY_RATIO = 0.995       # ratio must be strictly below this to open a buy
SELL_RATIO = 1.005      # ratio must be strictly above this to open a sell
NEUTRAL_RATIO = 1.0     # resting orders are cancelled once the ratio crosses back here

# --- Bollinger band policy ---
WINDOW_SIZE = 20        # number of ratios in the moving window
BAND_WIDTH = 1.0        # band = mean ± BAND_WIDTH * std
BOLLINGER_BONUS = 3     # lot multiplier when the ratio breaches the band

# --- Decaying-extrema policy ---
EXTREMA_BONUS = 2       # lot multiplier on a fresh extreme
DECAY_RATE = 0.01       # fraction of the distance to NEUTRAL_RATIO removed per tick
MAX_RATIO_LIMIT = 1.002 # maxRatioSeen only decays while above this
MIN_RATIO_LIMIT = 0.998 # minRatioSeen only decays while below this

SIZING_POLICIES = ("static", "extrema", "bollinger")
DEFAULT_SIZING_POLICY = "bollinger"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    return int(raw) if raw not in (None, "") else default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    return float(raw) if raw not in (None, "") else default


@dataclass(frozen=True)
class EngineConfig:
    """Immutable strategy parameters.

    Defaults match the module constants above; `from_env()` lets a `.env`
    file or the process environment override any of them with `PAIR_*`
    variables (e.g. PAIR_LOT_SIZE=5, PAIR_SIZING_POLICY=extrema).
    """
    lot_size:        int   = LOT_SIZE
    position_limit:  int   = POSITION_LIMIT
    tick_size:       int   = TICK_SIZE_IN_CENTS
    buy_ratio:       float = BUY_RATIO
    sell_ratio:      float = SELL_RATIO
    neutral_ratio:   float = NEUTRAL_RATIO
    sizing_policy:   str   = DEFAULT_SIZING_POLICY
    window_size:     int   = WINDOW_SIZE
    band_width:      float = BAND_WIDTH
    bollinger_bonus: int   = BOLLINGER_BONUS
    extrema_bonus:   int   = EXTREMA_BONUS
    decay_rate:      float = DECAY_RATE
    max_ratio_limit: float = MAX_RATIO_LIMIT
    min_ratio_limit: float = MIN_RATIO_LIMIT

    def __post_init__(self) -> None:
        if self.lot_size <= 0:
            raise ValueError("lot_size must be positive")
        if self.position_limit <= 0:
            raise ValueError("position_limit must be positive")
        if self.tick_size <= 0:
            raise ValueError("tick_size must be positive")
        if self.window_size <= 0:
            raise ValueError("window_size must be positive")
        if self.buy_ratio >= self.sell_ratio:
            raise ValueError("buy_ratio must be below sell_ratio")
        if not 0.0 <= self.decay_rate < 1.0:
            raise ValueError("decay_rate must be in [0, 1)")
        if self.sizing_policy not in SIZING_POLICIES:
            raise ValueError(
                f"sizing_policy must be one of {', '.join(SIZING_POLICIES)}"
            )

    @classmethod
    def from_env(cls) -> "EngineConfig":
        return cls(
            lot_size=_env_int("PAIR_LOT_SIZE", LOT_SIZE),
            position_limit=_env_int("PAIR_POSITION_LIMIT", POSITION_LIMIT),
            tick_size=_env_int("PAIR_TICK_SIZE", TICK_SIZE_IN_CENTS),
            buy_ratio=_env_float("PAIR_BUY_RATIO", BUY_RATIO),
            sell_ratio=_env_float("PAIR_SELL_RATIO", SELL_RATIO),
            neutral_ratio=_env_float("PAIR_NEUTRAL_RATIO", NEUTRAL_RATIO),
            sizing_policy=(os.environ.get("PAIR_SIZING_POLICY") or DEFAULT_SIZING_POLICY).lower(),
            window_size=_env_int("PAIR_WINDOW_SIZE", WINDOW_SIZE),
            band_width=_env_float("PAIR_BAND_WIDTH", BAND_WIDTH),
            bollinger_bonus=_env_int("PAIR_BOLLINGER_BONUS", BOLLINGER_BONUS),
            extrema_bonus=_env_int("PAIR_EXTREMA_BONUS", EXTREMA_BONUS),
            decay_rate=_env_float("PAIR_DECAY_RATE", DECAY_RATE),
            max_ratio_limit=_env_float("PAIR_MAX_RATIO_LIMIT", MAX_RATIO_LIMIT),
            min_ratio_limit=_env_float("PAIR_MIN_RATIO_LIMIT", MIN_RATIO_LIMIT),
        )
