"""Chart of the ETF/future ratio signal from a replay.

Top panel: ratio, buy/sell thresholds and (for the Bollinger policy) the
band, with open decisions marked.  Bottom panel: ETF position.

Usage:
    python plot_signals.py snapshots.csv [--policy extrema] [--out signals.png]
"""

import argparse
import os
from dataclasses import replace

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from pair_engine import EngineConfig


def plot_replay(result, path: str) -> str:
    """Save the signal chart for a ReplayResult and return the file path."""
    ticks = result.ticks
    commands = result.commands
    cfg = result.trader.config

    fig, (ax_ratio, ax_pos) = plt.subplots(
        2, 1, figsize=(12, 8), sharex=True, gridspec_kw={"height_ratios": [3, 1]},
    )

    if len(ticks):
        ax_ratio.plot(ticks["time"], ticks["ratio"], label="ETF / future ratio", color="#1f77b4", linewidth=1.2)
        if "high_band" in ticks.columns:
            ax_ratio.plot(ticks["time"], ticks["high_band"], color="grey", linestyle=":", label="Bollinger band")
            ax_ratio.plot(ticks["time"], ticks["low_band"], color="grey", linestyle=":")
        if "max_ratio_seen" in ticks.columns:
            ax_ratio.plot(ticks["time"], ticks["max_ratio_seen"], color="orange", alpha=0.6, label="max ratio seen")
            ax_ratio.plot(ticks["time"], ticks["min_ratio_seen"], color="orange", alpha=0.6, label="min ratio seen")
        ax_pos.step(ticks["time"], ticks["position"], where="post", color="purple")

    ax_ratio.axhline(cfg.sell_ratio, color="red", linestyle="--", label=f"sell > {cfg.sell_ratio}")
    ax_ratio.axhline(cfg.buy_ratio, color="green", linestyle="--", label=f"buy < {cfg.buy_ratio}")
    ax_ratio.axhline(cfg.neutral_ratio, color="black", alpha=0.4)

    if len(commands):
        inserts = commands[commands["kind"] == "insert"]
        buys = inserts[inserts["side"] == "BUY"]
        sells = inserts[inserts["side"] == "SELL"]
        ax_ratio.scatter(buys["time"], buys["ratio"], color="green", marker="^", zorder=5, label="open buy")
        ax_ratio.scatter(sells["time"], sells["ratio"], color="red", marker="v", zorder=5, label="open sell")

    ax_ratio.set_title(f"Pair signal ({cfg.sizing_policy} sizing)")
    ax_ratio.set_ylabel("Ratio")
    ax_ratio.legend(loc="upper left")
    ax_ratio.grid(True, alpha=0.3)

    ax_pos.axhline(cfg.position_limit, color="red", alpha=0.4)
    ax_pos.axhline(-cfg.position_limit, color="red", alpha=0.4)
    ax_pos.set_ylabel("Position")
    ax_pos.set_xlabel("Time")
    ax_pos.grid(True, alpha=0.3)

    out_dir = os.path.dirname(path)
    if out_dir and not os.path.exists(out_dir):
        os.makedirs(out_dir)
    fig.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)
    return path


if __name__ == "__main__":
    from replay import load_snapshots, run_replay

    parser = argparse.ArgumentParser(description="Plot the pair signal for a snapshot replay.")
    parser.add_argument("csv", help="Snapshot CSV")
    parser.add_argument("--policy", choices=("static", "extrema", "bollinger"), default=None)
    parser.add_argument("--out", default="signals.png")
    args = parser.parse_args()

    config = EngineConfig.from_env()
    if args.policy:
        config = replace(config, sizing_policy=args.policy)

    result = run_replay(load_snapshots(args.csv), config)
    print(f"Saved {plot_replay(result, args.out)}")
