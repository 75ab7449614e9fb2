"""
Entry point — prints personalized recommendations for a risk profile.
Run: python run.py --risk medium --horizon medium --assets both --top 10
"""
import argparse
import asyncio
import sys
import warnings

warnings.filterwarnings("ignore")

from common.models import ForexCandidate, StockCandidate, UserProfile
from common.logger import get_logger
from config.settings import DEFAULT_PROFILE, TOP_N
from pipeline.engine import build_engine

logger = get_logger("run")

LEVEL_EMOJI = {"low": "🟢", "medium": "🟡", "high": "🔴"}


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Personalized stock and forex recommendations")
    p.add_argument("--risk", default=DEFAULT_PROFILE["risk_tolerance"], choices=["low", "medium", "high"])
    p.add_argument("--horizon", default=DEFAULT_PROFILE["investment_horizon"],
                   choices=["short", "medium", "long"])
    p.add_argument("--amount", type=float, default=DEFAULT_PROFILE["investment_amount"])
    p.add_argument("--assets", default=DEFAULT_PROFILE["preferred_assets"],
                   choices=["stocks", "forex", "both"])
    p.add_argument("--top", type=int, default=TOP_N)
    return p.parse_args(argv)


def format_row(c) -> str:
    emoji = LEVEL_EMOJI.get(c.risk_level, "⚪")
    if isinstance(c, StockCandidate):
        return (f"{c.symbol:<10} {c.price:>10.2f} {c.change_24h:>+8.2f}%"
                f" {c.risk_score:>5} {emoji} {c.projected_return:>8} {c.timeframe:>3}"
                f" {c.confidence_score:>5} {c.match_score:>6}  {c.historical_accuracy}")
    if isinstance(c, ForexCandidate):
        return (f"{c.pair:<10} {c.rate:>10.4f} {c.change_24h:>+8.2f}%"
                f" {c.risk_score:>5} {emoji} {c.pip_movement:>12}"
                f" {'':>5} {c.match_score:>6}  {c.projected_pips}, spread {c.spread}")
    return str(c)


async def main(argv=None) -> int:
    args = parse_args(argv)
    profile = UserProfile(risk_tolerance=args.risk, investment_horizon=args.horizon,
                          investment_amount=args.amount, preferred_assets=args.assets)
    engine = build_engine()
    recommendations = await engine.generate_recommendations(profile, top_n=args.top)

    print("\n" + "=" * 100)
    print(f"  Recommendations — risk {profile.risk_tolerance}, horizon {profile.investment_horizon},"
          f" amount {profile.investment_amount:,.0f}, assets {profile.preferred_assets}")
    print("=" * 100)
    print(f"{'Key':<10} {'Price':>10} {'24h':>9} {'Risk':>5}    {'Projection':>12} {'Conf':>5} {'Match':>6}")
    print("-" * 100)
    for c in recommendations:
        print(format_row(c))
    print("=" * 100)
    print("  Scores are heuristic estimates, not trading advice.\n")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
