"""
luxor-quote: offline quotes for purchases and buyback settlements.

    luxor-quote purchase --config luxor.yaml --lxr-amount 1000000 \
        --treasury-balance 500000000000 --stake-count 12
    luxor-quote buyback --config luxor.yaml --withdrawn 2000000000

Both subcommands read the protocol parameters and market snapshot from the
config file, price against that snapshot and print JSON.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

from ..core.buyback import quote_buyback
from ..core.purchase import bonus_applies, quote_purchase
from ..core.types import Observations, ProtocolSnapshot
from ..errors import LuxorError
from ..state.stake_info import AggregateStakeState
from .config_loader import market_from_mapping, parameters_from_mapping, read_config

logger = logging.getLogger(__name__)


def _quote_purchase(args: argparse.Namespace) -> dict[str, object]:
    root = read_config(args.config)
    params = parameters_from_mapping(root.get("params"))
    market = market_from_mapping(root.get("market"))
    snapshot = ProtocolSnapshot(params=params, stake=AggregateStakeState(total_stake_count=args.stake_count))
    obs = Observations(lxr_treasury_balance=args.treasury_balance, market=market)
    sol = quote_purchase(snapshot, args.lxr_amount, obs)
    logger.debug("purchase quote lxr=%d sol=%d", args.lxr_amount, sol)
    return {
        "lxr_amount": args.lxr_amount,
        "sol_amount": sol,
        "bonus": bonus_applies(args.stake_count, params),
    }


def _quote_buyback(args: argparse.Namespace) -> dict[str, object]:
    root = read_config(args.config)
    params = parameters_from_mapping(root.get("params"))
    market = market_from_mapping(root.get("market"))
    fee, swap = quote_buyback(args.withdrawn, params.fee_treasury_rate, Observations(market=market))
    logger.debug("buyback quote withdrawn=%d fee=%d", args.withdrawn, fee)
    return {
        "withdrawn": args.withdrawn,
        "fee_to_treasury": fee,
        "lxr_bought": swap.output_amount,
        "swap": asdict(swap),
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="luxor-quote", description="Offline purchase / buyback quotes")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("purchase", help="SOL price of an LXR purchase")
    p.add_argument("--config", type=Path, required=True, help="Path to YAML config")
    p.add_argument("--lxr-amount", type=int, required=True)
    p.add_argument("--treasury-balance", type=int, required=True, help="Current LXR treasury inventory")
    p.add_argument("--stake-count", type=int, default=0, help="Purchases recorded so far")
    p.set_defaults(func=_quote_purchase)

    b = sub.add_parser("buyback", help="LXR bought by settling a buyback")
    b.add_argument("--config", type=Path, required=True, help="Path to YAML config")
    b.add_argument("--withdrawn", type=int, required=True, help="Lamports withdrawn from the split account")
    b.set_defaults(func=_quote_buyback)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )
    try:
        out = args.func(args)
    except (OSError, ValueError) as exc:
        print(f"invalid input: {exc}", file=sys.stderr)
        return 2
    except LuxorError as exc:
        print(f"quote rejected: {exc.reason()}", file=sys.stderr)
        return 1
    print(json.dumps(out, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
