from __future__ import annotations

import argparse
import asyncio
import json
import logging
from typing import Any

from agri_resolver.config import YamlConfigLoader
from agri_resolver.config.models import ConfigLoadRequest
from agri_resolver.logging import init_logging
from agri_resolver.narrative.models import NARRATIVE_KINDS, CropData
from agri_resolver.resolver.models import ResolutionResult
from agri_resolver.runtime import ResolverRuntime

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="agri-resolver", description="Tiered price, geo-history and narrative lookups")
    parser.add_argument(
        "--config",
        default="data/config/config.yaml",
        help="Path to config.yaml (default: data/config/config.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to run")

    price_parser = subparsers.add_parser("price", help="Resolve a price pair such as MATIC/USD")
    price_parser.add_argument("pair")

    rate_parser = subparsers.add_parser("rate", help="Exchange rate between two assets")
    rate_parser.add_argument("from_asset")
    rate_parser.add_argument("to_asset")

    subparsers.add_parser("refresh", help="Refresh every configured Chainlink pair")

    history_parser = subparsers.add_parser("history", help="Supply-chain location history of a token")
    history_parser.add_argument("token_id")

    story_parser = subparsers.add_parser("story", help="Generate a crop narrative")
    story_parser.add_argument("crop_type")
    story_parser.add_argument("--variety", default=None)
    story_parser.add_argument("--farm-location", default=None)
    story_parser.add_argument("--kind", choices=NARRATIVE_KINDS, default="cropStory")

    return parser


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True, default=str))


def _result_payload(result: ResolutionResult, value: Any = None) -> dict:
    return {"value": result.value if value is None else value, "tier": result.tier, "as_of": result.as_of}


async def _load_config(args: argparse.Namespace):
    loader = YamlConfigLoader()
    request = ConfigLoadRequest(
        yaml_path=args.config,
    )
    return await loader.load(request)


async def _run_command(runtime: ResolverRuntime, args: argparse.Namespace) -> None:
    if args.command == "price":
        _emit(_result_payload(await runtime.prices.get_price(args.pair)))
    elif args.command == "rate":
        _emit(await runtime.prices.convert_currency(1.0, args.from_asset, args.to_asset))
    elif args.command == "refresh":
        _emit(await runtime.prices.update_all_prices())
    elif args.command == "history":
        result = await runtime.geo.get_location_history(args.token_id)
        _emit(_result_payload(result, [loc.to_record() for loc in result.value]))
    elif args.command == "story":
        crop = CropData(crop_type=args.crop_type, variety=args.variety, farm_location=args.farm_location)
        _emit(_result_payload(await runtime.narratives.generate(args.kind, crop)))


async def _main_async() -> None:
    parser = _build_parser()
    args = parser.parse_args()

    config = await _load_config(args)
    init_logging(config.logging)
    logger.info("Starting resolver command. command=%s", args.command)

    async with ResolverRuntime(config) as runtime:
        await _run_command(runtime, args)


def main() -> None:
    try:
        asyncio.run(_main_async())
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")


if __name__ == "__main__":
    main()
