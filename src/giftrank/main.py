# src/giftrank/main.py — v1
"""CLI entry point: rank, extract-preferences commands.

Usage:
    giftrank rank <candidates.json> [--profile p.json] [--memo ...] [options]
    giftrank extract-preferences <memo>

Results are printed to stdout as JSON; logs go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from giftrank.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="giftrank",
        description=f"giftrank v{__version__}: LLM-assisted gift re-ranking",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- rank ---
    p_rank = subparsers.add_parser(
        "rank", help="Re-rank a candidate pool for one recipient",
    )
    p_rank.add_argument(
        "candidates", type=Path,
        help="JSON file holding the candidate pool (list of gift objects)",
    )
    p_rank.add_argument(
        "--profile", type=Path, default=None,
        help="JSON file holding a preference profile (likes/dislikes/uncertain)",
    )
    p_rank.add_argument("--memo", default="", help="Recipient memo")
    p_rank.add_argument("--add-memo", default="", help="Additional memo")
    p_rank.add_argument("--rank", dest="position", default="", help="Rank / position")
    p_rank.add_argument("--gender", default="", help="Gender")
    p_rank.add_argument(
        "-n", "--top-n", type=int, default=None,
        help="Number of gifts to return (default: DEFAULT_TOP_N)",
    )
    p_rank.add_argument(
        "--no-rationale", action="store_true",
        help="Skip rationale generation",
    )
    p_rank.set_defaults(func=_cmd_rank)

    # --- extract-preferences ---
    p_extract = subparsers.add_parser(
        "extract-preferences", help="Extract explicit preferences from a memo",
    )
    p_extract.add_argument("memo", help="Memo text")
    p_extract.set_defaults(func=_cmd_extract)

    return parser


async def _cmd_rank(args: argparse.Namespace) -> int:
    """Execute the rank command."""
    from giftrank.api.facade import recommend
    from giftrank.config.settings import Settings
    from giftrank.core.models import GiftCandidate, PersonaDescriptor, RankingRequest
    from giftrank.preferences.profile import build_profile

    settings = Settings()
    raw_pool = _read_json(args.candidates)
    if not isinstance(raw_pool, list):
        logger.error("Candidate file must hold a JSON array: %s", args.candidates)
        return 1

    profile = None
    if args.profile is not None:
        raw_profile = _read_json(args.profile)
        if not isinstance(raw_profile, dict):
            logger.error("Profile file must hold a JSON object: %s", args.profile)
            return 1
        profile = build_profile(raw_profile, settings.default_preference_weight)

    request = RankingRequest(
        pool=[GiftCandidate.model_validate(g) for g in raw_pool],
        persona=PersonaDescriptor(
            rank=args.position, gender=args.gender,
            memo=args.memo, add_memo=args.add_memo,
        ),
        profile=profile,
        top_n=args.top_n or settings.default_top_n,
    )
    recommendation = await recommend(
        request, settings=settings, with_rationale=not args.no_rationale,
    )

    _print_json(
        {
            "strategy": recommendation.strategy,
            "fallback_reason": recommendation.fallback_reason,
            "coverage_applied": recommendation.coverage_applied,
            "gifts": [g.model_dump() for g in recommendation.gifts],
            "rationales": [r.model_dump() for r in recommendation.rationales],
        }
    )
    return 0


async def _cmd_extract(args: argparse.Namespace) -> int:
    """Execute the extract-preferences command."""
    from giftrank.api.facade import extract_preferences

    profile = await extract_preferences(args.memo)
    _print_json(profile.model_dump())
    return 0


def _read_json(path: Path) -> Any:
    if not path.is_file():
        raise FileNotFoundError(f"No such file: {path}")
    return json.loads(path.read_text(encoding="utf-8"))


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


def _setup_logging(verbose: bool) -> None:
    """Configure logging for CLI usage from settings, DEBUG when verbose."""
    from giftrank.config.settings import Settings
    from giftrank.logging.logger import setup_logging_from_settings

    setup_logging_from_settings(Settings(), verbose=verbose)


def main_entry() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    sys.exit(main())
