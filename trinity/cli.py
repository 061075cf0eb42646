"""Command-line entry point.

Usage:
    trinity selfplay --players 3 --seed 7 --max-turns 120
    trinity detect fixtures/corner.txt 1 1
    trinity rules

Rule overrides come from ``TRINITY_<FIELD>`` environment variables (see
:mod:`trinity.config`).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .ai import play_random_game
from .board_serializer import from_ascii, to_ascii
from .config import load_rules
from .errors import TrinityError
from .game_controller import GameController, GameResult
from .logging_config import configure_third_party_loggers, setup_logging
from .rules.trinity import TrinityDetector

logger = logging.getLogger(__name__)


def _print_result(result: Optional[GameResult]) -> None:
    if result is None:
        print("No result: turn limit reached")
        return
    print(f"Game over: {result.reason}")
    print(f"{'Player':<10}{'Score':>6}{'LM':>4}{'HQ':>4}{'Secured':>9}{'Hand':>6}")
    for s in result.scores:
        print(
            f"{s.name:<10}{s.score:>6}{s.landmarks:>4}{s.headquarters:>4}"
            f"{s.secured_landmarks:>9}{s.tiles_in_hand:>6}"
        )
    if result.is_tie:
        print("Result: tie")
    else:
        print(f"Winner: Player {result.winner + 1}")


def cmd_selfplay(args: argparse.Namespace) -> int:
    rules = load_rules(player_count=args.players)
    controller = GameController(rules=rules, seed=args.seed)
    result = play_random_game(controller, seed=args.seed, max_turns=args.max_turns)
    print(to_ascii(controller.game_state, include_header=True, include_footer=True))
    print()
    _print_result(result)
    return 0


def cmd_detect(args: argparse.Namespace) -> int:
    text = Path(args.file).read_text(encoding="utf-8")
    state = from_ascii(text, player_count=args.players)
    tile = state.get_tile(args.x, args.y)
    if tile is None:
        print(f"No standing tile at ({args.x}, {args.y})")
        return 1
    matches = TrinityDetector.detect(state.board, args.x, args.y, tile.type, tile.owner)
    if not matches:
        print("No trinity")
        return 0
    for i, match in enumerate(matches):
        marker = "*" if i == 0 else " "
        print(
            f"{marker} H={match.housing.to_key()} C={match.commerce.to_key()} "
            f"I={match.industry.to_key()}"
        )
    return 0


def cmd_rules(args: argparse.Namespace) -> int:
    print(json.dumps(load_rules().model_dump(mode="json"), indent=2, sort_keys=True))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="trinity", description="Trinity game engine")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument(
        "--log-format",
        default="compact",
        choices=["default", "compact", "detailed", "structured"],
    )
    sub = parser.add_subparsers(dest="command", required=True)

    selfplay = sub.add_parser("selfplay", help="Play a seeded random game")
    selfplay.add_argument("--players", type=int, default=2)
    selfplay.add_argument("--seed", type=int, default=0)
    selfplay.add_argument("--max-turns", type=int, default=200)
    selfplay.set_defaults(func=cmd_selfplay)

    detect = sub.add_parser("detect", help="Detect trinities in an ASCII fixture")
    detect.add_argument("file")
    detect.add_argument("x", type=int)
    detect.add_argument("y", type=int)
    detect.add_argument("--players", type=int, default=2)
    detect.set_defaults(func=cmd_detect)

    rules = sub.add_parser("rules", help="Print the effective rule configuration")
    rules.set_defaults(func=cmd_rules)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(
        "trinity",
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format_style=args.log_format,
    )
    configure_third_party_loggers(quiet=not args.verbose)
    try:
        return args.func(args)
    except TrinityError as exc:
        logger.debug("Command failed", exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
