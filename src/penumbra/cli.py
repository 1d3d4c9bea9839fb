from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import Settings
from .dungeon.generation import generate
from .dungeon.model import Dungeon
from .errors import InvalidAction, PenumbraError
from .game.actions import action_from_dict
from .game.session import GameSession
from .history.events import load_events
from .logging_config import configure_logging

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="penumbra", description="Turn project history into a dungeon.")
    p.add_argument("--config", type=Path, default=None, help="YAML settings file (default: user config dir)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate a dungeon and print a JSON summary")
    gen.add_argument("--events", type=Path, required=True, help="JSON array of normalized events")
    gen.add_argument("--seed", type=int, default=None, help="Master seed (default: settings or PENUMBRA_SEED)")
    gen.add_argument("--ascii", action="store_true", help="Include the tile map as ASCII rows")

    sim = sub.add_parser("simulate", help="Replay a JSON list of player actions and print the run summary")
    sim.add_argument("--events", type=Path, required=True)
    sim.add_argument("--seed", type=int, default=None)
    sim.add_argument("--actions", type=Path, required=True, help='JSON array like [{"type": "move", "direction": "east"}]')
    return p.parse_args(argv)


def build_settings(args: argparse.Namespace) -> Settings:
    if args.config is not None:
        return Settings.from_env(Settings.load(args.config))
    default = Settings.default_path()
    return Settings.from_env(Settings.load(default if default.exists() else None))


def resolve_seed(args: argparse.Namespace, settings: Settings) -> int:
    if args.seed is not None:
        return args.seed
    if settings.seed is not None:
        return settings.seed
    return 0


def dungeon_summary(dungeon: Dungeon, include_ascii: bool = False) -> Dict[str, Any]:
    rooms = []
    for room in dungeon.rooms:
        rooms.append({
            "id": room.id,
            "day": None if room.day is None else room.day.isoformat(),
            "kind": room.kind.value,
            "size": [room.bounds.w, room.bounds.h],
            "cleared": room.cleared,
            "enemies": [
                {"kind": dungeon.enemies[e].kind.value, "hp": dungeon.enemies[e].hp,
                 "tier": dungeon.enemies[e].tier, "position": list(dungeon.enemies[e].position)}
                for e in room.enemies
            ],
            "items": [
                {"kind": dungeon.items[i].kind.value, "rarity": dungeon.items[i].rarity.name.lower(),
                 "position": list(dungeon.item_positions[i])}
                for i in room.items
            ],
        })
    data: Dict[str, Any] = {
        "seed": dungeon.seed,
        "width": dungeon.tile_grid.width,
        "height": dungeon.tile_grid.height,
        "rooms": rooms,
    }
    if include_ascii:
        data["map"] = dungeon.tile_grid.to_ascii()
    return data


def _cmd_generate(args: argparse.Namespace, settings: Settings) -> int:
    events = load_events(args.events)
    dungeon = generate(events, resolve_seed(args, settings), settings)
    # Print JSON summary so it can be diffed across runs
    print(json.dumps(dungeon_summary(dungeon, args.ascii), indent=2, sort_keys=True))
    return 0


def _cmd_simulate(args: argparse.Namespace, settings: Settings) -> int:
    events = load_events(args.events)
    with args.actions.open("r", encoding="utf-8") as f:
        raw_actions = json.load(f)
    session = GameSession.new_run(events, resolve_seed(args, settings), settings=settings)
    rejected = 0
    for idx, raw in enumerate(raw_actions):
        if session.run_over:
            break
        try:
            session.advance_turn(action_from_dict(raw))
        except (InvalidAction, ValueError, KeyError) as exc:
            rejected += 1
            logger.warning("Action #%d rejected: %s", idx, exc)
    out = session.summary().to_dict()
    out["rejected_actions"] = rejected
    out["player_hp"] = session.player.hp
    print(json.dumps(out, indent=2, sort_keys=True))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(logging.DEBUG if args.debug else logging.WARNING)
    try:
        settings = build_settings(args)
        if args.command == "generate":
            return _cmd_generate(args, settings)
        return _cmd_simulate(args, settings)
    except (OSError, ValueError, PenumbraError) as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
