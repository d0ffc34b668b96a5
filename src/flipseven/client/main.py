from __future__ import annotations

import argparse
import logging
from pathlib import Path

from flipseven.engine.ai import BotSpec, play_round
from flipseven.engine.types import GameSettings
from flipseven.paths import get_paths
from flipseven.services.game_store import GameStore
from flipseven.services.storage import SaveStore
from flipseven.services.telemetry import TelemetryService

DEFAULT_NAMES = ["Ada", "Bo", "Cy"]


def _print_round(store: GameStore) -> None:
    session = store.session
    assert session is not None
    result = session.round_history[-1]
    names = {p.id: p.name for p in session.players}
    parts = [f"{names[s.player_id]} +{s.score}" for s in result.scores]
    print(f"Round {result.round}: " + ", ".join(parts))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="flipseven-sim", description="Play Flip Seven with bots, headless.")
    parser.add_argument("names", nargs="*", default=DEFAULT_NAMES)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--target", type=int, default=200, help="Total score that ends the game")
    parser.add_argument("--stay-at", type=int, default=25, help="Bots stay once their round score reaches this")
    parser.add_argument("--games", type=int, default=1)
    parser.add_argument("--save", type=Path, default=None, help="Persist the session to this JSON file")
    parser.add_argument("--userdata", type=Path, default=None, help="Directory for the telemetry log")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    paths = get_paths(args.userdata)
    storage = SaveStore(args.save, paths.schema_dir) if args.save is not None else None
    telemetry = TelemetryService(paths.telemetry_file, enabled=args.userdata is not None)
    spec = BotSpec(stay_at=args.stay_at)

    for game in range(args.games):
        store = GameStore(GameSettings(target_score=args.target), storage=storage, telemetry=telemetry)
        seed = None if args.seed is None else args.seed + game
        session = store.create_session(args.names, seed=seed)
        print(f"Game {game + 1} (seed {session.seed})")

        while session.status != "game_over":
            play_round(session, spec, submit=store.dispatch)
            _print_round(store)

        winner = session.leaderboard()[0]
        print(f"Winner: {winner.name} with {winner.total_score}")
        store.reset_game()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
