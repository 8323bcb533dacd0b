"""CLI script to find and reset task timers that were abandoned while running."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import TYPE_CHECKING

BACKEND_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_ROOT))

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import async_sessionmaker
    from sqlmodel.ext.asyncio.session import AsyncSession


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "List running or paused task timers that expired over an hour ago "
            "(or have no duration) and optionally reset them to not_started."
        ),
    )
    parser.add_argument(
        "--clean",
        action="store_true",
        help="Reset the stale timers instead of only reporting them",
    )
    return parser.parse_args(argv)


async def _run(
    argv: Sequence[str] | None = None,
    *,
    session_maker: async_sessionmaker[AsyncSession] | None = None,
) -> int:
    from habit_tracker.services.timers import TimerEngine

    if session_maker is None:
        from habit_tracker.db.session import async_session_maker as session_maker

    args = _parse_args(argv)

    async with session_maker() as session:
        engine = TimerEngine(session)
        now = engine.clock()
        stale = await engine.find_stale_timers(now)
        sys.stdout.write(f"now={now.isoformat()} stale_timers={len(stale)}\n")
        for entry in stale:
            expiry = (
                "no_duration"
                if entry.seconds_since_expiry is None
                else f"expired_seconds_ago={entry.seconds_since_expiry}"
            )
            sys.stdout.write(
                f"- task_id={entry.task.id} status={entry.task.timer_status} "
                f"elapsed={entry.elapsed} {expiry} text={entry.task.text!r}\n",
            )
        if not stale:
            return 0
        if not args.clean:
            sys.stdout.write("dry run: pass --clean to reset these timers\n")
            return 0
        cleaned = await engine.cleanup_stale_timers(apply=True, now=now)

    sys.stdout.write(f"reset={len(cleaned)}\n")
    return 0


def main() -> None:
    """Run the async CLI workflow and exit with its return code."""
    raise SystemExit(asyncio.run(_run()))


if __name__ == "__main__":
    main()
