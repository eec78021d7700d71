"""CLI script to create the agent state row and register the reprioritise sweep."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

BACKEND_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_ROOT))


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Create the agent state singleton with default autonomy settings.",
    )
    parser.add_argument(
        "--agent-id",
        type=str,
        default=None,
        help="Agent identity (default: AGENT_ID setting)",
    )
    parser.add_argument(
        "--model",
        type=str,
        default="",
        help="Initial current_model value",
    )
    parser.add_argument(
        "--register-sweep",
        action="store_true",
        help="Also register the recurring calendar reprioritise sweep with rq-scheduler",
    )
    parser.add_argument(
        "--sweep-interval",
        type=int,
        default=None,
        help="Sweep interval in seconds (default: REPRIORITISE_SCHEDULE_INTERVAL_SECONDS)",
    )
    return parser.parse_args()


async def _run() -> int:
    from app.core.config import settings
    from app.db.session import init_db, session_scope
    from app.services.agent_state import ensure_agent_state
    from app.services.calendar.scheduler import bootstrap_reprioritise_schedule

    args = _parse_args()
    agent_id = (args.agent_id or settings.agent_id).strip()
    if not agent_id:
        message = "Agent id must be non-empty"
        raise SystemExit(message)

    await init_db()
    async with session_scope() as session:
        state = await ensure_agent_state(session, agent_id=agent_id, current_model=args.model)

    sys.stdout.write(f"agent_id={state.agent_id} status={state.status}\n")
    sys.stdout.write(
        f"auto_pickup_enabled={state.auto_pickup_enabled} "
        f"max_concurrent_tasks={state.max_concurrent_tasks} "
        f"due_date_urgency_hours={state.due_date_urgency_hours}\n",
    )
    if args.register_sweep:
        bootstrap_reprioritise_schedule(interval_seconds=args.sweep_interval)
        sys.stdout.write(f"sweep_schedule_id={settings.reprioritise_schedule_id}\n")
    return 0


def main() -> None:
    """Run the async CLI workflow and exit with its return code."""
    raise SystemExit(asyncio.run(_run()))


if __name__ == "__main__":
    main()
