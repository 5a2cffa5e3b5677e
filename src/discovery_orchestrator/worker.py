"""Background worker: reap orphaned executions and drain pending tasks.

Run with `python -m discovery_orchestrator.worker`.
"""

from __future__ import annotations

import argparse
import logging
import time

from discovery_orchestrator.config.settings import Settings, get_settings
from discovery_orchestrator.runtime import Runtime, build_runtime

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run pending agent tasks and fail executions whose runner went away."
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single pass and exit.",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Maximum tasks to run per pass (default: settings worker_batch_size).",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Seconds to sleep between passes (default: settings worker_poll_interval_s).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO).",
    )
    return parser.parse_args(argv)


def run_once(runtime: Runtime, *, batch_size: int) -> dict[str, int]:
    reaped = runtime.manager.reap_orphaned_executions()
    finished = runtime.runner.run_pending(limit=batch_size)
    summary = {
        "reaped": len(reaped),
        "ran": len(finished),
        "completed": sum(1 for task in finished if task.status == "completed"),
        "failed": sum(1 for task in finished if task.status == "failed"),
        "cancelled": sum(1 for task in finished if task.status == "cancelled"),
    }
    logger.info(
        "worker event=pass reaped=%d ran=%d completed=%d failed=%d cancelled=%d",
        summary["reaped"],
        summary["ran"],
        summary["completed"],
        summary["failed"],
        summary["cancelled"],
    )
    return summary


def main(argv: list[str] | None = None, *, settings: Settings | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    resolved = settings or get_settings()
    runtime = build_runtime(resolved)
    batch_size = args.batch_size or resolved.worker_batch_size
    poll_interval = (
        args.poll_interval if args.poll_interval is not None else resolved.worker_poll_interval_s
    )

    if args.once:
        run_once(runtime, batch_size=batch_size)
        return 0

    logger.info(
        "worker event=start batch_size=%d poll_interval_s=%.1f",
        batch_size,
        poll_interval,
    )
    try:
        while True:
            summary = run_once(runtime, batch_size=batch_size)
            if summary["ran"] == 0:
                time.sleep(poll_interval)
    except KeyboardInterrupt:
        logger.info("worker event=stop")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
