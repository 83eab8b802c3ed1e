"""Command-line queue watcher.

Usage:
    tablequeue-client student-center
    tablequeue-client student-center --join --party-size 2 --ticks 20
    tablequeue-client student-center --emergency-stop
"""

import argparse
import asyncio
import logging
import uuid

from tablequeue.client.api_client import QueueApiClient
from tablequeue.client.reconciler import ClientReconciler
from tablequeue.core.config import settings

logger = logging.getLogger("tablequeue.client")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Watch (and optionally join) a dining hall queue")
    parser.add_argument("restaurant_id", help="establishment id, e.g. student-center")
    parser.add_argument("--user", default=None, help="participant id (random if omitted)")
    parser.add_argument("--join", action="store_true", help="take a ticket before polling")
    parser.add_argument("--party-size", type=int, default=1)
    parser.add_argument("--leave", action="store_true", help="leave the queue on exit")
    parser.add_argument("--ticks", type=int, default=None, help="stop after N polls")
    parser.add_argument("--emergency-stop", action="store_true",
                        help="simulate closed admission while offline")
    parser.add_argument("--api-base", default=settings.client_api_base)
    parser.add_argument("--interval", type=float, default=settings.client_poll_interval_seconds)
    parser.add_argument("--timeout", type=float, default=settings.client_timeout_seconds)
    return parser


def format_view(reconciler: ClientReconciler) -> str:
    view = reconciler.view
    ticket = f"#{view.my_queue_number}" if view.in_queue else "-"
    return (
        f"[{reconciler.mode.value}] {view.restaurant_id} ticket={ticket} "
        f"ahead={view.people_ahead} total={view.total_queue_size} "
        f"wait~{view.estimated_wait_time_minutes}min status={view.current_status.value}"
    )


async def watch(args: argparse.Namespace) -> None:
    participant_id = args.user or str(uuid.uuid4())
    async with QueueApiClient(args.api_base, timeout=args.timeout) as api:
        reconciler = ClientReconciler(
            api,
            args.restaurant_id,
            participant_id,
            poll_interval_seconds=args.interval,
        )
        reconciler.emergency_stop = args.emergency_stop

        if args.join:
            number = await reconciler.join(args.party_size)
            logger.info(f"Holding ticket #{number} as {participant_id}")

        try:
            await reconciler.run(
                max_ticks=args.ticks,
                on_tick=lambda r: logger.info(format_view(r)),
            )
        finally:
            if args.leave and reconciler.view.in_queue:
                await reconciler.leave()
                logger.info("Left the queue")


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    try:
        asyncio.run(watch(args))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
