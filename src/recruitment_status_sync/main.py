"""
Command-line entry point for recruitment status maintenance.

Subcommands:
    init-db              Create the recruitment tables.
    recompute-candidate  Re-run candidate aggregation (repairs stale statuses).
    history              Print the audited status changes of an entity.
"""

import argparse
import asyncio
import logging
import sys

from recruitment_status_sync.config import get_settings
from recruitment_status_sync.db.session import (
    create_engine,
    create_session_factory,
    init_models,
)
from recruitment_status_sync.errors import StatusSyncError
from recruitment_status_sync.schemas import EntityType
from recruitment_status_sync.services.recruitment_service import RecruitmentService


def setup_logging() -> None:
    """Configure application logging."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all subcommands."""
    settings = get_settings()
    parser = argparse.ArgumentParser(prog="recruitment-status-sync")
    parser.add_argument(
        "--database-url",
        default=settings.database_url,
        help="SQLAlchemy async URL (defaults to DATABASE_URL)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the recruitment tables")

    recompute = subparsers.add_parser(
        "recompute-candidate",
        help="Recompute a candidate's status from its applications",
    )
    recompute.add_argument("candidate_id", type=int)
    recompute.add_argument(
        "--acting-user",
        type=int,
        default=None,
        help="User id stamped on changed rows (defaults to the system user)",
    )

    history = subparsers.add_parser("history", help="Show status change history")
    history.add_argument(
        "entity_type",
        choices=[e.value for e in EntityType],
        help="Kind of entity",
    )
    history.add_argument("entity_id", type=int)

    return parser


async def run_command(args: argparse.Namespace) -> None:
    """Run the selected subcommand against the configured database."""
    logger = logging.getLogger(__name__)
    settings = get_settings().model_copy(update={"database_url": args.database_url})
    engine = create_engine(settings)
    session_factory = create_session_factory(engine)

    try:
        if args.command == "init-db":
            await init_models(engine)
            logger.info("Database initialized")
            return

        async with session_factory() as session:
            service = RecruitmentService(session)

            if args.command == "recompute-candidate":
                candidate = await service.recompute_candidate_status(args.candidate_id, args.acting_user)
                print(f"Candidate {args.candidate_id}: {candidate.status}")

            elif args.command == "history":
                for change in await service.get_status_history(args.entity_type, args.entity_id):
                    print(
                        f"{change.created_at:%Y-%m-%d %H:%M:%S}  "
                        f"{change.old_status} -> {change.new_status}  "
                        f"by {change.changed_by}: {change.reason}"
                    )
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the application."""
    setup_logging()
    args = build_parser().parse_args(argv)

    try:
        asyncio.run(run_command(args))
    except StatusSyncError as e:
        logging.error(f"{e}")
        sys.exit(1)
    except Exception as e:
        logging.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
