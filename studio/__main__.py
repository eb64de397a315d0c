"""
studio.__main__ — Entry point for ``python -m studio``
=======================================================

Wiring:
1. Load .env (secrets, ``DATABASE_URL``).
2. Load config.yaml (soft settings).
3. Create the SQLAlchemy engine.
4. Run the requested command.

Commands::

    python -m studio init-db     # create tables (dev/test; prod uses alembic)
    python -m studio seed        # seed the template library once
    python -m studio             # init-db, then seed if seed_on_startup
"""

from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

from studio.config import load_config
from studio.database.engine import create_db_engine, init_db
from studio.services.sample_seeder import seed_studio_samples

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("studio")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m studio", description=__doc__.splitlines()[1])
    parser.add_argument(
        "--config", default="config.yaml", help="Path to config.yaml (default: %(default)s)"
    )
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("init-db", help="Create all Studio tables")
    sub.add_parser("seed", help="Seed template cards and dashboards")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Bootstrap and run one command; returns the process exit code."""
    args = build_parser().parse_args(argv)

    # 1. Environment variables (secrets).
    load_dotenv()

    # 2. Soft configuration.
    try:
        cfg = load_config(args.config)
    except ValueError as exc:
        logger.critical("%s", exc)
        return 1

    # 3. Database.
    try:
        engine = create_db_engine()
    except RuntimeError as exc:
        logger.critical("%s", exc)
        return 1

    # 4. Command.
    if args.command == "init-db":
        init_db(engine)
    elif args.command == "seed":
        report = seed_studio_samples(engine, cfg.bootstrap_admin_email)
        logger.info("Seed report: %s", report)
    else:
        init_db(engine)
        if cfg.seed_on_startup:
            report = seed_studio_samples(engine, cfg.bootstrap_admin_email)
            logger.info("Seed report: %s", report)
        else:
            logger.info("seed_on_startup is off, skipping template seeding.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
