"""Reclaim expired paused tasks from the configured storage backend.

Backends without native expiry (Postgres) keep expired rows until
this sweep runs. Schedule it externally, for example from cron.
"""

from __future__ import annotations

import argparse
import logging

from sequential_flow.config.settings import Settings, get_settings
from sequential_flow.storage.base import TaskStorage
from sequential_flow.storage.factory import build_storage

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Delete paused tasks whose expiresAt has passed."
    )
    parser.add_argument(
        "--backend",
        choices=["redis", "postgres"],
        default=None,
        help="Override SEQUENTIAL_FLOW_STORAGE_BACKEND for this run.",
    )
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="PostgreSQL connection URL (default: SEQUENTIAL_FLOW_DATABASE_URL).",
    )
    return parser.parse_args(argv)


def purge(storage: TaskStorage) -> int:
    sweep = getattr(storage, "purge_expired", None)
    if not callable(sweep):
        logger.info("%s expires tasks natively; nothing to purge", type(storage).__name__)
        return 0
    return int(sweep())


def main(argv: list[str] | None = None, *, settings: Settings | None = None) -> int:
    args = _parse_args(argv)
    resolved = settings or get_settings()
    overrides = {}
    if args.backend:
        overrides["storage_backend"] = args.backend
    if args.database_url:
        overrides["database_url"] = args.database_url
    if overrides:
        resolved = resolved.model_copy(update=overrides)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    removed = purge(build_storage(resolved))
    print(f"Purged {removed} expired task(s) from {resolved.storage_backend} storage.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
