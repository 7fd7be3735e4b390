from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from goalsync.errors import MigrationFailure
from goalsync.migration import DataMigrationService
from goalsync.storage.engines import JsonFileKeyValueEngine


logger = logging.getLogger("migrate_legacy_keys")

DEFAULT_STORE = Path("data") / "local_store.json"


async def run(store: Path, user_id: str, *, cleanup: bool = False, rollback: bool = False) -> int:
    service = DataMigrationService(JsonFileKeyValueEngine(store), user_id)

    if rollback:
        await service.rollback()
        logger.info("Rolled back partitioned keys for %s in %s", user_id, store)
        return 0

    if not await service.needs_migration():
        logger.info("No legacy keys found in %s", store)
        return 0

    copied = await service.migrate_all()
    logger.info("Copied %d legacy keys into the %s partition", copied, user_id)
    if cleanup:
        retained = await service.cleanup()
        if retained:
            logger.warning("Legacy keys kept because their values were not copied: %s", ", ".join(retained))
        logger.info("Removed legacy keys from %s", store)

    status = await service.migration_status()
    logger.info(
        "Migration status: migrated=%s legacy_remaining=%s partitioned_keys=%d",
        status.is_migrated,
        status.has_legacy_data,
        status.migrated_key_count,
    )
    return copied


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Move legacy goal keys into a profile partition.")
    parser.add_argument("--store", type=Path, default=DEFAULT_STORE, help="Path to the JSON key/value store.")
    parser.add_argument("--user-id", required=True, help="Profile identifier that will own the legacy data.")
    parser.add_argument("--cleanup", action="store_true", help="Remove legacy keys after validation.")
    parser.add_argument("--rollback", action="store_true", help="Restore legacy keys from the partition.")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    args = parse_args(argv)
    if args.cleanup and args.rollback:
        logger.error("--cleanup and --rollback cannot be combined")
        return 2
    try:
        asyncio.run(run(args.store, args.user_id, cleanup=args.cleanup, rollback=args.rollback))
    except MigrationFailure as exc:
        logger.error("Migration failed during %s: %s", exc.stage, exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
