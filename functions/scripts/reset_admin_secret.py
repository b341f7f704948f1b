"""
CLI helper to restore the default admin secret using ADMIN_RESET_SECRET.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from rewards_backend.config import get_settings
from rewards_backend.db import SqlDbClient
from rewards_backend.errors import RewardsError
from rewards_backend.service import SyncService

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Reset the admin secret")
    parser.add_argument(
        "--openid",
        type=str,
        default=None,
        help="Owner scope to reset (only used when SCOPE_MODE=owner)",
    )
    parser.add_argument(
        "--reset-secret",
        type=str,
        default=None,
        help="Override ADMIN_RESET_SECRET from the environment",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        # An in-memory store here would be private to this process, not the server.
        logger.error("DATABASE_URL must point at the server database to reset the secret")
        return 1
    service = SyncService(
        SqlDbClient(settings.database_url),
        scope_mode=settings.scope_mode,
        goods_order=settings.goods_order,
        reset_secret=settings.admin_reset_secret,
    )
    try:
        service.reset_credential(
            args.reset_secret or settings.admin_reset_secret, args.openid
        )
    except RewardsError as exc:
        logger.error("Reset failed: %s", exc.message)
        return 1
    logger.info("Admin secret restored to the default value")
    return 0


if __name__ == "__main__":
    sys.exit(main())
