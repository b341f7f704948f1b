"""
Admin gate and emergency credential reset.
"""

from __future__ import annotations

import hmac
import logging
from typing import Optional

from rewards_backend.config_store import (
    DEFAULT_ADMIN_SECRET,
    ConfigPatch,
    ConfigurationStore,
)
from rewards_backend.db import ConfigRecord
from rewards_backend.errors import AuthError, NotFoundError

logger = logging.getLogger(__name__)


def secrets_match(supplied: Optional[str], expected: Optional[str]) -> bool:
    if not isinstance(supplied, str) or not isinstance(expected, str):
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


class AdminGate:
    """Checks a supplied secret against the stored config before any mutation."""

    def __init__(self, configs: ConfigurationStore):
        self.configs = configs

    def authorize(self, scope: str, supplied_secret: Optional[str]) -> ConfigRecord:
        record = self.configs.get(scope)
        if record is None:
            raise NotFoundError("Config not found")
        if not secrets_match(supplied_secret, record.admin_secret):
            logger.warning("Rejected admin secret for scope %s", scope)
            raise AuthError("Invalid admin secret")
        return record


class CredentialResetter:
    """
    Restores the default admin secret when the caller knows the
    deployment-level reset secret. With no reset secret configured every
    attempt is refused.
    """

    def __init__(self, configs: ConfigurationStore, reset_secret: Optional[str]):
        self.configs = configs
        self.reset_secret = reset_secret

    def reset(self, scope: str, supplied_reset_secret: Optional[str]) -> None:
        if not self.reset_secret or not secrets_match(
            supplied_reset_secret, self.reset_secret
        ):
            logger.warning("Rejected credential reset for scope %s", scope)
            raise AuthError("Invalid reset secret")
        record = self.configs.get_or_create(scope)
        self.configs.apply(record, ConfigPatch.of(admin_secret=DEFAULT_ADMIN_SECRET))
        logger.warning("Admin secret reset to default for scope %s", scope)
