"""
Configuration store: exactly one banner/rules record per scope.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Iterable, Optional

from rewards_backend.db import ConfigRecord, DbClient, utcnow
from rewards_backend.images import DEFAULT_BANNER_IMAGE, normalize_image

logger = logging.getLogger(__name__)

DEFAULT_BANNER_TITLE = "萌宠好礼 积分兑换"
DEFAULT_RULE_LIST = (
    "每消费1元可获得1积分，积分永久有效",
    "兑换商品需满足积分数量，积分扣除后不可退回",
    "商品数量有限，兑完即止，不设退换",
    "最终解释权归喜饼宠物所有",
)
DEFAULT_ADMIN_SECRET = "123456"

PATCHABLE_FIELDS = frozenset(
    {"banner_image", "banner_title", "rule_list", "admin_secret"}
)


@dataclass(frozen=True)
class ConfigPatch:
    """
    Partial update for a ConfigRecord.

    ``supplied`` names the fields the caller actually sent; everything else
    is left untouched. A supplied ``None`` restores the field's default,
    except for ``admin_secret`` where a blank or missing value is ignored.
    """

    banner_image: Any = None
    banner_title: Optional[str] = None
    rule_list: Optional[list[str]] = None
    admin_secret: Optional[str] = None
    supplied: frozenset[str] = frozenset()

    @classmethod
    def of(cls, **fields: Any) -> "ConfigPatch":
        unknown = set(fields) - PATCHABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown config fields: {sorted(unknown)}")
        return cls(**fields, supplied=frozenset(fields))

    def has(self, name: str) -> bool:
        return name in self.supplied


def default_config(scope: str) -> ConfigRecord:
    now = utcnow()
    return ConfigRecord(
        scope=scope,
        banner_image=DEFAULT_BANNER_IMAGE,
        banner_title=DEFAULT_BANNER_TITLE,
        rule_list=list(DEFAULT_RULE_LIST),
        admin_secret=DEFAULT_ADMIN_SECRET,
        created_at=now,
        updated_at=now,
    )


class ConfigurationStore:
    def __init__(self, db: DbClient, reference_prefixes: Iterable[str] = ()):
        self.db = db
        self.reference_prefixes = tuple(reference_prefixes)

    def get(self, scope: str) -> Optional[ConfigRecord]:
        return self.db.get_config(scope)

    def get_or_create(self, scope: str) -> ConfigRecord:
        record = self.db.get_config(scope)
        if record is None:
            record = default_config(scope)
            self.db.save_config(record)
            logger.info("Created default config for scope %s", scope)
        return record

    def apply(self, record: ConfigRecord, patch: ConfigPatch) -> ConfigRecord:
        """Merge ``patch`` into ``record``, persist and return the result."""
        changes: dict[str, Any] = {}
        if patch.has("banner_image"):
            changes["banner_image"] = normalize_image(
                patch.banner_image, DEFAULT_BANNER_IMAGE, self.reference_prefixes
            )
        if patch.has("banner_title"):
            changes["banner_title"] = (
                DEFAULT_BANNER_TITLE
                if patch.banner_title is None
                else patch.banner_title
            )
        if patch.has("rule_list"):
            changes["rule_list"] = (
                list(DEFAULT_RULE_LIST)
                if patch.rule_list is None
                else list(patch.rule_list)
            )
        if patch.has("admin_secret") and patch.admin_secret:
            changes["admin_secret"] = patch.admin_secret

        updated = replace(record, updated_at=utcnow(), **changes)
        self.db.save_config(updated)
        logger.info(
            "Updated config for scope %s (fields: %s)",
            record.scope,
            ", ".join(sorted(changes)) or "none",
        )
        return updated

    def upsert(self, scope: str, patch: ConfigPatch) -> ConfigRecord:
        record = self.db.get_config(scope) or default_config(scope)
        return self.apply(record, patch)

    def read_public(self, scope: str) -> dict:
        """Display copy of the config: no secret, banner repaired."""
        record = self.get_or_create(scope)
        return {
            "bannerImage": normalize_image(
                record.banner_image, DEFAULT_BANNER_IMAGE, self.reference_prefixes
            ),
            "bannerTitle": record.banner_title,
            "ruleList": list(record.rule_list),
            "updatedAt": record.updated_at,
        }
