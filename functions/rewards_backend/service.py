"""
Synchronization service: the operations the HTTP layer exposes, composed
from the catalog store, config store, admin gate and reset path.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from rewards_backend.admin import AdminGate, CredentialResetter
from rewards_backend.catalog import CatalogStore
from rewards_backend.config_store import ConfigPatch, ConfigurationStore
from rewards_backend.db import GOODS_ORDER_CREATED_ASC, ConfigRecord, DbClient
from rewards_backend.errors import ValidationError
from rewards_backend.images import DEFAULT_GOODS_IMAGE, normalize_image

SCOPE_MODE_GLOBAL = "global"
SCOPE_MODE_OWNER = "owner"

GLOBAL_GOODS_SCOPE = "global"
GLOBAL_CONFIG_SCOPE = "global_config"


class SyncService:
    def __init__(
        self,
        db: DbClient,
        *,
        scope_mode: str = SCOPE_MODE_GLOBAL,
        goods_order: str = GOODS_ORDER_CREATED_ASC,
        reference_prefixes: Iterable[str] = (),
        reset_secret: Optional[str] = None,
    ):
        if scope_mode not in (SCOPE_MODE_GLOBAL, SCOPE_MODE_OWNER):
            raise ValueError(f"Unknown scope mode: {scope_mode}")
        self.scope_mode = scope_mode
        self.reference_prefixes = tuple(reference_prefixes)
        self.catalog = CatalogStore(
            db, order=goods_order, reference_prefixes=self.reference_prefixes
        )
        self.configs = ConfigurationStore(
            db, reference_prefixes=self.reference_prefixes
        )
        self.gate = AdminGate(self.configs)
        self.resetter = CredentialResetter(self.configs, reset_secret)

    @property
    def owner_scoped(self) -> bool:
        return self.scope_mode == SCOPE_MODE_OWNER

    def _owner(self, openid: Optional[str]) -> str:
        if not openid or not openid.strip():
            raise ValidationError("openid is required")
        return openid.strip()

    def goods_scope(self, openid: Optional[str] = None) -> str:
        return self._owner(openid) if self.owner_scoped else GLOBAL_GOODS_SCOPE

    def config_scope(self, openid: Optional[str] = None) -> str:
        return self._owner(openid) if self.owner_scoped else GLOBAL_CONFIG_SCOPE

    def list_goods(self, openid: Optional[str] = None) -> list[dict]:
        scope = self.goods_scope(openid)
        items = []
        for record in self.catalog.list(scope):
            item = record.as_dict()
            # Rows written before image normalization existed get repaired here.
            item["image"] = normalize_image(
                record.image, DEFAULT_GOODS_IMAGE, self.reference_prefixes
            )
            if self.owner_scoped:
                item["owner"] = scope
            items.append(item)
        return items

    def replace_goods(self, goods_list: Any, openid: Optional[str] = None) -> int:
        scope = self.goods_scope(openid)
        return len(self.catalog.replace_all(scope, goods_list))

    def read_config(self, openid: Optional[str] = None) -> dict:
        return self.configs.read_public(self.config_scope(openid))

    def read_full_config(self, secret: Optional[str], openid: Optional[str] = None) -> dict:
        record = self.gate.authorize(self.config_scope(openid), secret)
        return record.as_dict()

    def write_config(
        self,
        secret: Optional[str],
        patch: ConfigPatch,
        openid: Optional[str] = None,
    ) -> ConfigRecord:
        record = self.gate.authorize(self.config_scope(openid), secret)
        return self.configs.apply(record, patch)

    def reset_credential(
        self, reset_secret: Optional[str], openid: Optional[str] = None
    ) -> None:
        self.resetter.reset(self.config_scope(openid), reset_secret)
