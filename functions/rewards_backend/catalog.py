"""
Catalog store: validates a submitted goods list and swaps it in wholesale.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from pydantic import ValidationError as PydanticValidationError

from rewards_backend.db import (
    GOODS_ORDER_CREATED_ASC,
    GOODS_ORDERS,
    DbClient,
    GoodsRecord,
    utcnow,
)
from rewards_backend.errors import ValidationError
from rewards_backend.images import DEFAULT_GOODS_IMAGE, normalize_image
from rewards_backend.schemas import GoodsItemIn

logger = logging.getLogger(__name__)


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(part) for part in error.get("loc", ()))
        parts.append(f"{loc}: {error.get('msg')}" if loc else str(error.get("msg")))
    return "; ".join(parts)


def parse_goods_list(raw: Any) -> list[GoodsItemIn]:
    """Validate the whole payload up front so a bad item never costs a delete."""
    if not isinstance(raw, (list, tuple)):
        raise ValidationError("goodsList must be an array")

    items: list[GoodsItemIn] = []
    seen: set[int] = set()
    for index, entry in enumerate(raw):
        try:
            item = GoodsItemIn.model_validate(entry)
        except PydanticValidationError as exc:
            raise ValidationError(
                f"Invalid goods item at index {index}: {_describe(exc)}"
            ) from exc
        if item.id in seen:
            raise ValidationError(f"Duplicate goods id {item.id}")
        seen.add(item.id)
        items.append(item)
    return items


class CatalogStore:
    def __init__(
        self,
        db: DbClient,
        order: str = GOODS_ORDER_CREATED_ASC,
        reference_prefixes: Iterable[str] = (),
    ):
        if order not in GOODS_ORDERS:
            raise ValueError(f"Unknown goods order: {order}")
        self.db = db
        self.order = order
        self.reference_prefixes = tuple(reference_prefixes)

    def list(self, scope: str) -> list[GoodsRecord]:
        return self.db.list_goods(scope, order=self.order)

    def replace_all(self, scope: str, raw_items: Any) -> list[GoodsRecord]:
        items = parse_goods_list(raw_items)
        now = utcnow()
        records = [
            GoodsRecord(
                scope=scope,
                item_id=item.id,
                name=item.name,
                score=item.score,
                desc=item.desc,
                image=normalize_image(
                    item.image, DEFAULT_GOODS_IMAGE, self.reference_prefixes
                ),
                position=index,
                created_at=item.createdAt or now,
                updated_at=now,
            )
            for index, item in enumerate(items)
        ]
        self.db.replace_goods(scope, records)
        logger.info("Replaced goods in scope %s with %d items", scope, len(records))
        return records
