"""
Database abstraction for SQL backends and an in-memory test implementation.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, Iterator, Optional, Protocol

from sqlalchemy import (
    JSON,
    BigInteger,
    Column,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    create_engine,
    delete,
    select,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from rewards_backend.errors import StorageError

logger = logging.getLogger(__name__)

GOODS_ORDER_CREATED_ASC = "created_asc"
GOODS_ORDER_UPDATED_DESC = "updated_desc"
GOODS_ORDERS = (GOODS_ORDER_CREATED_ASC, GOODS_ORDER_UPDATED_DESC)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DbClient(Protocol):
    """Interface for database access."""

    def list_goods(
        self, scope: str, order: str = GOODS_ORDER_CREATED_ASC
    ) -> list["GoodsRecord"]:
        ...

    def replace_goods(self, scope: str, items: list["GoodsRecord"]) -> None:
        ...

    def get_config(self, scope: str) -> Optional["ConfigRecord"]:
        ...

    def save_config(self, record: "ConfigRecord") -> None:
        ...


@dataclass
class GoodsRecord:
    scope: str
    item_id: int
    name: str
    score: float
    desc: str
    image: str
    position: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def as_dict(self) -> dict:
        score = self.score
        if isinstance(score, float) and score.is_integer():
            score = int(score)
        return {
            "id": self.item_id,
            "name": self.name,
            "score": score,
            "desc": self.desc,
            "image": self.image,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class ConfigRecord:
    scope: str
    banner_image: str
    banner_title: str
    rule_list: list[str]
    admin_secret: str
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def as_dict(self) -> dict:
        return {
            "bannerImage": self.banner_image,
            "bannerTitle": self.banner_title,
            "ruleList": list(self.rule_list),
            "adminSecret": self.admin_secret,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


def _sort_goods(items: list[GoodsRecord], order: str) -> list[GoodsRecord]:
    if order == GOODS_ORDER_UPDATED_DESC:
        by_position = sorted(items, key=lambda item: item.position)
        return sorted(by_position, key=lambda item: item.updated_at, reverse=True)
    return sorted(items, key=lambda item: (item.created_at, item.position))


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.goods: Dict[str, list[GoodsRecord]] = {}
        self.configs: Dict[str, ConfigRecord] = {}
        self._lock = threading.Lock()

    def list_goods(
        self, scope: str, order: str = GOODS_ORDER_CREATED_ASC
    ) -> list[GoodsRecord]:
        with self._lock:
            items = [replace(item) for item in self.goods.get(scope, [])]
        return _sort_goods(items, order)

    def replace_goods(self, scope: str, items: list[GoodsRecord]) -> None:
        fresh = [replace(item, scope=scope) for item in items]
        with self._lock:
            self.goods[scope] = fresh

    def get_config(self, scope: str) -> Optional[ConfigRecord]:
        with self._lock:
            record = self.configs.get(scope)
            return replace(record, rule_list=list(record.rule_list)) if record else None

    def save_config(self, record: ConfigRecord) -> None:
        with self._lock:
            self.configs[record.scope] = replace(
                record, rule_list=list(record.rule_list)
            )

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.goods.clear()
            self.configs.clear()


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        """Open a session; closing it rolls back anything uncommitted."""
        try:
            with self.Session() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.exception("Storage failure during %s", operation)
            raise StorageError() from exc

    def _to_goods_record(self, row: "GoodsRow") -> GoodsRecord:
        return GoodsRecord(
            scope=row.scope,
            item_id=row.item_id,
            name=row.name,
            score=row.score,
            desc=row.description,
            image=row.image,
            position=row.position,
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )

    def _to_config_record(self, row: "ConfigRow") -> ConfigRecord:
        return ConfigRecord(
            scope=row.scope,
            banner_image=row.banner_image,
            banner_title=row.banner_title,
            rule_list=list(row.rule_list or []),
            admin_secret=row.admin_secret,
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )

    def list_goods(
        self, scope: str, order: str = GOODS_ORDER_CREATED_ASC
    ) -> list[GoodsRecord]:
        stmt = select(GoodsRow).where(GoodsRow.scope == scope)
        if order == GOODS_ORDER_UPDATED_DESC:
            stmt = stmt.order_by(GoodsRow.updated_at.desc(), GoodsRow.position.asc())
        else:
            stmt = stmt.order_by(GoodsRow.created_at.asc(), GoodsRow.position.asc())
        with self._session("list_goods") as session:
            rows = session.execute(stmt).scalars().all()
            return [self._to_goods_record(row) for row in rows]

    def replace_goods(self, scope: str, items: list[GoodsRecord]) -> None:
        # Delete and insert share one transaction: readers see old or new, never a mix.
        with self._session("replace_goods") as session:
            session.execute(delete(GoodsRow).where(GoodsRow.scope == scope))
            session.add_all(
                GoodsRow(
                    scope=scope,
                    item_id=item.item_id,
                    position=item.position,
                    name=item.name,
                    score=item.score,
                    description=item.desc,
                    image=item.image,
                    created_at=item.created_at,
                    updated_at=item.updated_at,
                )
                for item in items
            )
            session.commit()

    def get_config(self, scope: str) -> Optional[ConfigRecord]:
        with self._session("get_config") as session:
            row = session.get(ConfigRow, scope)
            return self._to_config_record(row) if row else None

    def save_config(self, record: ConfigRecord) -> None:
        with self._session("save_config") as session:
            row = session.get(ConfigRow, record.scope)
            if row:
                row.banner_image = record.banner_image
                row.banner_title = record.banner_title
                row.rule_list = list(record.rule_list)
                row.admin_secret = record.admin_secret
                row.updated_at = record.updated_at
            else:
                session.add(
                    ConfigRow(
                        scope=record.scope,
                        banner_image=record.banner_image,
                        banner_title=record.banner_title,
                        rule_list=list(record.rule_list),
                        admin_secret=record.admin_secret,
                        created_at=record.created_at,
                        updated_at=record.updated_at,
                    )
                )
            session.commit()


Base = declarative_base()


class GoodsRow(Base):
    __tablename__ = "goods_items"

    scope = Column(String, primary_key=True)
    item_id = Column(BigInteger, primary_key=True, autoincrement=False)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String, nullable=False)
    score = Column(Float, nullable=False)
    description = Column(Text, nullable=False, default="")
    image = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class ConfigRow(Base):
    __tablename__ = "site_config"

    scope = Column(String, primary_key=True)
    banner_image = Column(Text, nullable=False)
    banner_title = Column(String, nullable=False)
    rule_list = Column(JSON, nullable=False)
    admin_secret = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
