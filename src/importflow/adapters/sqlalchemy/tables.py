"""SQLAlchemy Core tables mirroring the backend's workflow tables."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Dialect,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    orm,
)

from importflow.domain.variants.agreement import ARTICLES_TABLE, CLAUSES_TABLE, RULES_TABLE
from importflow.domain.variants.registry import FEATURES_TABLE, RELEASE_FEATURES_TABLE

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(UTC)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


table_registry = orm.registry()
table_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}
metadata = table_registry.metadata

IdColumnType = String(36)


cba_articles_table = Table(
    ARTICLES_TABLE,
    metadata,
    Column("id", IdColumnType, primary_key=True, default=new_id),
    Column("agreement_id", String, nullable=False, index=True),
    Column("article_number", String, nullable=False),
    Column("title", String, nullable=False),
    Column("category", String, nullable=False, default="general"),
    Column("content", Text, nullable=True),
    Column("display_order", Integer, nullable=False, default=1),
    Column("created_at", UTCDateTime(), nullable=False, default=utcnow),
)

cba_clauses_table = Table(
    CLAUSES_TABLE,
    metadata,
    Column("id", IdColumnType, primary_key=True, default=new_id),
    Column(
        "article_id",
        IdColumnType,
        ForeignKey(f"{ARTICLES_TABLE}.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("clause_number", String, nullable=False),
    Column("title", String, nullable=False),
    Column("content", Text, nullable=False),
    Column("clause_type", String, nullable=False),
    Column("is_enforceable", Boolean, nullable=False, default=False),
    Column("rule_parameters", JSON, nullable=True),
    Column("display_order", Integer, nullable=False, default=1),
    Column("created_at", UTCDateTime(), nullable=False, default=utcnow),
)

cba_rules_table = Table(
    RULES_TABLE,
    metadata,
    Column("id", IdColumnType, primary_key=True, default=new_id),
    Column(
        "clause_id",
        IdColumnType,
        ForeignKey(f"{CLAUSES_TABLE}.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("agreement_id", String, nullable=False, index=True),
    Column("company_id", String, nullable=False),
    Column("rule_type", String, nullable=False),
    Column("rule_name", String, nullable=False),
    Column("description", String(500), nullable=True),
    Column("parameters", JSON, nullable=True),
    Column("enforcement_action", String, nullable=False, default="warn"),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", UTCDateTime(), nullable=False, default=utcnow),
)

application_features_table = Table(
    FEATURES_TABLE,
    metadata,
    Column("id", IdColumnType, primary_key=True, default=new_id),
    Column("feature_code", String, nullable=False, unique=True),
    Column("feature_name", String, nullable=False),
    Column("description", Text, nullable=True),
    Column("route_path", String, nullable=True),
    Column("module_code", String, nullable=False, index=True),
    Column("group_code", String, nullable=True),
    Column("group_name", String, nullable=True),
    Column("icon_name", String, nullable=True),
    Column("role_requirements", JSON, nullable=True),
    Column("workflow_steps", JSON, nullable=True),
    Column("ui_elements", JSON, nullable=True),
    Column("display_order", Integer, nullable=False, default=0),
    Column("source", String, nullable=False, default="manual"),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", UTCDateTime(), nullable=False, default=utcnow),
    Column("updated_at", UTCDateTime(), nullable=False, default=utcnow, onupdate=utcnow),
)

enablement_release_features_table = Table(
    RELEASE_FEATURES_TABLE,
    metadata,
    Column("id", IdColumnType, primary_key=True, default=new_id),
    Column("release_id", String, nullable=False),
    Column("feature_code", String, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False, default=utcnow),
    UniqueConstraint("release_id", "feature_code"),
)


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the workflow metadata."""

    log.info("Creating all tables")
    metadata.create_all(engine)
