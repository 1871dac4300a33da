"""
Persistence gateway for the models table.

Two strategies share one contract:
- SqlModelStore: authoritative relational store (one statement per call)
- MemoryModelStore: in-process store for demos and local development

Records cross this boundary as plain dicts keyed by column name.
"""

import logging
import math
import threading
import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from sqlalchemy import Engine, delete, func, insert, or_, select, update
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from apps.api.registry.schemas import ModelCreate, ModelUpdate
from db.models.model_registry import ARTIFACT_PATH_COLUMNS, ArtifactType, MLModel, ModelStatus
from packages.shared.exceptions import DatabaseException, NotFoundError, ValidationError

if TYPE_CHECKING:
    from apps.api.config import Settings

logger = logging.getLogger(__name__)

ModelRecord = dict[str, Any]

models_table = MLModel.__table__
MODEL_COLUMNS: tuple[str, ...] = tuple(column.name for column in models_table.columns)

# LIMIT and OFFSET are bound as signed 64-bit integers
MAX_SQL_INT = 2**63 - 1


class ModelNotFoundError(NotFoundError):
    """No model row matches the requested id."""

    def __init__(self, model_id: str) -> None:
        super().__init__("Model")
        self.model_id = model_id


@dataclass
class ModelQuery:
    """List parameters. Filters left as None are not applied."""

    page: int = 1
    limit: int = 20
    search: str | None = None
    algorithm: str | None = None
    status: str | None = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class ModelPage:
    """One page of models plus the size of the full filtered set."""

    models: list[ModelRecord]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_model_id(model_id: str | uuid.UUID) -> uuid.UUID | None:
    """Parse a model id; malformed ids are treated as unknown."""
    if isinstance(model_id, uuid.UUID):
        return model_id
    try:
        return uuid.UUID(str(model_id))
    except ValueError:
        return None


def new_model_record(data: ModelCreate, actor: str, now: datetime) -> ModelRecord:
    """Build a complete row for insertion.

    Id and timestamps are always server-assigned; createdAt equals
    modifiedAt on a fresh record.
    """
    supplied = data.model_dump(exclude_none=True)
    record: ModelRecord = {column: None for column in MODEL_COLUMNS}
    record.update(
        {column: value for column, value in supplied.items() if column in record}
    )
    record.update(
        id=uuid.uuid4(),
        created_by=actor,
        modified_by=actor,
        created_at=now,
        modified_at=now,
    )
    record["status"] = record["status"] or ModelStatus.DEVELOPMENT.value
    record["needs_recalibration"] = bool(record["needs_recalibration"])
    return record


def _require_changes(data: ModelUpdate) -> dict[str, Any]:
    changes = data.changes()
    if not changes:
        raise ValidationError("No valid fields to update")
    return changes


class ModelStore(ABC):
    """Contract shared by every model persistence strategy."""

    @property
    @abstractmethod
    def backend_name(self) -> str:
        pass

    @abstractmethod
    def list_models(self, query: ModelQuery) -> ModelPage:
        """Return one page of models, most recently created first."""

    @abstractmethod
    def get_model(self, model_id: str) -> ModelRecord | None:
        """Return a model, or None when no row matches."""

    @abstractmethod
    def create_model(self, data: ModelCreate, actor: str) -> ModelRecord:
        """Insert a new model and return the stored record."""

    @abstractmethod
    def update_model(self, model_id: str, data: ModelUpdate, actor: str) -> ModelRecord:
        """Apply a partial update.

        Raises:
            ValidationError: no updatable field was supplied
            ModelNotFoundError: unknown id
        """

    @abstractmethod
    def delete_model(self, model_id: str) -> ModelRecord:
        """Delete a model and return the removed record.

        Raises:
            ModelNotFoundError: unknown id
        """

    @abstractmethod
    def set_artifact_path(
        self,
        model_id: str,
        artifact_type: ArtifactType,
        location: str,
        actor: str,
    ) -> ModelRecord:
        """Record where an artifact of the given category was stored."""

    @abstractmethod
    def ping(self) -> bool:
        """Check that the backing store is reachable."""


# =============================================================================
# SQL strategy
# =============================================================================


class SqlModelStore(ModelStore):
    """
    Models table accessed through SQLAlchemy Core.

    Each call opens its own connection and transaction and releases it
    before returning, whether the statement succeeded or not. The engine
    is expected to use NullPool so nothing is kept between calls.
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    @property
    def backend_name(self) -> str:
        return "sql"

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[Connection]:
        try:
            with self.engine.begin() as conn:
                yield conn
        except SQLAlchemyError as e:
            logger.exception(f"Database error during {operation}: {e}")
            raise DatabaseException() from e

    @staticmethod
    def _conditions(query: ModelQuery) -> list:
        conditions = []
        if query.search:
            conditions.append(
                or_(
                    models_table.c.name.icontains(query.search, autoescape=True),
                    models_table.c.description.icontains(query.search, autoescape=True),
                )
            )
        if query.algorithm:
            conditions.append(models_table.c.algorithm == query.algorithm)
        if query.status:
            conditions.append(models_table.c.status == query.status)
        return conditions

    def list_models(self, query: ModelQuery) -> ModelPage:
        conditions = self._conditions(query)
        offset = min(query.offset, MAX_SQL_INT)
        limit = min(query.limit, MAX_SQL_INT - offset)
        stmt = (
            select(models_table, func.count().over().label("total_count"))
            .where(*conditions)
            .order_by(models_table.c.created_at.desc(), models_table.c.id.desc())
            .limit(limit)
            .offset(offset)
        )
        with self._transaction("list_models") as conn:
            rows = conn.execute(stmt).mappings().all()
            if rows:
                total = rows[0]["total_count"]
            elif query.page > 1:
                # The window count is only available on returned rows
                count_stmt = select(func.count()).select_from(models_table).where(*conditions)
                total = conn.execute(count_stmt).scalar_one()
            else:
                total = 0

        models = [
            {key: value for key, value in row.items() if key != "total_count"}
            for row in rows
        ]
        return ModelPage(models=models, total=total, page=query.page, limit=query.limit)

    def get_model(self, model_id: str) -> ModelRecord | None:
        uid = parse_model_id(model_id)
        if uid is None:
            return None
        stmt = select(models_table).where(models_table.c.id == uid)
        with self._transaction("get_model") as conn:
            row = conn.execute(stmt).mappings().first()
        return dict(row) if row else None

    def create_model(self, data: ModelCreate, actor: str) -> ModelRecord:
        record = new_model_record(data, actor, _utcnow())
        stmt = insert(models_table).values(**record).returning(*models_table.c)
        with self._transaction("create_model") as conn:
            row = conn.execute(stmt).mappings().one()
        logger.info(f"Created model {record['id']} ({record['name']}) by {actor}")
        return dict(row)

    def _update_row(
        self,
        operation: str,
        model_id: str,
        values: dict[str, Any],
        actor: str,
    ) -> ModelRecord:
        uid = parse_model_id(model_id)
        if uid is None:
            raise ModelNotFoundError(str(model_id))
        stmt = (
            update(models_table)
            .where(models_table.c.id == uid)
            .values(**values, modified_at=_utcnow(), modified_by=actor)
            .returning(*models_table.c)
        )
        with self._transaction(operation) as conn:
            row = conn.execute(stmt).mappings().first()
        if row is None:
            raise ModelNotFoundError(str(model_id))
        return dict(row)

    def update_model(self, model_id: str, data: ModelUpdate, actor: str) -> ModelRecord:
        changes = _require_changes(data)
        record = self._update_row("update_model", model_id, changes, actor)
        logger.info(f"Updated model {model_id}: {', '.join(sorted(changes))}")
        return record

    def delete_model(self, model_id: str) -> ModelRecord:
        uid = parse_model_id(model_id)
        if uid is None:
            raise ModelNotFoundError(str(model_id))
        stmt = delete(models_table).where(models_table.c.id == uid).returning(*models_table.c)
        with self._transaction("delete_model") as conn:
            row = conn.execute(stmt).mappings().first()
        if row is None:
            raise ModelNotFoundError(str(model_id))
        logger.info(f"Deleted model {model_id}")
        return dict(row)

    def set_artifact_path(
        self,
        model_id: str,
        artifact_type: ArtifactType,
        location: str,
        actor: str,
    ) -> ModelRecord:
        column = ARTIFACT_PATH_COLUMNS[ArtifactType(artifact_type)]
        record = self._update_row("set_artifact_path", model_id, {column: location}, actor)
        logger.info(f"Recorded {column} for model {model_id}")
        return record

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(select(1))
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Database ping failed: {e}")
            return False


# =============================================================================
# In-memory strategy
# =============================================================================


class MemoryModelStore(ModelStore):
    """Dict-backed store with the same contract as SqlModelStore."""

    def __init__(self) -> None:
        self._rows: dict[uuid.UUID, ModelRecord] = {}
        self._lock = threading.Lock()

    @property
    def backend_name(self) -> str:
        return "memory"

    @staticmethod
    def _matches(record: ModelRecord, query: ModelQuery) -> bool:
        if query.search:
            term = query.search.lower()
            if term not in record["name"].lower() and term not in record["description"].lower():
                return False
        if query.algorithm and record["algorithm"] != query.algorithm:
            return False
        if query.status and record["status"] != query.status:
            return False
        return True

    def list_models(self, query: ModelQuery) -> ModelPage:
        with self._lock:
            matched = [dict(r) for r in self._rows.values() if self._matches(r, query)]
        matched.sort(key=lambda r: (r["created_at"], r["id"]), reverse=True)
        page = matched[query.offset : query.offset + query.limit]
        return ModelPage(models=page, total=len(matched), page=query.page, limit=query.limit)

    def get_model(self, model_id: str) -> ModelRecord | None:
        uid = parse_model_id(model_id)
        with self._lock:
            record = self._rows.get(uid) if uid else None
            return dict(record) if record else None

    def create_model(self, data: ModelCreate, actor: str) -> ModelRecord:
        record = new_model_record(data, actor, _utcnow())
        with self._lock:
            self._rows[record["id"]] = record
        logger.info(f"Created model {record['id']} ({record['name']}) by {actor}")
        return dict(record)

    def _update_row(self, model_id: str, values: dict[str, Any], actor: str) -> ModelRecord:
        uid = parse_model_id(model_id)
        with self._lock:
            record = self._rows.get(uid) if uid else None
            if record is None:
                raise ModelNotFoundError(str(model_id))
            record.update(values, modified_at=_utcnow(), modified_by=actor)
            return dict(record)

    def update_model(self, model_id: str, data: ModelUpdate, actor: str) -> ModelRecord:
        changes = _require_changes(data)
        record = self._update_row(model_id, changes, actor)
        logger.info(f"Updated model {model_id}: {', '.join(sorted(changes))}")
        return record

    def delete_model(self, model_id: str) -> ModelRecord:
        uid = parse_model_id(model_id)
        with self._lock:
            record = self._rows.pop(uid, None) if uid else None
        if record is None:
            raise ModelNotFoundError(str(model_id))
        logger.info(f"Deleted model {model_id}")
        return record

    def set_artifact_path(
        self,
        model_id: str,
        artifact_type: ArtifactType,
        location: str,
        actor: str,
    ) -> ModelRecord:
        column = ARTIFACT_PATH_COLUMNS[ArtifactType(artifact_type)]
        return self._update_row(model_id, {column: location}, actor)

    def ping(self) -> bool:
        return True


def build_model_store(settings: "Settings", engine: Engine | None = None) -> ModelStore:
    """Select the persistence strategy named by ``settings.model_store``."""
    if settings.model_store == "memory":
        logger.info("Using in-memory model store")
        return MemoryModelStore()
    if engine is None:
        raise ValueError("The sql model store requires a database engine")
    return SqlModelStore(engine)
