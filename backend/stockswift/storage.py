# Overview: Transactional key-value storage over the local SQLite database.
"""
Storage engine.

Two collections, "products" and "sales", keyed by the record's string id.
Records go in and come out as plain dicts in the backup-document shape.

TRANSACTIONS:
Every public operation runs inside transaction(). The context manager is
re-entrant: nested blocks join the outermost one and only the outermost
block commits. Any exception inside the block rolls back everything written
since it opened, so multi-record operations (sale finalize, import,
clear-all) are commit-or-abort.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .models import Product, Sale, SaleItem


class StorageError(Exception):
    """Raised when the underlying store fails (open, abort, constraint, missing key)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ConstraintError(StorageError):
    """A write would break a uniqueness constraint (duplicate sku / internal code / id)."""


class KeyNotFoundError(StorageError):
    """delete targeted a key that is not in the collection."""


# collection name -> (model, child models cleared before the parent)
COLLECTIONS = {
    "products": (Product, ()),
    "sales": (Sale, (SaleItem,)),
}


class Storage:
    """
    Explicitly constructed storage handle.

    Owned by the application factory and passed into each repository.
    """

    def __init__(self, db: SQLAlchemy):
        self._db = db
        self._depth = 0
        self._initialized = False

    @property
    def session(self):
        return self._db.session

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def init(self) -> None:
        """Create the collections if missing. Repeated calls are no-ops."""
        if self._initialized:
            return
        try:
            self._db.create_all()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to open storage: {exc}") from exc
        self._initialized = True

    @contextmanager
    def transaction(self) -> Iterator["Storage"]:
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            yield self
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            current_app.logger.exception("Storage transaction aborted on constraint violation")
            raise ConstraintError(f"Constraint violation: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            current_app.logger.exception("Storage transaction aborted")
            raise StorageError(f"Transaction aborted: {exc}") from exc
        except Exception:
            self.session.rollback()
            raise
        finally:
            self._depth = 0

    # ------------------------------------------------------------------ reads

    def _model(self, collection: str):
        try:
            return COLLECTIONS[collection][0]
        except KeyError:
            raise StorageError(f"Unknown collection: {collection}")

    def _find(self, model, key: str):
        return self.session.query(model).filter(model.id == key).first()

    def get(self, collection: str, key: str) -> dict | None:
        model = self._model(collection)
        with self.transaction():
            obj = self._find(model, key)
            return obj.to_dict() if obj else None

    def get_all(self, collection: str) -> list[dict]:
        """All records in storage natural order (insertion order)."""
        model = self._model(collection)
        with self.transaction():
            rows = self.session.query(model).order_by(model.seq.asc()).all()
            return [r.to_dict() for r in rows]

    def get_range(self, collection: str, *, created_from: int, created_to: int) -> list[dict]:
        """Records with created_from <= createdAt < created_to, natural order."""
        model = self._model(collection)
        with self.transaction():
            rows = (
                self.session.query(model)
                .filter(model.created_at >= created_from, model.created_at < created_to)
                .order_by(model.seq.asc())
                .all()
            )
            return [r.to_dict() for r in rows]

    def count(self, collection: str) -> int:
        model = self._model(collection)
        with self.transaction():
            return self.session.query(model).count()

    # ----------------------------------------------------------------- writes

    def _check_unique(self, model, obj) -> None:
        for field in ("id",) + tuple(model.UNIQUE_FIELDS):
            column = getattr(model, model.DOCUMENT_FIELDS[field])
            value = getattr(obj, model.DOCUMENT_FIELDS[field])
            with self.session.no_autoflush:
                clash = (
                    self.session.query(model.seq)
                    .filter(column == value, model.seq != obj.seq)
                    .first()
                )
            if clash:
                raise ConstraintError(
                    f"{field} already exists: {value}",
                    details={"collection": model.__tablename__, "field": field, "value": value},
                )

    def _flush(self, model, obj) -> None:
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise ConstraintError(
                f"Constraint violation in {model.__tablename__}: {exc.orig}",
                details={"collection": model.__tablename__, "id": obj.id},
            ) from exc

    def _reload(self, obj) -> dict:
        """The record as the store holds it after the write."""
        self.session.refresh(obj)
        return obj.to_dict()

    def add(self, collection: str, record: dict) -> dict:
        """Insert a new record. Fails with ConstraintError if the key (or a unique field) exists."""
        model = self._model(collection)
        with self.transaction():
            obj = model.from_dict(record)
            self._check_unique(model, obj)
            self.session.add(obj)
            self._flush(model, obj)
            return self._reload(obj)

    def put(self, collection: str, record: dict) -> dict:
        """Upsert by id."""
        model = self._model(collection)
        with self.transaction():
            obj = self._find(model, record.get("id"))
            if obj is None:
                return self.add(collection, record)
            with self.session.no_autoflush:
                obj.apply(record)
                self._check_unique(model, obj)
            self._flush(model, obj)
            return self._reload(obj)

    def delete(self, collection: str, key: str) -> None:
        model = self._model(collection)
        with self.transaction():
            obj = self._find(model, key)
            if obj is None:
                raise KeyNotFoundError(
                    f"{collection} has no record {key}",
                    details={"collection": collection, "id": key},
                )
            self.session.delete(obj)
            self.session.flush()

    def clear(self, collection: str) -> int:
        """Remove every record of the collection. Returns the number removed."""
        model, children = COLLECTIONS.get(collection, (None, ()))
        if model is None:
            raise StorageError(f"Unknown collection: {collection}")
        with self.transaction():
            for child in children:
                self.session.query(child).delete(synchronize_session=False)
            deleted = self.session.query(model).delete(synchronize_session=False)
            self.session.expunge_all()
            return deleted
