import logging

from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from .models import TABLES, utcnow
from .schemas import RECORD_TYPES

logger = logging.getLogger(__name__)


class DataAccess:
    """Uniform CRUD surface over the users, complaints and recyclable_items tables.

    Every call fails closed: errors are logged, the session is rolled back
    and the caller gets None / False / [] instead of an exception. The
    caller identity, when known, is attached to inserts as ``user_id``.
    """

    def __init__(self, db: Session, identity: str | None = None):
        self.db = db
        self.identity = identity

    # ── helpers ──

    @staticmethod
    def _model(table: str):
        if table not in TABLES:
            raise KeyError(f"Unknown table '{table}'")
        return TABLES[table]

    @staticmethod
    def _column(model, name: str):
        # KeyError for columns the table does not have
        return model.__table__.c[name]

    @staticmethod
    def _as_row(obj, columns=None) -> dict:
        names = columns or [c.name for c in obj.__table__.columns]
        return {name: getattr(obj, name) for name in names}

    @staticmethod
    def _columns(columns) -> list[str] | None:
        if columns is None or columns == "*":
            return None
        if isinstance(columns, str):
            return [c.strip() for c in columns.split(",") if c.strip()]
        return list(columns)

    # ── CRUD ──

    def fetch(self, table: str, columns=None, filter: dict | None = None,
              order: tuple | None = None, limit: int | None = None, single: bool = False):
        """Rows of ``table`` as dicts, one dict with ``single=True``, or None on error.

        ``filter`` is equality-only and AND-combined; ``order`` is
        ``(column, ascending)`` with ascending defaulting to False.
        """
        try:
            model = self._model(table)
            names = self._columns(columns)
            for name in names or []:
                self._column(model, name)

            query = self.db.query(model)
            for key, value in (filter or {}).items():
                query = query.filter(self._column(model, key) == value)

            if order:
                if isinstance(order, str):
                    order = (order,)
                col = self._column(model, order[0])
                ascending = order[1] if len(order) > 1 else False
                query = query.order_by(col.asc() if ascending else col.desc())

            if limit:
                query = query.limit(limit)

            if single:
                obj = query.one_or_none()
                return self._as_row(obj, names) if obj is not None else None

            rows = [self._as_row(obj, names) for obj in query.all()]
            logger.debug(f"Fetched {len(rows)} rows from {table}")
            return rows
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error fetching from {table}: {e}")
            return None

    def insert(self, table: str, data: dict, return_data: bool = True):
        try:
            model = self._model(table)
            values = dict(data)
            if self.identity and "user_id" in model.__table__.c:
                values["user_id"] = self.identity

            obj = model(**values)
            self.db.add(obj)
            self.db.commit()
            self.db.refresh(obj)
            logger.info(f"Inserted into {table}: {obj.id}")
            return self._as_row(obj) if return_data else None
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error inserting into {table}: {e}")
            return None

    def update(self, table: str, id, data, id_column: str = "id", return_data: bool = True):
        """Apply ``data`` to the row(s) whose ``id_column`` equals ``id``.

        A pydantic model contributes only the fields that were explicitly
        set; in a plain dict ``None`` is a real null and is written.
        """
        try:
            model = self._model(table)
            values = data.model_dump(exclude_unset=True) if isinstance(data, BaseModel) else dict(data)
            for name in values:
                self._column(model, name)
            if "updated_at" in model.__table__.c and "updated_at" not in values:
                values["updated_at"] = utcnow()

            key = self._column(model, id_column)
            affected = self.db.query(model).filter(key == id).update(values, synchronize_session=False)
            self.db.commit()

            if affected == 0:
                logger.warning(f"Update on {table} matched no row for {id_column}={id}")
                return None

            logger.info(f"Updated {table} {id_column}={id}: {sorted(values)}")
            if not return_data:
                return None
            obj = self.db.query(model).filter(key == id).first()
            self.db.refresh(obj)
            return self._as_row(obj)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating {table} {id_column}={id}: {e}")
            return None

    def delete(self, table: str, id, id_column: str = "id") -> bool:
        try:
            model = self._model(table)
            key = self._column(model, id_column)
            affected = self.db.query(model).filter(key == id).delete(synchronize_session="fetch")
            self.db.commit()
            logger.info(f"Deleted from {table} {id_column}={id}. Affected rows: {affected}")
            return affected > 0
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error deleting from {table} {id_column}={id}: {e}")
            return False

    def claim(self, table: str, id, officer: str, area: str | None = None) -> bool:
        """Assign the row to ``officer`` only while it is still unassigned.

        Runs as one conditional UPDATE, so of two concurrent claims on the
        same row exactly one wins.
        """
        try:
            model = self._model(table)
            now = utcnow()
            values = {
                "assigned_to": officer,
                "assigned_at": now,
                "status": "in-progress",
                "updated_at": now,
            }
            if area:
                values["area"] = area

            affected = (
                self.db.query(model)
                .filter(self._column(model, "id") == id, self._column(model, "assigned_to").is_(None))
                .update(values, synchronize_session=False)
            )
            self.db.commit()
            return affected == 1
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error claiming {table} {id} for {officer}: {e}")
            return False

    # ── typed access ──

    def records(self, table: str, **fetch_kwargs) -> list:
        """``fetch`` validated into the table's record type; invalid rows are dropped."""
        rows = self.fetch(table, **fetch_kwargs)
        if rows is None:
            return []
        if isinstance(rows, dict):
            rows = [rows]

        record_type = RECORD_TYPES[table]
        out = []
        for row in rows:
            try:
                out.append(record_type.model_validate(row))
            except ValidationError as e:
                logger.warning(f"Skipping malformed {table} row {row.get('id')}: {e.error_count()} validation errors")
        return out

    def get(self, table: str, id, id_column: str = "id"):
        found = self.records(table, filter={id_column: id}, single=True)
        return found[0] if found else None
