import logging
from contextlib import contextmanager

from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from extensions import db
from services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


@contextmanager
def transaction():
    """Commit the session when the block succeeds, roll back on any error."""
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.debug("Transaction rolled back", exc_info=True)
        raise


_INSERTS = {
    "mysql": mysql_insert,
    "sqlite": sqlite_insert,
    "postgresql": postgresql_insert,
}


def upsert(model, rows, keys, update_columns):
    """
    INSERT ... ON DUPLICATE KEY / ON CONFLICT for ``rows`` (list of column
    dicts). Existing rows matching ``keys`` get ``update_columns`` from the
    incoming values. Runs on the current session; the caller commits.
    """
    if not rows:
        return
    dialect = db.session.get_bind().dialect.name
    insert = _INSERTS.get(dialect)
    if insert is None:
        raise NotImplementedError(f"No upsert for database dialect {dialect}")

    stmt = insert(model).values(rows)
    if dialect == "mysql":
        changes = {column: stmt.inserted[column] for column in update_columns}
        stmt = stmt.on_duplicate_key_update(**changes)
    else:
        changes = {column: stmt.excluded[column] for column in update_columns}
        stmt = stmt.on_conflict_do_update(index_elements=list(keys), set_=changes)
    db.session.execute(stmt)


def get_or_404(model, pk, label=None):
    obj = db.session.get(model, pk) if pk is not None else None
    if obj is None:
        raise NotFoundError(f"{label or model.__name__} {pk} not found")
    return obj


def parse_int(value, field):
    if value is None or str(value).strip() == "":
        raise ValidationError(f"{field} is required")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")
