from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from linkdeck.errors import StorageError
from linkdeck.extensions import db

_DEPTH_KEY = "linkdeck_atomic_depth"


@contextmanager
def atomic():
    """Run a block inside one transaction on the shared session.

    Nested blocks join the outermost one; only the outermost block commits
    or rolls back.
    """
    session = db.session
    depth = session.info.get(_DEPTH_KEY, 0)
    session.info[_DEPTH_KEY] = depth + 1
    try:
        yield session
        if depth == 0:
            session.commit()
    except SQLAlchemyError as exc:
        if depth == 0:
            session.rollback()
        raise StorageError(f"storage failure: {exc.__class__.__name__}") from exc
    except Exception:
        if depth == 0:
            session.rollback()
        raise
    finally:
        session.info[_DEPTH_KEY] = depth
