from __future__ import annotations
from contextlib import contextmanager
import logging

from sqlalchemy.exc import IntegrityError

from extensions import db

log = logging.getLogger(__name__)


class AlternativesError(Exception):
    code = "ERROR"
    http_status = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AlternativesError):
    """Malformed input: nothing was written."""
    code = "VALIDATION_ERROR"
    http_status = 400


class NotFoundError(AlternativesError):
    code = "NOT_FOUND"
    http_status = 404


class ConstraintError(AlternativesError):
    """Storage rejected the write (unique or foreign key)."""
    code = "CONSTRAINT_VIOLATION"
    http_status = 409


@contextmanager
def atomic():
    """Commit on success, roll back on any error."""
    try:
        yield db.session
        db.session.commit()
    except IntegrityError as ex:
        db.session.rollback()
        log.warning("integrity error, rolled back: %s", getattr(ex, "orig", ex))
        raise ConstraintError("The change conflicts with existing data. Reload and try again.") from ex
    except Exception:
        db.session.rollback()
        raise
