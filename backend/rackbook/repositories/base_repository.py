# backend/rackbook/repositories/base_repository.py
"""
Generic repository base for rackbook.

Repositories never commit; the service that owns the session does. Every
SQLAlchemyError is logged and re-raised as RepositoryException, so a
validator can tell an unreadable store apart from an empty side.
"""

import logging
from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException

T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """
    Lookup, insert and count for a single mapped model.

    Attributes:
        db: Session owned by the calling service
        model: Mapped class the repository reads and writes
    """

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    def get_by_id(self, id: str) -> Optional[T]:
        try:
            return self.db.query(self.model).filter(self.model.id == id).first()  # type: ignore[attr-defined]
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading {self.model.__name__} {id}: {str(e)}")
            raise RepositoryException(f"Failed to load {self.model.__name__}: {str(e)}")

    def create(self, **kwargs: Any) -> T:
        """
        Add one row and flush so its generated id is available.

        Raises:
            RepositoryException: If the insert violates a constraint or fails
        """
        try:
            entity = self.model(**kwargs)
            self.db.add(entity)
            self.db.flush()
            return entity
        except IntegrityError as exc:
            self.logger.error(
                "Constraint violated adding %s: %s", self.model.__name__, exc, exc_info=True
            )
            self.db.rollback()
            raise RepositoryException(f"Integrity constraint violated: {exc}") from exc
        except SQLAlchemyError as e:
            self.logger.error(f"Error adding {self.model.__name__}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to save {self.model.__name__}: {str(e)}")

    def count(self, **criteria: Any) -> int:
        """Rows whose columns equal ``criteria``."""
        try:
            return self.db.query(self.model).filter_by(**criteria).count()
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting {self.model.__name__} rows: {str(e)}")
            raise RepositoryException(f"Failed to count {self.model.__name__}: {str(e)}")
