"""SQLAlchemy Entity Store — resolves belongs_to associations against relational rows.

Invariants:
    - Unknown primary key → None (absent association, never an error)
    - Every lookup uses its own short-lived Session; nothing is held between calls
    - SQLAlchemy failures mapped to EntityStoreError (core/errors.py)

Design Decisions:
    - Synchronous Session: association reads happen inside attribute access
    - Session.get(): identity-map aware primary-key lookup, no query building needed
"""

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from stateless_records.core.errors import EntityStoreError

logger = logging.getLogger(__name__)


class SqlAlchemyEntityStore:
    """EntityStore over one mapped model class."""

    def __init__(self, session_factory: sessionmaker[Session], model: type):
        self._session_factory = session_factory
        self._model = model

    def lookup_by_primary_key(self, primary_key: Any) -> Any | None:
        try:
            with self._session_factory() as session:
                entity = session.get(self._model, primary_key)
                if entity is not None:
                    session.expunge(entity)
                return entity
        except SQLAlchemyError as e:
            logger.error(f"Entity lookup failed for {self._model.__name__}: {e}")
            raise EntityStoreError(self._model.__name__, "lookup") from e

    def __repr__(self) -> str:
        return f"SqlAlchemyEntityStore({self._model.__name__})"
