"""Generic repository base for SQLAlchemy 2.x.

Persistence-only helpers shared by the account and refresh-credential
repositories:

- Primary-key lookups and whitelisted equality-filter existence checks.
- Staging of new rows with an immediate flush so constraint violations
  surface inside the caller's Unit of Work.
- No commit or rollback: services and stores own transactions.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Generic, TypeVar, cast

from sqlalchemy import Select, and_, func, select
from sqlalchemy.orm import InstrumentedAttribute, Session

from wallet_auth.core.extensions import db

E = TypeVar("E")  # SQLAlchemy mapped entity type


class BaseRepository(Generic[E]):
    """Persistence-only repository for a single mapped class.

    Subclasses MUST define ``model`` and MAY override ``_pk_attr`` (when the
    key is not ``id``) and ``_filterable_fields``.
    """

    #: SQLAlchemy mapped model (must be set by subclasses)
    model: type[E]

    def __init__(self, session: Session | None = None) -> None:
        """
        :param session: Session shared across the Unit of Work scope; the
            Flask-scoped session is used when omitted.
        :type session: :class:`sqlalchemy.orm.Session` | None
        """
        self._session: Session | None = session

    @property
    def session(self) -> Session:
        """Return the active SQLAlchemy session."""
        if self._session is not None:
            return self._session
        return cast(Session, db.session)

    # ------------------------------ Extensibility ----------------------------

    def _pk_attr(self) -> InstrumentedAttribute[Any]:
        return cast(InstrumentedAttribute[Any], self.model.id)  # type: ignore[attr-defined]

    def _filterable_fields(self) -> Mapping[str, InstrumentedAttribute[Any]]:
        """Whitelist of equality-filterable fields; unknown keys are rejected."""
        return {}

    def _where(self, stmt: Select[Any], filters: Mapping[str, Any]) -> Select[Any]:
        allowed = self._filterable_fields()
        unknown = sorted(set(filters) - set(allowed))
        if unknown:
            raise ValueError(f"Non-filterable fields: {unknown}")
        clauses = [allowed[key] == value for key, value in filters.items()]
        return stmt.where(and_(*clauses)) if clauses else stmt

    # --------------------------------- Access --------------------------------

    def add(self, instance: E) -> E:
        """Stage a new row and flush so uniqueness violations raise now."""
        self.session.add(instance)
        self.flush()
        return instance

    def get(self, entity_id: Any) -> E | None:
        """Retrieve a single row by primary key, or ``None``."""
        stmt = select(self.model).where(self._pk_attr() == entity_id)
        return cast(E | None, self.session.execute(stmt).scalars().first())

    def exists(self, **filters: Any) -> bool:
        """Return ``True`` when a row matches every whitelisted equality filter."""
        stmt: Select[Any] = select(func.count()).select_from(self.model)
        return bool(self.session.execute(self._where(stmt, filters)).scalar())

    def flush(self) -> None:
        """Flush pending changes without committing."""
        self.session.flush()
