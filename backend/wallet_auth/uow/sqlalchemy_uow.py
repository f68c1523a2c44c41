"""
SQLAlchemy Units of Work for the account and refresh-credential repositories.

Both variants share the Flask-scoped session, so every repository used inside
one ``with`` block sees the same transaction:

- :class:`SQLAlchemyUnitOfWork` commits on a clean exit and rolls back on error.
- :class:`SQLAlchemyReadOnlyUnitOfWork` never commits and blocks writes.
"""

from __future__ import annotations

import logging
from contextlib import suppress

from sqlalchemy import event, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import InvalidRequestError, SQLAlchemyError
from sqlalchemy.orm import Session, SessionTransaction

from wallet_auth.core.extensions import db
from wallet_auth.repositories import AccountRepository, RefreshCredentialRepository
from wallet_auth.uow.base import UnitOfWork

logger = logging.getLogger(__name__)


class SQLAlchemyRepositoryContainer:
    """Bind the account and refresh-credential repositories to one session."""

    def __init__(self, *, session: Session | None = None) -> None:
        self.session: Session = session if session is not None else db.session
        self.accounts = AccountRepository(session=self.session)
        self.refresh_credentials = RefreshCredentialRepository(session=self.session)


class SQLAlchemyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    Read-write Unit of Work.

    The session starts lazily on the first statement. Leaving the block
    without an exception commits; a failing commit is rolled back and
    re-raised.

    :param session: Explicit session; defaults to the Flask-scoped one.
    """

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.rollback()
            return
        try:
            self.commit()
        except SQLAlchemyError:
            self.rollback()
            raise

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


class _WriteGuard:
    """Session and connection listeners rejecting any write statement."""

    WRITE_PREFIXES = (
        "insert",
        "update",
        "delete",
        "merge",
        "replace",
        "alter",
        "drop",
        "truncate",
        "create",
    )

    def __init__(self, session: Session, connection: Connection) -> None:
        self.session = session
        self.connection = connection
        self.active = False

    @staticmethod
    def _before_flush(session, flush_context, instances) -> None:
        if session.new or session.dirty or session.deleted:
            raise RuntimeError(
                "Read-only UnitOfWork: ORM flush blocked (new/dirty/deleted objects present)."
            )

    def _before_cursor_execute(self, conn, cursor, statement, parameters, context, executemany):
        verb = statement.lstrip().split(None, 1)[0].lower() if statement else ""
        if verb.startswith(self.WRITE_PREFIXES):
            raise RuntimeError(f"Read-only UnitOfWork: SQL statement blocked: {verb.upper()}")

    def install(self) -> None:
        if self.active:
            return
        event.listen(self.session, "before_flush", self._before_flush)
        event.listen(self.connection, "before_cursor_execute", self._before_cursor_execute)
        self.active = True

    def remove(self) -> None:
        if not self.active:
            return
        with suppress(InvalidRequestError):
            event.remove(self.session, "before_flush", self._before_flush)
        with suppress(InvalidRequestError):
            event.remove(self.connection, "before_cursor_execute", self._before_cursor_execute)
        self.active = False


class SQLAlchemyReadOnlyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    Read-only Unit of Work for lookups (login, status checks, validation).

    - Owns the transaction when none is running and always rolls it back.
    - Issues ``SET TRANSACTION READ ONLY`` on PostgreSQL and MySQL.
    - Blocks ORM flushes and raw DML on every dialect (SQLite included).
    - ``commit()`` raises.

    :param enforce_db_readonly: Apply the database-level read-only flag when supported.
    """

    _READONLY_DIALECTS = ("postgresql", "mysql", "mariadb")

    def __init__(self, *, session: Session | None = None, enforce_db_readonly: bool = True) -> None:
        super().__init__(session=session)
        self.enforce_db_readonly = enforce_db_readonly
        self._txn: SessionTransaction | None = None
        self._guard: _WriteGuard | None = None

    def __enter__(self) -> SQLAlchemyReadOnlyUnitOfWork:
        self._txn = None
        try:
            txn = self.session.begin()
            txn.__enter__()
            self._txn = txn
        except InvalidRequestError:
            # A transaction is already running; attach to it.
            pass

        connection = self.session.connection()
        if (
            self._txn is not None
            and self.enforce_db_readonly
            and connection.dialect.name in self._READONLY_DIALECTS
        ):
            try:
                self.session.execute(text("SET TRANSACTION READ ONLY"))
            except SQLAlchemyError as exc:
                logger.warning("SET TRANSACTION READ ONLY failed; using guards only (%s)", exc)

        self._guard = _WriteGuard(self.session, connection)
        self._guard.install()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if self._txn is not None:
                txn, self._txn = self._txn, None
                self.session.rollback()
                txn.__exit__(exc_type, exc, tb)
        finally:
            if self._guard is not None:
                self._guard.remove()
                self._guard = None

    def commit(self) -> None:
        """
        Disallow commit in read-only Unit of Work.

        :raises RuntimeError: always, to prevent accidental writes.
        """
        raise RuntimeError("Read-only UnitOfWork does not allow commit().")

    def rollback(self) -> None:
        self.session.rollback()
