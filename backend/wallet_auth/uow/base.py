"""
Abstract Unit of Work contract shared by services and the SQL refresh store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from wallet_auth.repositories import AccountRepository, RefreshCredentialRepository


class UnitOfWork(ABC):
    """
    Transactional boundary of one authentication use-case.

    :ivar accounts: Account repository bound to the transaction.
    :ivar refresh_credentials: Refresh-credential repository bound to the same transaction.
    """

    accounts: AccountRepository
    refresh_credentials: RefreshCredentialRepository

    @abstractmethod
    def __enter__(self) -> UnitOfWork: ...
    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None: ...
    @abstractmethod
    def commit(self) -> None: ...
    @abstractmethod
    def rollback(self) -> None: ...
