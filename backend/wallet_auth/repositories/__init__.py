"""Repository package exposing persistence-layer access for all domain models."""

from __future__ import annotations

from wallet_auth.repositories.account import AccountRepository
from wallet_auth.repositories.base import BaseRepository
from wallet_auth.repositories.refresh_credential import RefreshCredentialRepository

__all__ = [
    "BaseRepository",
    "AccountRepository",
    "RefreshCredentialRepository",
]
