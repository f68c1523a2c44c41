from .dto import (
    AuthenticatedOut,
    Credential,
    LocalCredential,
    LoginIn,
    NeedsMigrationOut,
    ProviderToken,
    RegisterIn,
)
from .service import AuthService

__all__ = [
    "AuthService",
    "AuthenticatedOut",
    "Credential",
    "LocalCredential",
    "LoginIn",
    "NeedsMigrationOut",
    "ProviderToken",
    "RegisterIn",
]
