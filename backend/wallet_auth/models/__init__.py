from wallet_auth.models.account import Account
from wallet_auth.models.refresh_credential import RefreshCredential

__all__ = [
    "Account",
    "RefreshCredential",
]
