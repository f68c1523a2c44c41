from .dto import AccessClaims
from .service import TokenIssuer

__all__ = ["AccessClaims", "TokenIssuer"]
