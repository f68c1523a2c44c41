from .service import CredentialVerifier

__all__ = ["CredentialVerifier"]
