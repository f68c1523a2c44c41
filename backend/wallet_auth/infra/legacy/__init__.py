from .http_profile_source import HttpLegacyProfileSource
from .jwks_token_verifier import JWKSProviderTokenVerifier

__all__ = ["HttpLegacyProfileSource", "JWKSProviderTokenVerifier"]
