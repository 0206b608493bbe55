from .errors import ApiError, AuthError, ConfigMissingError, ConsentRequiredError, TokenApiError
from .jwt_auth import JwtTokenProvider, Token, consent_url

__all__ = [
    "ApiError",
    "AuthError",
    "ConfigMissingError",
    "ConsentRequiredError",
    "JwtTokenProvider",
    "Token",
    "TokenApiError",
    "consent_url",
]
