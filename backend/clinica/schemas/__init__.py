from clinica.schemas.auth import TokenClaims, SessionStatistics, AuthenticationResult
from clinica.schemas.records import StoreStatistics

__all__ = ["TokenClaims", "SessionStatistics", "AuthenticationResult", "StoreStatistics"]
