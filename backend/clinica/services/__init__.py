from dataclasses import dataclass
from datetime import timedelta

from clinica.config import Settings
from clinica.services.auth_service import AuthService
from clinica.services.passwords import CredentialVerifier
from clinica.services.record_store import RecordStore
from clinica.services.session_cache import SessionCache
from clinica.services.token_authority import TokenAuthority


@dataclass
class Services:
    store: RecordStore
    verifier: CredentialVerifier
    authority: TokenAuthority
    sessions: SessionCache
    auth: AuthService


def build_services(settings: Settings, verifier: CredentialVerifier = None) -> Services:
    """Wire the core components from configuration."""
    verifier = verifier or CredentialVerifier()
    store = RecordStore(settings.data_path, verifier=verifier, low_stock_threshold=settings.low_stock_threshold)
    authority = TokenAuthority(
        settings.jwt_secret_key,
        ttl=timedelta(seconds=settings.token_ttl_seconds),
        issuer=settings.jwt_issuer,
    )
    sessions = SessionCache(authority, idle_threshold=timedelta(seconds=settings.session_idle_seconds))
    auth = AuthService(store, verifier, authority, sessions)
    return Services(store=store, verifier=verifier, authority=authority, sessions=sessions, auth=auth)


__all__ = ["Services", "build_services"]
