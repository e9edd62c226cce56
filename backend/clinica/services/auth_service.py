"""
Authentication flows and the access gates used by role-specific views.

login:  username lookup -> password check -> complete user -> token -> session
gates:  token validation (authority) -> session refresh (cache) -> live
        complete user (store) -> role/permission predicate
"""

import logging
from datetime import timedelta
from typing import Iterable, Optional

from clinica.exceptions import (
    InsufficientPermissionsError,
    InternalError,
    InvalidCredentialsError,
    NotFoundError,
    ValidationError,
)
from clinica.schemas.auth import AuthenticationResult, SessionStatistics, TokenClaims
from clinica.services import authorization
from clinica.services.passwords import CredentialVerifier
from clinica.services.record_store import USERS, RecordStore
from clinica.services.session_cache import SessionCache
from clinica.services.token_authority import TokenAuthority

logger = logging.getLogger(__name__)

MEDICAL_PERMISSION = "acceso_medico"
SUPPLY_ROLES = ("admin", "medico", "empleado")
SUPPLY_EDITOR_ROLES = ("admin", "empleado")


class AuthService:
    def __init__(
        self,
        store: RecordStore,
        verifier: CredentialVerifier,
        authority: TokenAuthority,
        sessions: SessionCache,
    ):
        self.store = store
        self.verifier = verifier
        self.authority = authority
        self.sessions = sessions

    # ==================== Login / logout ====================

    async def authenticate(self, username: str, password: str) -> AuthenticationResult:
        try:
            user = await self.store.get_user_by_username(username)
        except NotFoundError:
            logger.warning("Login failed for '%s': unknown user", username)
            raise InvalidCredentialsError(code="USER_NOT_FOUND")

        try:
            valid = self.verifier.verify(password, user.get("password"))
        except ValidationError as e:
            logger.error("User %s has an unusable password hash", user["id"])
            raise InternalError("Authentication failed", details={"user_id": user["id"]}) from e
        if not valid:
            logger.warning("Login failed for '%s': wrong password", username)
            raise InvalidCredentialsError(code="INVALID_PASSWORD")

        try:
            identity = await self.store.get_complete_user(user["id"])
        except NotFoundError as e:
            logger.error("User %s cannot be resolved: %s", user["id"], e)
            raise InternalError("Authentication failed", details={"user_id": user["id"]}) from e

        return self._open_session(identity)

    async def authenticate_admin(self, username: str, password: str) -> AuthenticationResult:
        result = await self.authenticate(username, password)
        if not authorization.is_admin(result.identity):
            self.sessions.revoke(result.token)
            logger.warning("Admin login refused for '%s': role is not admin", username)
            raise InsufficientPermissionsError("Administrator permissions required")
        return result

    def _open_session(self, identity: dict) -> AuthenticationResult:
        claims = TokenClaims(
            user_id=identity["id"],
            username=identity["usuario"],
            role=authorization.role_name(identity),
            permissions=authorization.permissions(identity),
        )
        token = self.authority.issue(claims)
        session = self.sessions.track(token, claims)
        logger.info("Session opened for user %s (%s)", claims.user_id, claims.role)
        return AuthenticationResult(
            identity=identity,
            token=token,
            permissions=claims.permissions,
            created_at=session.created_at,
            expires_in=self.authority.expires_in,
        )

    def logout(self, token: str) -> bool:
        """Forget the session. The token itself remains valid until it expires."""
        self.authority.validate(token)
        return self.sessions.revoke(token)

    # ==================== Current user and gates ====================

    async def current_user(self, token: str) -> dict:
        session = self.sessions.get(token)
        try:
            return await self.store.get_complete_user(session.user_id)
        except NotFoundError:
            logger.warning("Token for user %s no longer resolves to a user", session.user_id)
            raise InvalidCredentialsError(code="USER_NOT_FOUND")

    async def require_admin(self, token: str) -> dict:
        identity = await self.current_user(token)
        if not authorization.is_admin(identity):
            raise InsufficientPermissionsError("Administrator permissions required")
        return identity

    async def require_permission(self, token: str, permission: str) -> dict:
        identity = await self.current_user(token)
        if not authorization.has_permission(identity, permission):
            raise InsufficientPermissionsError(f"Permission '{permission}' required")
        return identity

    async def require_roles(self, token: str, roles: Iterable[str]) -> dict:
        roles = list(roles)
        identity = await self.current_user(token)
        if not authorization.has_any_role(identity, roles):
            raise InsufficientPermissionsError(f"Only {', '.join(roles)} may access this resource")
        return identity

    async def require_patient(self, token: str) -> dict:
        identity = await self.current_user(token)
        if not authorization.is_patient(identity):
            raise InsufficientPermissionsError("Only patients may access this resource")
        return identity

    async def change_password(self, token: str, current_password: str, new_password: str) -> None:
        identity = await self.current_user(token)
        user = await self.store.get_by_id(USERS, identity["id"])
        if not self.verifier.verify(current_password, user.get("password")):
            raise InvalidCredentialsError(code="INVALID_PASSWORD")
        if not new_password:
            raise ValidationError("A new password is required", fields=["new_password"])
        await self.store.update_user(user["id"], {"password": new_password})
        logger.info("Password changed for user %s", user["id"])

    # ==================== Session maintenance ====================

    def session_statistics(self) -> SessionStatistics:
        return self.sessions.statistics()

    def purge_sessions(self, idle_threshold: Optional[timedelta] = None) -> int:
        return self.sessions.purge_expired(idle_threshold)
