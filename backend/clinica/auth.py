"""
FastAPI dependencies: token extraction and the access gates.

Token precedence: ``Authorization: Bearer <token>``, then the ``X-Session-Id``
header, then the ``sessionId`` cookie. A missing token is a 401 like an
invalid one.
"""

from typing import Optional

from fastapi import Depends, Request

from clinica.exceptions import InvalidTokenError
from clinica.services.auth_service import MEDICAL_PERMISSION, SUPPLY_ROLES, AuthService

SESSION_HEADER = "X-Session-Id"
SESSION_COOKIE = "sessionId"


def extract_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer ") and auth_header[7:]:
        return auth_header[7:]
    return request.headers.get(SESSION_HEADER) or request.cookies.get(SESSION_COOKIE) or None


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.services.auth


def require_token(request: Request) -> str:
    token = extract_token(request)
    if not token:
        raise InvalidTokenError("Not authenticated: token required")
    return token


async def get_current_user(
    token: str = Depends(require_token),
    auth: AuthService = Depends(get_auth_service),
) -> dict:
    return await auth.current_user(token)


async def require_admin(
    token: str = Depends(require_token),
    auth: AuthService = Depends(get_auth_service),
) -> dict:
    return await auth.require_admin(token)


async def require_medical_access(
    token: str = Depends(require_token),
    auth: AuthService = Depends(get_auth_service),
) -> dict:
    return await auth.require_permission(token, MEDICAL_PERMISSION)


async def require_patient(
    token: str = Depends(require_token),
    auth: AuthService = Depends(get_auth_service),
) -> dict:
    return await auth.require_patient(token)


async def require_supply_access(
    token: str = Depends(require_token),
    auth: AuthService = Depends(get_auth_service),
) -> dict:
    return await auth.require_roles(token, SUPPLY_ROLES)
