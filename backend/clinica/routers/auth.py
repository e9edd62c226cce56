from fastapi import APIRouter, Depends, HTTPException, Response

from clinica.auth import SESSION_COOKIE, get_auth_service, get_current_user, require_token
from clinica.schemas.auth import AuthenticationResult, PasswordChangeRequest
from clinica.services.auth_service import AuthService

router = APIRouter()


def _credentials(body: dict) -> tuple[str, str]:
    username = body.get("usuario")
    password = body.get("password")
    if not isinstance(username, str) or not isinstance(password, str):
        raise HTTPException(status_code=400, detail="usuario and password are required")
    username = username.strip()
    if not username or not password:
        raise HTTPException(status_code=400, detail="usuario and password are required")
    return username, password


def _login_response(result: AuthenticationResult) -> dict:
    return {
        "success": True,
        "message": "Authentication successful",
        "data": {
            "usuario": result.identity,
            "token": result.token,
            "sessionId": result.token,
            "permisos": result.permissions,
            "expiresIn": result.expires_in,
        },
    }


@router.post("/login")
async def login(body: dict, auth: AuthService = Depends(get_auth_service)):
    """Login for any user. Body: {"usuario": "...", "password": "..."}"""
    username, password = _credentials(body)
    return _login_response(await auth.authenticate(username, password))


@router.post("/admin/login")
async def login_admin(body: dict, auth: AuthService = Depends(get_auth_service)):
    username, password = _credentials(body)
    return _login_response(await auth.authenticate_admin(username, password))


@router.post("/logout")
async def logout(
    response: Response,
    token: str = Depends(require_token),
    auth: AuthService = Depends(get_auth_service),
):
    removed = auth.logout(token)
    response.delete_cookie(SESSION_COOKIE)
    return {
        "success": True,
        "message": "Logged out",
        "session_removed": removed,
        # Tokens are stateless; there is no revocation list
        "note": "The token remains valid until it expires.",
    }


@router.get("/me")
async def me(
    token: str = Depends(require_token),
    user: dict = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    claims = auth.authority.validate(token)
    return {
        "success": True,
        "data": {
            "usuario": {
                "id": user["id"],
                "usuario": user["usuario"],
                "rol": user["rol"].get("nombre"),
                "perfil": user["perfil"],
            },
            "permisos": user["rol"].get("permisos") or [],
            "tokenInfo": {
                "issuedAt": claims.issued_at.isoformat(),
                "expiresAt": claims.expires_at.isoformat(),
                "issuer": claims.issuer,
            },
        },
    }


@router.post("/password")
async def change_password(
    body: PasswordChangeRequest,
    token: str = Depends(require_token),
    auth: AuthService = Depends(get_auth_service),
):
    await auth.change_password(token, body.current_password, body.new_password)
    return {"success": True, "message": "Password updated"}
