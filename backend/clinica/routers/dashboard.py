from fastapi import APIRouter, Depends, Request

from clinica.auth import require_admin

router = APIRouter()


@router.get("/home")
async def admin_home(user: dict = Depends(require_admin)):
    return {
        "title": "Panel de Administración",
        "usuario": user,
        "permisos": user["rol"].get("permisos") or [],
    }


@router.get("/stats")
async def get_dashboard_stats(request: Request, user: dict = Depends(require_admin)):
    services = request.app.state.services
    store_stats = await services.store.get_statistics()
    return {
        "store": store_stats.model_dump(),
        "sessions": services.auth.session_statistics().model_dump(),
    }
