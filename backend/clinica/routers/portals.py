from fastapi import APIRouter, Depends, Request

from clinica.auth import require_medical_access, require_patient, require_supply_access
from clinica.services.auth_service import SUPPLY_EDITOR_ROLES
from clinica.services.authorization import has_any_role
from clinica.services.record_store import SUPPLIES

router = APIRouter()


@router.get("/medico/home")
async def medical_home(request: Request, user: dict = Depends(require_medical_access)):
    store = request.app.state.services.store
    employee = user["perfil"].get("empleado")
    tasks = await store.get_tasks_by_employee(employee["id"]) if employee else []
    return {
        "title": "Panel Médico",
        "usuario": user,
        "empleado": employee,
        "tareas": tasks,
    }


@router.get("/paciente/home")
async def patient_home(user: dict = Depends(require_patient)):
    patient = user["perfil"].get("paciente")
    return {
        "title": "Mi Portal de Paciente",
        "usuario": user,
        "paciente": patient,
        "historiaClinica": (patient or {}).get("historiaClinica") or "Sin información disponible",
    }


@router.get("/insumos")
async def supplies(request: Request, user: dict = Depends(require_supply_access)):
    store = request.app.state.services.store
    return {
        "title": "Gestión de Insumos",
        "usuario": user,
        "insumos": await store.get_all(SUPPLIES),
        "puede_editar": has_any_role(user, SUPPLY_EDITOR_ROLES),
    }
