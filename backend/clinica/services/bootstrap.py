"""
First-run provisioning of the administrator account.

Goes through the standard creators (employee -> profile -> user) so the
account is indistinguishable from one made by hand. The default password is
expected to be rotated right after the first login.
"""

import logging
from typing import Optional

from clinica.exceptions import NotFoundError, ValidationError
from clinica.schemas.records import PROFILE_EMPLOYEE
from clinica.services.authorization import ADMIN_ROLE
from clinica.services.record_store import EMPLOYEES, PROFILES, ROLES, USERS, RecordStore

logger = logging.getLogger(__name__)

DEFAULT_ROLES = [
    {"nombre": "admin", "permisos": ["gestionar_usuarios", "gestionar_tareas", "gestionar_insumos", "ver_pacientes", "ver_estadisticas"]},
    {"nombre": "medico", "permisos": ["acceso_medico", "ver_pacientes", "gestionar_tareas"]},
    {"nombre": "empleado", "permisos": ["gestionar_insumos", "gestionar_tareas"]},
    {"nombre": "paciente", "permisos": ["ver_historia_clinica"]},
]


async def ensure_admin_user(store: RecordStore, username: str = "admin", password: str = "admin123") -> Optional[dict]:
    """
    Return an existing administrator, or create one. Idempotent.

    Returns None, creating nothing, when no administrator exists but
    ``username`` already belongs to a non-admin user.
    """
    roles = await store.get_all(ROLES)
    admin_role = next((r for r in roles if r.get("nombre") == ADMIN_ROLE), None)

    if admin_role is not None:
        for user in await store.get_all(USERS):
            if user.get("rolId") == admin_role["id"]:
                logger.info("Administrator '%s' already exists", user.get("usuario"))
                return user

    try:
        holder = await store.get_user_by_username(username)
    except NotFoundError:
        holder = None
    if holder is not None:
        logger.warning(
            "Username '%s' belongs to non-admin user %s; administrator not provisioned", username, holder["id"]
        )
        return None

    if admin_role is None:
        admin_role = await store.create_role(DEFAULT_ROLES[0])
        logger.info("Created missing '%s' role with id %s", ADMIN_ROLE, admin_role["id"])

    employee = await store.create_employee({"nombre": "Administrador del Sistema", "puesto": "Administrador"})
    profile = await store.create_profile({"tipo": PROFILE_EMPLOYEE, "empleadoId": employee["id"], "pacienteId": None})
    try:
        user = await store.create_user({
            "usuario": username,
            "password": password,
            "rolId": admin_role["id"],
            "perfilId": profile["id"],
        })
    except ValidationError:
        await store.delete(PROFILES, profile["id"])
        await store.delete(EMPLOYEES, employee["id"])
        raise
    logger.info("Provisioned administrator '%s' (user %s); rotate its password after first login", username, user["id"])
    return user
