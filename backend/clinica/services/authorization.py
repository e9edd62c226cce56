"""
Role and permission predicates.

An identity is either a complete user (dict with a ``rol`` record) or
anything carrying ``role``/``permissions`` attributes (token claims, cached
sessions). Checks are plain string and set membership; roles have no
hierarchy.
"""

from typing import Iterable, Optional

ADMIN_ROLE = "admin"
PATIENT_ROLE = "paciente"


def role_name(identity) -> Optional[str]:
    if isinstance(identity, dict):
        role = identity.get("rol")
        return role.get("nombre") if isinstance(role, dict) else None
    return getattr(identity, "role", None)


def permissions(identity) -> list[str]:
    if isinstance(identity, dict):
        role = identity.get("rol")
        return list(role.get("permisos") or []) if isinstance(role, dict) else []
    return list(getattr(identity, "permissions", None) or [])


def is_admin(identity) -> bool:
    return role_name(identity) == ADMIN_ROLE


def is_patient(identity) -> bool:
    return role_name(identity) == PATIENT_ROLE


def has_permission(identity, permission: str) -> bool:
    return permission in permissions(identity)


def has_any_role(identity, roles: Iterable[str]) -> bool:
    name = role_name(identity)
    return name is not None and name in set(roles)
