"""Pytest configuration and fixtures for the clinica test suite."""

import json
from datetime import timedelta

import pytest
import pytest_asyncio
from argon2 import PasswordHasher

from clinica.schemas.records import PROFILE_EMPLOYEE, PROFILE_PATIENT
from clinica.services.auth_service import AuthService
from clinica.services.passwords import CredentialVerifier
from clinica.services.record_store import COLLECTIONS, RecordStore, initialize_document
from clinica.services.session_cache import SessionCache
from clinica.services.token_authority import TokenAuthority, utcnow

SEED_ROLES = [
    {"nombre": "admin", "permisos": ["manage_users", "gestionar_insumos"]},
    {"nombre": "medico", "permisos": ["acceso_medico", "ver_pacientes"]},
    {"nombre": "empleado", "permisos": ["gestionar_insumos"]},
    {"nombre": "paciente", "permisos": ["ver_historia_clinica"]},
]


class FakeClock:
    """Controllable clock; starts at the real current time so issued tokens are not expired."""

    def __init__(self):
        self.now = utcnow()

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def verifier():
    """Cheap Argon2 parameters so tests do not spend time hashing."""
    return CredentialVerifier(PasswordHasher(time_cost=1, memory_cost=8, parallelism=1))


@pytest.fixture
def data_path(tmp_path):
    return tmp_path / "db.json"


@pytest.fixture
def write_document(data_path):
    """Write a raw document; collections not given are empty."""
    def _write(**collections):
        document = {name: collections.get(name, []) for name in COLLECTIONS}
        data_path.write_text(json.dumps(document), encoding="utf-8")
        return data_path
    return _write


@pytest_asyncio.fixture
async def store(data_path, verifier):
    await initialize_document(data_path, SEED_ROLES)
    return RecordStore(data_path, verifier=verifier)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def authority(clock):
    return TokenAuthority("test-secret", ttl=timedelta(hours=24), issuer="clinica-test", clock=clock)


@pytest.fixture
def sessions(authority, clock):
    return SessionCache(authority, clock=clock)


@pytest.fixture
def auth(store, verifier, authority, sessions):
    return AuthService(store, verifier, authority, sessions)


@pytest.fixture
def create_account(store):
    """Create employee/patient -> profile -> user through the standard creators."""
    async def _create(username, password, role_id, kind=PROFILE_EMPLOYEE, name=None):
        if kind == PROFILE_PATIENT:
            patient = await store.create_patient({
                "nombre": name or username,
                "dni": f"DNI-{username}",
                "historiaClinica": f"Historia de {username}",
            })
            profile = await store.create_profile({"tipo": PROFILE_PATIENT, "pacienteId": patient["id"]})
        else:
            employee = await store.create_employee({"nombre": name or username, "puesto": "Staff"})
            profile = await store.create_profile({"tipo": PROFILE_EMPLOYEE, "empleadoId": employee["id"]})
        return await store.create_user({
            "usuario": username,
            "password": password,
            "rolId": role_id,
            "perfilId": profile["id"],
        })
    return _create
