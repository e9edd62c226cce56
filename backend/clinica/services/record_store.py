"""
Flat-file record store.

A single JSON document holds every collection. The document is loaded lazily
on first access and stays resident for the life of the store. Every mutation
copies the resident document, applies the change to the copy, writes the whole
copy to disk and only then swaps it in, so a failed write leaves the resident
state untouched.

Mutations on one store instance are serialized through a single writer lock.
Two store instances over the same file (e.g. two worker processes) are NOT
coordinated: each keeps its own resident copy and the last one to write wins
for the whole document.
"""

import asyncio
import copy
import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any, Callable, Optional

import aiofiles
from pydantic import ValidationError as PydanticValidationError

from clinica.exceptions import NotFoundError, StorageError, ValidationError
from clinica.schemas.records import (
    PROFILE_EMPLOYEE,
    PROFILE_PATIENT,
    TASK_COMPLETED,
    TASK_PENDING,
    EmployeeCreate,
    PatientCreate,
    ProfileCreate,
    RoleCreate,
    StoreStatistics,
    SupplyCreate,
    TaskCreate,
    UserCreate,
)
from clinica.services.passwords import CredentialVerifier

logger = logging.getLogger(__name__)

ROLES = "roles"
USERS = "usuarios"
PROFILES = "perfiles"
EMPLOYEES = "empleados"
PATIENTS = "pacientes"
TASKS = "tareas"
SUPPLIES = "insumos"
COLLECTIONS = (ROLES, USERS, PROFILES, EMPLOYEES, PATIENTS, TASKS, SUPPLIES)

# Highest id ever assigned per collection, so deleted ids are never handed out again
SEQUENCES = "secuencias"


def empty_document() -> dict:
    document = {name: [] for name in COLLECTIONS}
    document[SEQUENCES] = {name: 0 for name in COLLECTIONS}
    return document


async def initialize_document(path, roles: Optional[list[dict]] = None) -> bool:
    """Create a fresh document with the given seed roles. Never overwrites an existing file."""
    path = Path(path)
    if path.exists():
        return False
    document = empty_document()
    for role in roles or []:
        _insert(document, ROLES, _validated(RoleCreate, role))
    await _write_document(path, document)
    logger.info("Initialized record store at %s with %d roles", path, len(document[ROLES]))
    return True


async def _write_document(path: Path, document: dict) -> None:
    # One temp file per write: writers from other processes must not share it
    tmp_path = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")
    try:
        payload = json.dumps(document, indent=2, ensure_ascii=False)
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write(payload)
        os.replace(tmp_path, path)
    except (OSError, TypeError, ValueError) as e:
        if tmp_path.exists():
            tmp_path.unlink()
        logger.error("Could not write record store %s: %s", path, e)
        raise StorageError(f"Could not write record store: {e}") from e


def _validated(schema, fields, exclude_none: bool = False) -> dict:
    """Run ``fields`` through a pydantic schema, reporting failures as ValidationError."""
    try:
        return schema.model_validate(fields).model_dump(exclude_none=exclude_none)
    except PydanticValidationError as e:
        names = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
        raise ValidationError(
            f"Missing or invalid fields: {', '.join(names) or 'record'}", fields=names
        ) from e


def _coerce_id(record_id) -> Optional[int]:
    if isinstance(record_id, bool):
        return None
    try:
        return int(record_id)
    except (TypeError, ValueError):
        return None


def _table(document: dict, collection: str) -> list:
    if collection not in COLLECTIONS:
        raise NotFoundError(f"Collection '{collection}' does not exist")
    return document[collection]


def _locate(document: dict, collection: str, record_id) -> tuple[int, dict]:
    table = _table(document, collection)
    wanted = _coerce_id(record_id)
    if wanted is not None:
        for index, record in enumerate(table):
            if record["id"] == wanted:
                return index, record
    raise NotFoundError(f"Record {record_id} not found in '{collection}'")


def _insert(document: dict, collection: str, fields: dict) -> dict:
    table = _table(document, collection)
    sequences = document[SEQUENCES]
    highest = max((record["id"] for record in table), default=0)
    new_id = max(highest, sequences.get(collection, 0)) + 1
    record = {"id": new_id, **{k: v for k, v in fields.items() if k != "id"}}
    table.append(record)
    sequences[collection] = new_id
    return record


def _check_structure(document) -> dict:
    if not isinstance(document, dict):
        raise StorageError("Record store document must be a JSON object")
    for name in COLLECTIONS:
        table = document.get(name)
        if not isinstance(table, list):
            raise StorageError(f"Record store is missing the '{name}' collection")
        for record in table:
            if not isinstance(record, dict) or type(record.get("id")) is not int:
                raise StorageError(f"Malformed record in '{name}': every record needs an integer id")

    stored = document.get(SEQUENCES)
    stored = stored if isinstance(stored, dict) else {}
    sequences = {}
    for name in COLLECTIONS:
        highest = max((record["id"] for record in document[name]), default=0)
        previous = stored.get(name)
        sequences[name] = max(previous if isinstance(previous, int) else 0, highest)
    document[SEQUENCES] = sequences
    return document


class RecordStore:
    def __init__(
        self,
        path,
        verifier: Optional[CredentialVerifier] = None,
        low_stock_threshold: float = 50,
    ):
        self.path = Path(path)
        self.low_stock_threshold = low_stock_threshold
        self._verifier = verifier or CredentialVerifier()
        self._data: Optional[dict] = None
        self._load_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()

    # ==================== Loading and persistence ====================

    async def load(self) -> None:
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                raw = await f.read()
        except FileNotFoundError as e:
            logger.error("Record store not found at %s", self.path)
            raise StorageError(f"Record store not found at {self.path}") from e
        except OSError as e:
            logger.error("Could not read record store %s: %s", self.path, e)
            raise StorageError(f"Could not read record store: {e}") from e

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("Record store %s is not valid JSON: %s", self.path, e)
            raise StorageError(f"Record store is not valid JSON: {e}") from e

        self._data = _check_structure(document)
        logger.info("Loaded record store from %s", self.path)

    async def ensure_loaded(self) -> None:
        if self._data is not None:
            return
        async with self._load_lock:
            if self._data is None:
                await self.load()

    async def _commit(self, change: Callable[[dict], Any]) -> Any:
        """Apply ``change`` to a copy of the document, persist it, then swap it in."""
        async with self._write_lock:
            await self.ensure_loaded()
            draft = copy.deepcopy(self._data)
            result = change(draft)
            await _write_document(self.path, draft)
            self._data = draft
        return copy.deepcopy(result)

    # ==================== Generic CRUD ====================

    async def get_all(self, collection: str) -> list[dict]:
        await self.ensure_loaded()
        return copy.deepcopy(_table(self._data, collection))

    async def get_by_id(self, collection: str, record_id) -> dict:
        await self.ensure_loaded()
        return copy.deepcopy(_locate(self._data, collection, record_id)[1])

    def _hash_secret(self, collection: str, fields: dict) -> dict:
        """User passwords are stored as hashes whichever write path they arrive through."""
        if collection == USERS and "password" in fields:
            return {**fields, "password": self._verifier.hash(fields["password"])}
        return fields

    async def create(self, collection: str, fields: dict) -> dict:
        if not isinstance(fields, dict):
            raise ValidationError("Record fields must be an object")
        fields = self._hash_secret(collection, fields)
        return await self._commit(lambda document: _insert(document, collection, fields))

    async def update(self, collection: str, record_id, fields: dict) -> dict:
        if not isinstance(fields, dict):
            raise ValidationError("Record fields must be an object")
        fields = self._hash_secret(collection, fields)

        def change(document):
            index, record = _locate(document, collection, record_id)
            updated = {**record, **fields, "id": record["id"]}
            document[collection][index] = updated
            return updated

        return await self._commit(change)

    async def delete(self, collection: str, record_id) -> dict:
        def change(document):
            index, _ = _locate(document, collection, record_id)
            return document[collection].pop(index)

        return await self._commit(change)

    # ==================== Entity creators ====================

    async def create_role(self, fields: dict) -> dict:
        return await self.create(ROLES, _validated(RoleCreate, fields))

    async def create_user(self, fields: dict) -> dict:
        data = _validated(UserCreate, fields, exclude_none=True)
        data["password"] = self._verifier.hash(data["password"])

        def change(document):
            if any(user.get("usuario") == data["usuario"] for user in document[USERS]):
                raise ValidationError(
                    f"Username '{data['usuario']}' is already taken", fields=["usuario"]
                )
            return _insert(document, USERS, data)

        return await self._commit(change)

    async def create_profile(self, fields: dict) -> dict:
        data = _validated(ProfileCreate, fields)
        if data["tipo"] == PROFILE_EMPLOYEE:
            linked, other = "empleadoId", "pacienteId"
        else:
            linked, other = "pacienteId", "empleadoId"
        if data[linked] is None:
            raise ValidationError(f"A {data['tipo']} profile requires {linked}", fields=[linked])
        if data[other] is not None:
            raise ValidationError(f"A {data['tipo']} profile cannot set {other}", fields=[other])
        return await self.create(PROFILES, data)

    async def create_employee(self, fields: dict) -> dict:
        return await self.create(EMPLOYEES, _validated(EmployeeCreate, fields))

    async def create_patient(self, fields: dict) -> dict:
        data = _validated(PatientCreate, fields)

        def change(document):
            if any(patient.get("dni") == data["dni"] for patient in document[PATIENTS]):
                raise ValidationError(f"A patient with DNI '{data['dni']}' already exists", fields=["dni"])
            return _insert(document, PATIENTS, data)

        return await self._commit(change)

    async def create_task(self, fields: dict) -> dict:
        return await self.create(TASKS, _validated(TaskCreate, fields))

    async def create_supply(self, fields: dict) -> dict:
        return await self.create(SUPPLIES, _validated(SupplyCreate, fields))

    # ==================== Entity updaters ====================

    async def update_user(self, user_id, fields: dict) -> dict:
        if not isinstance(fields, dict):
            raise ValidationError("Record fields must be an object")
        data = self._hash_secret(USERS, dict(fields))

        def change(document):
            index, record = _locate(document, USERS, user_id)
            username = data.get("usuario")
            if username is not None and any(
                user.get("usuario") == username and user["id"] != record["id"]
                for user in document[USERS]
            ):
                raise ValidationError(f"Username '{username}' is already taken", fields=["usuario"])
            updated = {**record, **data, "id": record["id"]}
            document[USERS][index] = updated
            return updated

        return await self._commit(change)

    async def update_supply_stock(self, supply_id, stock) -> dict:
        if isinstance(stock, bool) or not isinstance(stock, (int, float)):
            raise ValidationError("Stock must be a number", fields=["stock"])
        return await self.update(SUPPLIES, supply_id, {"stock": stock})

    async def update_task_status(self, task_id, status: str) -> dict:
        if not isinstance(status, str) or not status:
            raise ValidationError("Status must be a non-empty string", fields=["estado"])
        return await self.update(TASKS, task_id, {"estado": status})

    # ==================== Lookups ====================

    async def get_user_by_username(self, username: str) -> dict:
        await self.ensure_loaded()
        for user in self._data[USERS]:
            if user.get("usuario") == username:
                return copy.deepcopy(user)
        raise NotFoundError(f"User '{username}' not found")

    async def get_patient_by_national_id(self, dni: str) -> dict:
        await self.ensure_loaded()
        for patient in self._data[PATIENTS]:
            if patient.get("dni") == dni:
                return copy.deepcopy(patient)
        raise NotFoundError(f"Patient with DNI '{dni}' not found")

    async def get_tasks_by_employee(self, employee_id) -> list[dict]:
        await self.ensure_loaded()
        wanted = _coerce_id(employee_id)
        return copy.deepcopy([t for t in self._data[TASKS] if t.get("empleadoId") == wanted])

    async def get_tasks_by_patient(self, patient_id) -> list[dict]:
        await self.ensure_loaded()
        wanted = _coerce_id(patient_id)
        return copy.deepcopy([t for t in self._data[TASKS] if t.get("pacienteId") == wanted])

    async def get_tasks_by_status(self, status: str) -> list[dict]:
        await self.ensure_loaded()
        return copy.deepcopy([t for t in self._data[TASKS] if t.get("estado") == status])

    # ==================== Joins ====================

    async def get_complete_user(self, user_id) -> dict:
        """
        User joined with its role and profile, and the profile with its
        employee or patient. Every link is mandatory: a dangling reference
        raises NotFoundError. The password hash is left out.
        """
        await self.ensure_loaded()
        document = self._data
        _, user = _locate(document, USERS, user_id)
        _, role = _locate(document, ROLES, user.get("rolId"))
        _, profile = _locate(document, PROFILES, user.get("perfilId"))

        profile = dict(profile)
        if profile.get("tipo") == PROFILE_EMPLOYEE and profile.get("empleadoId") is not None:
            profile["empleado"] = _locate(document, EMPLOYEES, profile["empleadoId"])[1]
        elif profile.get("tipo") == PROFILE_PATIENT and profile.get("pacienteId") is not None:
            profile["paciente"] = _locate(document, PATIENTS, profile["pacienteId"])[1]

        complete = {k: v for k, v in user.items() if k != "password"}
        complete["rol"] = role
        complete["perfil"] = profile
        return copy.deepcopy(complete)

    def _optional_link(self, collection: str, record_id, task_id: int) -> Optional[dict]:
        if record_id is None:
            return None
        try:
            return _locate(self._data, collection, record_id)[1]
        except NotFoundError:
            logger.warning("Task %s references missing %s record %s", task_id, collection, record_id)
            return None

    async def get_complete_tasks(self) -> list[dict]:
        """Every task with its employee and patient; dangling links degrade to None."""
        await self.ensure_loaded()
        complete = []
        for task in self._data[TASKS]:
            complete.append({
                **task,
                "empleado": self._optional_link(EMPLOYEES, task.get("empleadoId"), task["id"]),
                "paciente": self._optional_link(PATIENTS, task.get("pacienteId"), task["id"]),
            })
        return copy.deepcopy(complete)

    async def get_statistics(self) -> StoreStatistics:
        await self.ensure_loaded()
        document = self._data
        tasks = document[TASKS]
        low_stock = [
            s for s in document[SUPPLIES]
            if isinstance(s.get("stock"), (int, float)) and s["stock"] < self.low_stock_threshold
        ]
        return StoreStatistics(
            total_roles=len(document[ROLES]),
            total_users=len(document[USERS]),
            total_profiles=len(document[PROFILES]),
            total_employees=len(document[EMPLOYEES]),
            total_patients=len(document[PATIENTS]),
            total_tasks=len(tasks),
            total_supplies=len(document[SUPPLIES]),
            pending_tasks=sum(1 for t in tasks if t.get("estado") == TASK_PENDING),
            completed_tasks=sum(1 for t in tasks if t.get("estado") == TASK_COMPLETED),
            low_stock_supplies=len(low_stock),
        )
