from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, Optional, Union

PROFILE_EMPLOYEE = "employee"
PROFILE_PATIENT = "patient"

TASK_PENDING = "pending"
TASK_COMPLETED = "completed"


class RoleCreate(BaseModel):
    nombre: str = Field(min_length=1)
    permisos: list[str]


class UserCreate(BaseModel):
    usuario: str = Field(min_length=1)
    password: str = Field(min_length=1)
    rolId: int = Field(ge=1)
    perfilId: int = Field(ge=1)
    tipoPerfilId: Optional[int] = None


class ProfileCreate(BaseModel):
    tipo: Literal["employee", "patient"]
    empleadoId: Optional[int] = None
    pacienteId: Optional[int] = None


class EmployeeCreate(BaseModel):
    # Free-form extra attributes are stored as given
    model_config = ConfigDict(extra="allow")

    nombre: str = Field(min_length=1)
    puesto: str = Field(min_length=1)


class PatientCreate(BaseModel):
    nombre: str = Field(min_length=1)
    dni: str = Field(min_length=1)
    historiaClinica: Optional[str] = None


class TaskCreate(BaseModel):
    model_config = ConfigDict(extra="allow")

    descripcion: str = Field(min_length=1)
    empleadoId: int = Field(ge=1)
    pacienteId: Optional[int] = None
    estado: str = Field(min_length=1)
    fecha: str = Field(min_length=1)


class SupplyCreate(BaseModel):
    nombre: str = Field(min_length=1)
    stock: Union[int, float]
    unidad: str = Field(min_length=1)


class StoreStatistics(BaseModel):
    total_roles: int
    total_users: int
    total_profiles: int
    total_employees: int
    total_patients: int
    total_tasks: int
    total_supplies: int
    pending_tasks: int
    completed_tasks: int
    low_stock_supplies: int
