"""Domain models shared between API and persistence layers."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict
from sqlalchemy import JSON
from sqlmodel import Column, Field as SQLField, SQLModel


class Form(SQLModel, table=True):
    """Form / document type a procedure is recorded with."""

    __tablename__ = "forms"

    id: Optional[int] = SQLField(default=None, primary_key=True)
    name: str = SQLField(index=True, unique=True)
    description: str = SQLField(default="")


class PersonPool(SQLModel, table=True):
    """Organisational patient group (e.g. a clinic or study cohort)."""

    __tablename__ = "person_pools"

    code: str = SQLField(primary_key=True)
    name: str = SQLField(default="")


class Patient(SQLModel, table=True):
    __tablename__ = "patients"

    id: Optional[int] = SQLField(default=None, primary_key=True)
    person_pool_code: Optional[str] = SQLField(
        default=None, foreign_key="person_pools.code", index=True
    )
    display_name: str = SQLField(default="")


class Procedure(SQLModel, table=True):
    """Clinical record captured with one form for one patient."""

    __tablename__ = "procedures"

    id: Optional[int] = SQLField(default=None, primary_key=True)
    form_id: int = SQLField(foreign_key="forms.id", index=True)
    patient_id: int = SQLField(foreign_key="patients.id", index=True)
    data: Dict[str, Any] = SQLField(
        default_factory=dict, sa_column=Column(JSON, nullable=False, server_default="{}")
    )
    updated_at: datetime = SQLField(default_factory=datetime.utcnow, nullable=False)


class ProcedureRead(BaseModel):
    id: int
    form_id: int
    patient_id: int
    data: Dict[str, Any]
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PatientRead(BaseModel):
    id: int
    person_pool_code: Optional[str]
    display_name: str

    model_config = ConfigDict(from_attributes=True)


class AccessLog(SQLModel, table=True):
    __tablename__ = "access_logs"

    id: str = SQLField(default_factory=lambda: str(uuid4()), primary_key=True, index=True)
    actor_id: str = SQLField(index=True)
    role: str
    action: str
    resource: str
    allowed: bool = SQLField(default=True)
    created_at: datetime = SQLField(default_factory=datetime.utcnow, nullable=False, index=True)


class AccessLogRead(BaseModel):
    id: str
    actor_id: str
    role: str
    action: str
    resource: str
    allowed: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
