"""API I/O schemas."""
from typing import Any, Dict

from pydantic import BaseModel, Field

from .models import PatientRead, ProcedureRead
from .policy import PermissionType


class ProcedureOut(ProcedureRead):
    pass


class PatientOut(PatientRead):
    pass


class ProcedureUpdateIn(BaseModel):
    data: Dict[str, Any] = Field(default_factory=dict)


class PermissionDecisionOut(BaseModel):
    target_type: str
    target_id: int
    permission: PermissionType
    allowed: bool
