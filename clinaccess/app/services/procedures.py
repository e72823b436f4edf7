"""Procedure reads and updates, guarded in both access dimensions."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlmodel import Session

from ..domain.models import Procedure
from ..domain.policy import Actor, PermissionType
from .guards import (
    form_secured,
    form_secured_result,
    person_pool_secured,
    person_pool_secured_result,
)


class ProcedureService:
    def __init__(self, session: Session) -> None:
        self.session = session

    @form_secured_result(PermissionType.READ)
    @person_pool_secured_result(PermissionType.READ)
    def get(self, actor: Actor, procedure_id: int) -> Optional[Procedure]:
        return self.session.get(Procedure, procedure_id)

    @form_secured(PermissionType.READ_WRITE)
    @person_pool_secured(PermissionType.READ_WRITE)
    def update(self, actor: Actor, procedure: Procedure, data: Dict[str, Any]) -> Procedure:
        procedure.data = {**procedure.data, **data}
        procedure.updated_at = datetime.utcnow()
        self.session.add(procedure)
        self.session.flush()
        self.session.refresh(procedure)
        return procedure
