"""Procedure routes."""
from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from ..deps import access_control, current_actor, db_session
from ..domain.policy import Actor
from ..domain.schemas import ProcedureOut, ProcedureUpdateIn
from ..services.access import AccessControl
from ..services.procedures import ProcedureService

router = APIRouter()


def _service(session: Session, access: AccessControl):
    return access.interceptor.protect(ProcedureService(session))


@router.get("/{procedure_id}", response_model=ProcedureOut)
def get_procedure(
    procedure_id: int,
    actor: Actor = Depends(current_actor),
    session: Session = Depends(db_session),
    access: AccessControl = Depends(access_control),
):
    procedure = _service(session, access).get(actor, procedure_id)
    if procedure is None:
        raise HTTPException(status_code=404, detail="Procedure not found")
    return procedure


@router.put("/{procedure_id}", response_model=ProcedureOut)
def update_procedure(
    procedure_id: int,
    body: ProcedureUpdateIn,
    actor: Actor = Depends(current_actor),
    session: Session = Depends(db_session),
    access: AccessControl = Depends(access_control),
):
    service = _service(session, access)
    procedure = service.get(actor, procedure_id)
    if procedure is None:
        raise HTTPException(status_code=404, detail="Procedure not found")
    return service.update(actor, procedure, body.data)
