"""Patient routes."""
from fastapi import APIRouter, Depends
from loguru import logger
from sqlmodel import Session

from ..deps import access_control, current_actor, db_session
from ..domain.errors import GuardPhase, IllegalSecuredObjectAccess, TargetNotFoundError
from ..domain.models import Patient
from ..domain.policy import PATIENT, Actor, PermissionType
from ..domain.schemas import PatientOut
from ..services.access import AccessControl

router = APIRouter()


@router.get("/{patient_id}", response_model=PatientOut)
def get_patient(
    patient_id: int,
    actor: Actor = Depends(current_actor),
    session: Session = Depends(db_session),
    access: AccessControl = Depends(access_control),
):
    if not access.delegating.has_permission_by_id(actor, patient_id, PATIENT, PermissionType.READ):
        logger.warning("Blocked read of patient {}", patient_id)
        raise IllegalSecuredObjectAccess(target_id=patient_id, phase=GuardPhase.ARGUMENTS)
    patient = session.get(Patient, patient_id)
    if patient is None:
        raise TargetNotFoundError(PATIENT, patient_id)
    return patient
