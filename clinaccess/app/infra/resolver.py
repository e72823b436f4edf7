"""Target resolution backed by the clinical database."""
from __future__ import annotations

from typing import Any, Dict, Protocol, Type, Union, runtime_checkable

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel

from ..domain.errors import TargetNotFoundError, TargetResolutionError
from ..domain.models import Form, Patient, Procedure
from ..domain.policy import PATIENT, PROCEDURE


@runtime_checkable
class ProcedureLike(Protocol):
    id: Any
    form_id: Any
    patient_id: Any


@runtime_checkable
class PatientLike(Protocol):
    id: Any
    person_pool_code: Any


def is_procedure(obj: Any) -> bool:
    return isinstance(obj, ProcedureLike)


def is_patient(obj: Any) -> bool:
    # a procedure never counts as a patient, whatever else it carries
    return isinstance(obj, PatientLike) and not isinstance(obj, ProcedureLike)


class TargetResolver(Protocol):
    """Data-access collaborator consulted by the evaluators."""

    def load(self, target_id: Any, target_type: str) -> Union[ProcedureLike, PatientLike]:
        ...

    def form_of(self, procedure: ProcedureLike) -> str:
        ...

    def patient_of(self, procedure: ProcedureLike) -> PatientLike:
        ...


_MODELS: Dict[str, Type[SQLModel]] = {PROCEDURE: Procedure, PATIENT: Patient}


class SqlTargetResolver:
    """Resolves targets with one short-lived session per lookup.

    Holds only the engine, so a single instance can serve concurrent
    requests. Returned rows are detached; only column attributes are read.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def load(self, target_id: Any, target_type: str) -> Union[Procedure, Patient]:
        model = _MODELS.get(target_type)
        if model is None:
            raise TargetResolutionError(f"Unknown target type {target_type!r}")
        return self._get(model, target_id, target_type)

    def form_of(self, procedure: ProcedureLike) -> str:
        if procedure.form_id is None:
            raise TargetResolutionError(f"Procedure {procedure.id!r} has no form")
        return self._get(Form, procedure.form_id, "Form").name

    def patient_of(self, procedure: ProcedureLike) -> Patient:
        if procedure.patient_id is None:
            raise TargetResolutionError(f"Procedure {procedure.id!r} has no patient")
        return self._get(Patient, procedure.patient_id, PATIENT)

    def _get(self, model: Type[SQLModel], key: Any, label: str) -> Any:
        try:
            with Session(self.engine, expire_on_commit=False) as session:
                row = session.get(model, key)
        except SQLAlchemyError as exc:
            raise TargetResolutionError(f"Lookup of {label} {key!r} failed") from exc
        if row is None:
            raise TargetNotFoundError(label, key)
        return row
