from dataclasses import dataclass
from typing import Any, Dict, Optional

import pytest

from clinaccess.app.domain.errors import TargetNotFoundError, TargetResolutionError
from clinaccess.app.domain.policy import PATIENT, PROCEDURE, AccessPolicy, Actor


@dataclass
class FakePatient:
    id: int
    person_pool_code: Optional[str]


@dataclass
class FakeProcedure:
    id: int
    form_id: Optional[int]
    patient_id: Optional[int]


class FakeResolver:
    """In-memory stand-in for the data-access layer; counts lookups."""

    def __init__(self, forms, patients, procedures) -> None:
        self.forms: Dict[int, str] = forms
        self.patients: Dict[int, FakePatient] = patients
        self.procedures: Dict[int, FakeProcedure] = procedures
        self.lookups = 0

    def load(self, target_id: Any, target_type: str):
        self.lookups += 1
        table = {PROCEDURE: self.procedures, PATIENT: self.patients}.get(target_type)
        if table is None:
            raise TargetResolutionError(f"Unknown target type {target_type!r}")
        if target_id not in table:
            raise TargetNotFoundError(target_type, target_id)
        return table[target_id]

    def form_of(self, procedure) -> str:
        self.lookups += 1
        return self.forms[procedure.form_id]

    def patient_of(self, procedure) -> FakePatient:
        self.lookups += 1
        if procedure.patient_id not in self.patients:
            raise TargetNotFoundError(PATIENT, procedure.patient_id)
        return self.patients[procedure.patient_id]


POLICY = {
    "roles": {
        "oncologist": {
            "forms": {"Therapieplan": "read_write", "Befund": "read_write"},
            "person_pools": {"UKW": "read_write"},
        },
        "study-nurse": {
            "forms": {"Befund": "read"},
            "person_pools": {"STUDY": "read"},
        },
    }
}


@pytest.fixture
def policy() -> AccessPolicy:
    return AccessPolicy.model_validate(POLICY)


@pytest.fixture
def resolver() -> FakeResolver:
    patients = {
        1: FakePatient(id=1, person_pool_code="UKW"),
        2: FakePatient(id=2, person_pool_code="STUDY"),
        3: FakePatient(id=3, person_pool_code=None),
    }
    procedures = {
        10: FakeProcedure(id=10, form_id=100, patient_id=1),
        11: FakeProcedure(id=11, form_id=101, patient_id=2),
        12: FakeProcedure(id=12, form_id=101, patient_id=3),
    }
    return FakeResolver({100: "Therapieplan", 101: "Befund"}, patients, procedures)


@pytest.fixture
def oncologist() -> Actor:
    return Actor(actor_id="dr-1", roles=frozenset({"oncologist"}))


@pytest.fixture
def nurse() -> Actor:
    return Actor(actor_id="nurse-1", roles=frozenset({"study-nurse"}))
