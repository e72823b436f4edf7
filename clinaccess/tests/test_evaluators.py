import itertools

import pytest

from clinaccess.app.domain.errors import TargetNotFoundError, TargetResolutionError
from clinaccess.app.domain.policy import PATIENT, PROCEDURE, AccessPolicy, Actor, PermissionType
from clinaccess.app.services.delegating import DelegatingPermissionEvaluator
from clinaccess.app.services.evaluators import (
    FormBasedPermissionEvaluator,
    PersonPoolBasedPermissionEvaluator,
)

READ = PermissionType.READ
READ_WRITE = PermissionType.READ_WRITE


@pytest.fixture
def form_evaluator(policy, resolver):
    return FormBasedPermissionEvaluator(policy, resolver)


@pytest.fixture
def pool_evaluator(policy, resolver):
    return PersonPoolBasedPermissionEvaluator(policy, resolver)


def test_form_evaluator_uses_form_of_procedure(form_evaluator, resolver, oncologist, nurse):
    therapy_plan = resolver.procedures[10]
    finding = resolver.procedures[11]

    assert form_evaluator.has_permission(oncologist, therapy_plan, READ_WRITE)
    assert not form_evaluator.has_permission(nurse, therapy_plan, READ)
    assert form_evaluator.has_permission(nurse, finding, READ)
    assert not form_evaluator.has_permission(nurse, finding, READ_WRITE)


def test_person_pool_evaluator_uses_pool_of_patient(pool_evaluator, resolver, oncologist, nurse):
    ukw_procedure = resolver.procedures[10]
    study_procedure = resolver.procedures[11]

    assert pool_evaluator.has_permission(oncologist, ukw_procedure, READ_WRITE)
    assert not pool_evaluator.has_permission(oncologist, study_procedure, READ)
    assert pool_evaluator.has_permission(nurse, study_procedure, READ)
    assert not pool_evaluator.has_permission(nurse, study_procedure, READ_WRITE)
    assert pool_evaluator.has_permission(nurse, resolver.patients[2], READ)
    assert not pool_evaluator.has_permission(nurse, resolver.patients[1], READ)


def test_patient_without_pool_is_denied(pool_evaluator, resolver, oncologist):
    assert not pool_evaluator.has_permission(oncologist, resolver.patients[3], READ)
    assert not pool_evaluator.has_permission(oncologist, resolver.procedures[12], READ)


def test_form_evaluator_ignores_patients(form_evaluator, resolver, nurse):
    assert form_evaluator.has_permission(nurse, resolver.patients[1], READ_WRITE)
    assert resolver.lookups == 0


def test_unrecognised_targets_are_malformed_not_allowed(form_evaluator, pool_evaluator, resolver):
    nobody = Actor(actor_id="nobody")
    lookalike = {"id": 10, "form_id": 100, "patient_id": 1}
    combinator = DelegatingPermissionEvaluator([form_evaluator, pool_evaluator])

    for evaluator in (form_evaluator, pool_evaluator, combinator):
        with pytest.raises(TargetResolutionError):
            evaluator.has_permission(nobody, lookalike, READ_WRITE)
        with pytest.raises(TargetResolutionError):
            evaluator.has_permission(nobody, "a string", READ)
    assert resolver.lookups == 0


@pytest.mark.parametrize("evaluator_cls", [FormBasedPermissionEvaluator, PersonPoolBasedPermissionEvaluator])
def test_absent_target_is_allowed_without_lookup(evaluator_cls, policy, resolver, nurse):
    evaluator = evaluator_cls(policy, resolver)
    assert evaluator.has_permission(nurse, None, READ_WRITE)
    assert evaluator.has_permission_by_id(nurse, None, PROCEDURE, READ_WRITE)
    assert resolver.lookups == 0


@pytest.mark.parametrize("evaluator_cls", [FormBasedPermissionEvaluator, PersonPoolBasedPermissionEvaluator])
def test_missing_actor_or_bad_permission_is_denied(evaluator_cls, policy, resolver, oncologist):
    evaluator = evaluator_cls(policy, resolver)
    procedure = resolver.procedures[10]
    assert not evaluator.has_permission(None, procedure, READ)
    assert not evaluator.has_permission(oncologist, procedure, "read")
    assert not evaluator.has_permission_by_id(None, 10, PROCEDURE, READ)


@pytest.mark.parametrize("evaluator_cls", [FormBasedPermissionEvaluator, PersonPoolBasedPermissionEvaluator])
def test_read_write_grant_implies_read(evaluator_cls, policy, resolver, oncologist, nurse):
    evaluator = evaluator_cls(policy, resolver)
    targets = list(resolver.procedures.values()) + list(resolver.patients.values())
    for actor, target in itertools.product([oncologist, nurse], targets):
        if evaluator.has_permission(actor, target, READ_WRITE):
            assert evaluator.has_permission(actor, target, READ)


def test_by_id_loads_procedures(form_evaluator, pool_evaluator, oncologist, nurse):
    assert form_evaluator.has_permission_by_id(oncologist, 10, PROCEDURE, READ_WRITE)
    assert not form_evaluator.has_permission_by_id(nurse, 10, PROCEDURE, READ)
    assert pool_evaluator.has_permission_by_id(nurse, 11, PROCEDURE, READ)
    assert pool_evaluator.has_permission_by_id(nurse, 2, PATIENT, READ)
    assert not pool_evaluator.has_permission_by_id(nurse, 1, PATIENT, READ)


def test_form_evaluator_skips_patient_ids_without_lookup(form_evaluator, resolver, nurse):
    assert form_evaluator.has_permission_by_id(nurse, 999, PATIENT, READ_WRITE)
    assert resolver.lookups == 0


@pytest.mark.parametrize("evaluator_cls", [FormBasedPermissionEvaluator, PersonPoolBasedPermissionEvaluator])
def test_unknown_target_type_is_a_resolution_fault(evaluator_cls, policy, resolver, oncologist):
    evaluator = evaluator_cls(policy, resolver)
    with pytest.raises(TargetResolutionError):
        evaluator.has_permission_by_id(oncologist, 10, "Invoice", READ)


@pytest.mark.parametrize("evaluator_cls", [FormBasedPermissionEvaluator, PersonPoolBasedPermissionEvaluator])
def test_unknown_id_propagates_instead_of_denying(evaluator_cls, policy, resolver, oncologist):
    evaluator = evaluator_cls(policy, resolver)
    with pytest.raises(TargetNotFoundError):
        evaluator.has_permission_by_id(oncologist, 999, PROCEDURE, READ)


def test_dangling_patient_reference_propagates(pool_evaluator, resolver, oncologist):
    from conftest import FakeProcedure

    orphan = FakeProcedure(id=50, form_id=100, patient_id=404)
    with pytest.raises(TargetNotFoundError):
        pool_evaluator.has_permission(oncologist, orphan, READ)


def test_evaluators_are_independent(resolver):
    actor = Actor(actor_id="dr-2", roles=frozenset({"doc"}))
    # grants the form but no person pool for the form evaluator's policy, and the reverse
    forms_only = AccessPolicy.model_validate({"roles": {"doc": {"forms": {"Therapieplan": "read"}}}})
    pools_only = AccessPolicy.model_validate({"roles": {"doc": {"person_pools": {"STUDY": "read"}}}})
    form_evaluator = FormBasedPermissionEvaluator(forms_only, resolver)
    pool_evaluator = PersonPoolBasedPermissionEvaluator(pools_only, resolver)
    procedure = resolver.procedures[10]  # Therapieplan, pool UKW

    assert form_evaluator.has_permission(actor, procedure, READ)
    assert not pool_evaluator.has_permission(actor, procedure, READ)

    combined = DelegatingPermissionEvaluator([form_evaluator, pool_evaluator])
    assert not combined.has_permission(actor, procedure, READ)
