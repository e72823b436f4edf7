"""Permission evaluators, one per access dimension.

Each evaluator answers ``has_permission`` for a loaded target or
``has_permission_by_id`` for an (id, type name) pair. A denial is a plain
``False``; lookup problems raise `TargetResolutionError` and are never turned
into a decision here.
"""
from __future__ import annotations

from typing import Any, FrozenSet, Optional, Protocol

from loguru import logger

from ..domain.errors import TargetResolutionError
from ..domain.policy import (
    PATIENT,
    PROCEDURE,
    TARGET_TYPES,
    AccessPolicy,
    Actor,
    PermissionType,
)
from ..infra.resolver import TargetResolver, is_patient, is_procedure


class PermissionEvaluator(Protocol):
    def has_permission(self, actor: Optional[Actor], target: Any, permission: Any) -> bool:
        ...

    def has_permission_by_id(
        self,
        actor: Optional[Actor],
        target_id: Any,
        target_type: str,
        permission: Any,
    ) -> bool:
        ...


class DelegatedPermissionEvaluator:
    """Shared plumbing for evaluators that consult the policy and a resolver."""

    name = "abstract"
    protected_types: FrozenSet[str] = frozenset()

    def __init__(self, policy: AccessPolicy, resolver: TargetResolver) -> None:
        self.policy = policy
        self.resolver = resolver

    def has_permission(self, actor: Optional[Actor], target: Any, permission: Any) -> bool:
        if target is None:
            return True
        if not (is_procedure(target) or is_patient(target)):
            raise TargetResolutionError(f"Unsupported target {type(target).__name__}")
        if actor is None or not isinstance(permission, PermissionType):
            return False
        return self._check(actor, target, permission)

    def has_permission_by_id(
        self,
        actor: Optional[Actor],
        target_id: Any,
        target_type: str,
        permission: Any,
    ) -> bool:
        if target_id is None:
            return True
        if target_type not in TARGET_TYPES:
            raise TargetResolutionError(f"Unknown target type {target_type!r}")
        if target_type not in self.protected_types:
            return True
        if actor is None or not isinstance(permission, PermissionType):
            return False
        target = self.resolver.load(target_id, target_type)
        return self._check(actor, target, permission)

    def _check(self, actor: Actor, target: Any, permission: PermissionType) -> bool:
        raise NotImplementedError

    def _granted(
        self,
        granted: Optional[PermissionType],
        requested: PermissionType,
        actor: Actor,
        resource: str,
    ) -> bool:
        allowed = granted is not None and granted.implies(requested)
        if not allowed:
            logger.debug(
                "{} evaluator denied {} on {} for actor {}",
                self.name,
                requested.value,
                resource,
                actor.actor_id,
            )
        return allowed


class FormBasedPermissionEvaluator(DelegatedPermissionEvaluator):
    """Grants access by the form a procedure was recorded with."""

    name = "form"
    protected_types = frozenset({PROCEDURE})

    def _check(self, actor: Actor, target: Any, permission: PermissionType) -> bool:
        if is_patient(target):
            return True
        form_name = self.resolver.form_of(target)
        return self._granted(
            self.policy.form_permission(actor, form_name),
            permission,
            actor,
            f"procedure {target.id}",
        )


class PersonPoolBasedPermissionEvaluator(DelegatedPermissionEvaluator):
    """Grants access by the person pool of the (owning) patient."""

    name = "person_pool"
    protected_types = frozenset({PROCEDURE, PATIENT})

    def _check(self, actor: Actor, target: Any, permission: PermissionType) -> bool:
        if is_procedure(target):
            patient = self.resolver.patient_of(target)
            resource = f"procedure {target.id}"
        else:
            patient = target
            resource = f"patient {target.id}"
        pool_code = patient.person_pool_code
        if pool_code is None:
            return self._granted(None, permission, actor, resource)
        return self._granted(
            self.policy.person_pool_permission(actor, pool_code),
            permission,
            actor,
            resource,
        )
