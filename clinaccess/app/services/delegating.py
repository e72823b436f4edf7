"""Delegating evaluator: every registered evaluator has to agree."""
from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Optional, Sequence, Tuple

from loguru import logger

from ..domain.errors import EvaluatorConfigurationError
from ..domain.policy import AccessPolicy, Actor
from ..infra.resolver import TargetResolver
from .evaluators import (
    FormBasedPermissionEvaluator,
    PermissionEvaluator,
    PersonPoolBasedPermissionEvaluator,
)

EvaluatorFactory = Callable[[AccessPolicy, TargetResolver], PermissionEvaluator]

EVALUATOR_FACTORIES: Dict[str, EvaluatorFactory] = {
    FormBasedPermissionEvaluator.name: FormBasedPermissionEvaluator,
    PersonPoolBasedPermissionEvaluator.name: PersonPoolBasedPermissionEvaluator,
}


class DelegatingPermissionEvaluator:
    """Conjunction over an ordered, immutable evaluator registry.

    An empty registry denies everything. Evaluators run in registration order
    and evaluation stops at the first denial.
    """

    def __init__(self, evaluators: Iterable[PermissionEvaluator]) -> None:
        self._evaluators: Tuple[PermissionEvaluator, ...] = tuple(evaluators)

    @property
    def evaluators(self) -> Tuple[PermissionEvaluator, ...]:
        return self._evaluators

    def has_permission(self, actor: Optional[Actor], target: Any, permission: Any) -> bool:
        if not self._evaluators:
            return False
        if target is None:
            return True
        return all(
            evaluator.has_permission(actor, target, permission)
            for evaluator in self._evaluators
        )

    def has_permission_by_id(
        self,
        actor: Optional[Actor],
        target_id: Any,
        target_type: str,
        permission: Any,
    ) -> bool:
        if not self._evaluators:
            return False
        if target_id is None:
            return True
        return all(
            evaluator.has_permission_by_id(actor, target_id, target_type, permission)
            for evaluator in self._evaluators
        )


def build_evaluators(
    names: Sequence[str],
    policy: AccessPolicy,
    resolver: TargetResolver,
) -> Dict[str, PermissionEvaluator]:
    """Instantiate the configured evaluators, keyed by name, in config order."""
    evaluators: Dict[str, PermissionEvaluator] = {}
    for name in names:
        factory = EVALUATOR_FACTORIES.get(name)
        if factory is None:
            raise EvaluatorConfigurationError(f"Unknown permission evaluator {name!r}")
        if name in evaluators:
            raise EvaluatorConfigurationError(f"Permission evaluator {name!r} listed twice")
        evaluators[name] = factory(policy, resolver)
    if not evaluators:
        logger.warning("No permission evaluators configured; every request will be denied")
    else:
        logger.debug("Permission evaluators registered: {}", ", ".join(evaluators))
    return evaluators
