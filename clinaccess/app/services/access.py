"""Startup wiring of evaluators, combinator and interceptor."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from sqlalchemy.engine import Engine

from ..config import Settings
from ..domain.policy import AccessPolicy
from ..infra.resolver import SqlTargetResolver, TargetResolver
from .audit import AccessAudit
from .delegating import DelegatingPermissionEvaluator, build_evaluators
from .evaluators import PermissionEvaluator
from .guards import SecurityInterceptor


@dataclass(frozen=True)
class AccessControl:
    """Process-lifetime access-decision components, read-only after startup."""

    evaluators: Mapping[str, PermissionEvaluator]
    delegating: DelegatingPermissionEvaluator
    interceptor: SecurityInterceptor


def build_access_control(
    settings: Settings,
    engine: Engine,
    policy: Optional[AccessPolicy] = None,
    resolver: Optional[TargetResolver] = None,
) -> AccessControl:
    evaluators = build_evaluators(
        settings.permission_evaluators,
        policy if policy is not None else settings.load_policy(),
        resolver if resolver is not None else SqlTargetResolver(engine),
    )
    return AccessControl(
        evaluators=evaluators,
        delegating=DelegatingPermissionEvaluator(evaluators.values()),
        interceptor=SecurityInterceptor(evaluators, audit=AccessAudit(engine)),
    )
