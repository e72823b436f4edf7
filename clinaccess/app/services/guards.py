"""Declarative guards around operations that take or return procedures.

Markers only declare what has to be checked::

    class ProcedureService:
        @form_secured(PermissionType.READ_WRITE)
        @person_pool_secured(PermissionType.READ_WRITE)
        def save(self, actor, procedure): ...

        @form_secured_result(PermissionType.READ)
        def load(self, actor, procedure_id): ...

Enforcement happens through a `SecurityInterceptor`, either per function
(`interceptor.wrap(func)`) or per object (`interceptor.protect(service)`).
A marked operation called directly, without an interceptor, refuses to run.
Markers have to be the outermost decorators of an operation.

Per call: argument guards run before the operation body, result guards run
after it and before the value reaches the caller. The first denial raises
`IllegalSecuredObjectAccess`; lookup errors propagate unchanged. Patients and
other non-procedure values pass through without a check.
"""
from __future__ import annotations

import functools
import inspect
import types
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Mapping, Optional, Tuple

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from ..domain.errors import EvaluatorConfigurationError, GuardPhase, IllegalSecuredObjectAccess
from ..domain.policy import Actor, PermissionType
from ..infra.resolver import is_procedure
from .audit import AccessAudit
from .evaluators import FormBasedPermissionEvaluator, PermissionEvaluator, PersonPoolBasedPermissionEvaluator

SECURED_ATTR = "__secured_by__"
ORIGINAL_ATTR = "__secured_original__"

FORM = FormBasedPermissionEvaluator.name
PERSON_POOL = PersonPoolBasedPermissionEvaluator.name


@dataclass(frozen=True)
class GuardSpec:
    dimension: str
    phase: GuardPhase
    permission: PermissionType


def _marker(dimension: str, phase: GuardPhase) -> Callable[[PermissionType], Callable]:
    def factory(permission: PermissionType) -> Callable:
        if not isinstance(permission, PermissionType):
            raise EvaluatorConfigurationError(
                f"Guard requires a PermissionType, got {permission!r}"
            )
        spec = GuardSpec(dimension=dimension, phase=phase, permission=permission)

        def decorator(func: Callable) -> Callable:
            original = _original_of(func)
            # decorators apply bottom-up; keep specs in reading order
            specs = (spec,) + getattr(func, SECURED_ATTR, ())

            @functools.wraps(original)
            def unguarded(*args, **kwargs):
                raise EvaluatorConfigurationError(
                    f"{original.__qualname__} is secured and must be called through a SecurityInterceptor"
                )

            setattr(unguarded, SECURED_ATTR, specs)
            setattr(unguarded, ORIGINAL_ATTR, original)
            return unguarded

        return decorator

    return factory


form_secured = _marker(FORM, GuardPhase.ARGUMENTS)
person_pool_secured = _marker(PERSON_POOL, GuardPhase.ARGUMENTS)
form_secured_result = _marker(FORM, GuardPhase.RESULT)
person_pool_secured_result = _marker(PERSON_POOL, GuardPhase.RESULT)


def secured_by(func: Callable) -> Tuple[GuardSpec, ...]:
    return getattr(func, SECURED_ATTR, ())


def _original_of(func: Callable) -> Callable:
    """Undecorated operation behind the markers on `func`.

    Markers have to be the outermost decorators. A foreign wrapper above a
    marker inherits the marker attributes through `functools.wraps` but
    would be skipped by the interceptor, so it is rejected.
    """
    original = getattr(func, ORIGINAL_ATTR, None)
    if original is None:
        return func
    if getattr(func, "__wrapped__", None) is not original:
        raise EvaluatorConfigurationError(
            f"{original.__qualname__} is wrapped by a decorator above its guard markers"
        )
    return original


class SecurityInterceptor:
    """Enforces guard markers using one evaluator per access dimension."""

    def __init__(
        self,
        evaluators: Mapping[str, PermissionEvaluator],
        audit: Optional[AccessAudit] = None,
        actor_param: str = "actor",
    ) -> None:
        self.evaluators = dict(evaluators)
        self.audit = audit
        self.actor_param = actor_param

    def wrap(self, func: Callable) -> Callable:
        specs = secured_by(func)
        if not specs:
            raise EvaluatorConfigurationError(f"{func!r} carries no guard markers")
        original = _original_of(func)
        if inspect.ismethod(func):
            original = types.MethodType(original, func.__self__)

        signature = inspect.signature(original)
        if self.actor_param not in signature.parameters:
            raise EvaluatorConfigurationError(
                f"{original.__qualname__} is secured but takes no {self.actor_param!r} parameter"
            )
        for spec in specs:
            if spec.dimension not in self.evaluators:
                raise EvaluatorConfigurationError(
                    f"{original.__qualname__} needs the {spec.dimension!r} evaluator, which is not registered"
                )
        before = [spec for spec in specs if spec.phase is GuardPhase.ARGUMENTS]
        after = [spec for spec in specs if spec.phase is GuardPhase.RESULT]
        action = original.__qualname__

        if inspect.iscoroutinefunction(original):

            @functools.wraps(original)
            async def guarded(*args, **kwargs):
                actor = self._check_arguments(action, signature, before, args, kwargs)
                result = await original(*args, **kwargs)
                self._check_result(action, actor, after, result)
                return result

        else:

            @functools.wraps(original)
            def guarded(*args, **kwargs):
                actor = self._check_arguments(action, signature, before, args, kwargs)
                result = original(*args, **kwargs)
                self._check_result(action, actor, after, result)
                return result

        return guarded

    def protect(self, obj: Any) -> "SecuredProxy":
        return SecuredProxy(obj, self)

    def _check_arguments(self, action, signature, specs, args, kwargs) -> Optional[Actor]:
        bound = signature.bind(*args, **kwargs)
        actor = bound.arguments.get(self.actor_param)
        for spec in specs:
            for value in _argument_values(bound, signature, self.actor_param):
                self._enforce(action, actor, spec, value)
        return actor

    def _check_result(self, action, actor, specs, result) -> None:
        for spec in specs:
            self._enforce(action, actor, spec, result)

    def _enforce(self, action: str, actor: Optional[Actor], spec: GuardSpec, value: Any) -> None:
        if not is_procedure(value):
            return
        evaluator = self.evaluators[spec.dimension]
        if evaluator.has_permission(actor, value, spec.permission):
            return
        logger.warning(
            "Blocked {} access to procedure {} ({} guard, {})",
            spec.phase.value,
            value.id,
            spec.dimension,
            spec.permission.value,
        )
        if self.audit is not None:
            try:
                self.audit.record(
                    actor,
                    action=f"{action}:{spec.phase.value}",
                    resource=f"procedure:{value.id}",
                    allowed=False,
                )
            except SQLAlchemyError:
                logger.exception("Could not write audit record for procedure {}", value.id)
        raise IllegalSecuredObjectAccess(target_id=value.id, phase=spec.phase)


def _argument_values(bound, signature, actor_param: str) -> Iterator[Any]:
    for name, value in bound.arguments.items():
        if name == actor_param:
            continue
        kind = signature.parameters[name].kind
        if kind is inspect.Parameter.VAR_POSITIONAL:
            yield from value
        elif kind is inspect.Parameter.VAR_KEYWORD:
            yield from value.values()
        else:
            yield value


class SecuredProxy:
    """Object proxy whose marked methods are enforced by an interceptor."""

    def __init__(self, target: Any, interceptor: SecurityInterceptor) -> None:
        self._target = target
        self._interceptor = interceptor

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._target, name)
        if callable(attr) and secured_by(attr):
            return self._interceptor.wrap(attr)
        return attr
