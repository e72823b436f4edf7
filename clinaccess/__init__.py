"""
clinaccess: access decisions for clinical procedure and patient records.

Permission evaluators judge one access dimension each (form, person pool),
a delegating evaluator requires all of them to agree, and guard markers
enforce the decisions around operations that take or return procedures.
The HTTP app in `clinaccess.app.main` wires these into a FastAPI service.
"""

__all__ = [
    "AccessPolicy",
    "Actor",
    "DelegatingPermissionEvaluator",
    "FormBasedPermissionEvaluator",
    "IllegalSecuredObjectAccess",
    "PermissionType",
    "PersonPoolBasedPermissionEvaluator",
    "SecurityInterceptor",
    "TargetResolutionError",
    "form_secured",
    "form_secured_result",
    "person_pool_secured",
    "person_pool_secured_result",
]

from .app.domain.errors import IllegalSecuredObjectAccess, TargetResolutionError
from .app.domain.policy import AccessPolicy, Actor, PermissionType
from .app.services.delegating import DelegatingPermissionEvaluator
from .app.services.evaluators import FormBasedPermissionEvaluator, PersonPoolBasedPermissionEvaluator
from .app.services.guards import (
    SecurityInterceptor,
    form_secured,
    form_secured_result,
    person_pool_secured,
    person_pool_secured_result,
)

__version__ = "0.1.0"
