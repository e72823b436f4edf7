"""Error taxonomy of the access-decision engine.

A denial is not an error: evaluators return ``False``. Only the interception
layer turns a denial into `IllegalSecuredObjectAccess`. Lookup problems and
misconfiguration get their own types so callers can tell "access refused"
apart from "could not determine access".
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class GuardPhase(str, Enum):
    ARGUMENTS = "arguments"
    RESULT = "result"


class AccessControlError(Exception):
    """Base class for all engine errors."""


class IllegalSecuredObjectAccess(AccessControlError):
    """Raised by the interception layer when a guarded object is denied."""

    def __init__(self, target_id: Any = None, phase: Optional[GuardPhase] = None) -> None:
        super().__init__("Access to secured object denied")
        self.target_id = target_id
        self.phase = phase


class TargetResolutionError(AccessControlError):
    """A target could not be resolved (bad id, unknown type, storage failure)."""


class TargetNotFoundError(TargetResolutionError):
    def __init__(self, target_type: str, target_id: Any) -> None:
        super().__init__(f"{target_type} {target_id!r} not found")
        self.target_type = target_type
        self.target_id = target_id


class EvaluatorConfigurationError(AccessControlError):
    """Evaluator registry, policy or guard markers are misconfigured."""
