"""Permission levels, actors and the role-based access policy."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError

from .errors import EvaluatorConfigurationError

PROCEDURE = "Procedure"
PATIENT = "Patient"
TARGET_TYPES = frozenset({PROCEDURE, PATIENT})


class PermissionType(str, Enum):
    READ = "read"
    READ_WRITE = "read_write"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def implies(self, requested: "PermissionType") -> bool:
        """True when a grant of this level satisfies a request for `requested`."""
        return self.rank >= requested.rank


_RANKS = {PermissionType.READ: 1, PermissionType.READ_WRITE: 2}


def strongest(grants: Iterable[Optional[PermissionType]]) -> Optional[PermissionType]:
    levels = [grant for grant in grants if grant is not None]
    if not levels:
        return None
    return max(levels, key=lambda level: level.rank)


@dataclass(frozen=True)
class Actor:
    """Authenticated identity handed to the engine by the identity subsystem.

    Only claims live here, never credentials. `form_grants` and
    `person_pool_grants` are grants assigned directly to the actor; grants
    derived from roles come from the `AccessPolicy`.
    """

    actor_id: str
    roles: FrozenSet[str] = frozenset()
    form_grants: Mapping[str, PermissionType] = field(default_factory=dict, hash=False)
    person_pool_grants: Mapping[str, PermissionType] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        # copies, so the caller cannot change the claims after construction
        object.__setattr__(self, "roles", frozenset(self.roles))
        object.__setattr__(self, "form_grants", MappingProxyType(dict(self.form_grants)))
        object.__setattr__(self, "person_pool_grants", MappingProxyType(dict(self.person_pool_grants)))


class RoleGrants(BaseModel):
    forms: Dict[str, PermissionType] = Field(default_factory=dict)
    person_pools: Dict[str, PermissionType] = Field(default_factory=dict)


class AccessPolicy(BaseModel):
    """Role -> form / person-pool grants, loaded once at startup."""

    roles: Dict[str, RoleGrants] = Field(default_factory=dict)

    def form_permission(self, actor: Actor, form_name: str) -> Optional[PermissionType]:
        return strongest(
            [actor.form_grants.get(form_name)]
            + [self._role(role).forms.get(form_name) for role in actor.roles]
        )

    def person_pool_permission(self, actor: Actor, pool_code: str) -> Optional[PermissionType]:
        return strongest(
            [actor.person_pool_grants.get(pool_code)]
            + [self._role(role).person_pools.get(pool_code) for role in actor.roles]
        )

    def _role(self, role: str) -> RoleGrants:
        return self.roles.get(role) or _NO_GRANTS

    @classmethod
    def from_file(cls, path: str | Path) -> "AccessPolicy":
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
            return cls.model_validate(raw)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            raise EvaluatorConfigurationError(f"Invalid access policy at {path}") from exc


_NO_GRANTS = RoleGrants()
