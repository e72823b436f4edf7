"""Audit trail for blocked access to secured objects."""
from typing import Optional

from sqlalchemy.engine import Engine

from ..domain.models import AccessLog
from ..domain.policy import Actor
from ..infra.db import get_session

ANONYMOUS = "anonymous"


class AccessAudit:
    """Writes one `AccessLog` row per recorded decision, in its own session."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def record(
        self,
        actor: Optional[Actor],
        action: str,
        resource: str,
        allowed: bool,
    ) -> None:
        with get_session(self.engine) as session:
            session.add(
                AccessLog(
                    actor_id=actor.actor_id if actor else ANONYMOUS,
                    role=",".join(sorted(actor.roles)) if actor else "",
                    action=action,
                    resource=resource,
                    allowed=allowed,
                )
            )
