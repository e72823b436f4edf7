"""Runtime settings read from the environment."""
from __future__ import annotations

import os
from typing import List, Optional

from loguru import logger
from pydantic import BaseModel, Field

from .domain.policy import AccessPolicy

DEFAULT_EVALUATORS = "form,person_pool"


class Settings(BaseModel):
    database_url: str = "sqlite:///./clinaccess.db"
    access_policy_path: Optional[str] = None
    permission_evaluators: List[str] = Field(default_factory=lambda: DEFAULT_EVALUATORS.split(","))

    @classmethod
    def from_env(cls) -> "Settings":
        names = os.getenv("PERMISSION_EVALUATORS", DEFAULT_EVALUATORS)
        return cls(
            database_url=os.getenv("DATABASE_URL", "sqlite:///./clinaccess.db"),
            access_policy_path=os.getenv("ACCESS_POLICY_PATH") or None,
            permission_evaluators=[name.strip() for name in names.split(",") if name.strip()],
        )

    def load_policy(self) -> AccessPolicy:
        if not self.access_policy_path:
            logger.warning("ACCESS_POLICY_PATH not set; no role grants are configured")
            return AccessPolicy()
        return AccessPolicy.from_file(self.access_policy_path)
