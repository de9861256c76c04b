"""
Idea workflow status - stage tagged with the acting admin tier.

Stored form is the concatenation ``<Stage>By<Role>`` used by the review UIs
(e.g. "ApprovedByL1Admin", "RecommendedByL1Admin"). ``Pending`` and a bare
``Rejected`` carry no role suffix.

    >>> str(WorkflowStatus(Stage.APPROVED, AdminRole.L1))
    'ApprovedByL1Admin'
    >>> WorkflowStatus.parse("RecommendedByL1Admin").stage
    <Stage.RECOMMENDED: 'Recommended'>
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from ideabox.core.exceptions import ValidationError


class Stage(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    RECOMMENDED = "Recommended"
    REJECTED = "Rejected"


class AdminRole(str, Enum):
    L1 = "L1Admin"
    L2 = "L2Admin"


# Stages an admin may move an idea into
DECISION_STAGES = frozenset({Stage.APPROVED, Stage.RECOMMENDED, Stage.REJECTED})

# Which tiers may perform which decision
_ALLOWED_ROLES = {
    Stage.APPROVED: frozenset({AdminRole.L1, AdminRole.L2}),
    Stage.RECOMMENDED: frozenset({AdminRole.L1}),
    Stage.REJECTED: frozenset({AdminRole.L1, AdminRole.L2}),
}

_ROLE_ALIASES = {
    "l1": AdminRole.L1,
    "l1admin": AdminRole.L1,
    "adminl1": AdminRole.L1,
    "l2": AdminRole.L2,
    "l2admin": AdminRole.L2,
    "adminl2": AdminRole.L2,
}

_STAGE_ALIASES = {stage.value.lower(): stage for stage in Stage}

_STATUS_RE = re.compile(r"^(?P<stage>[A-Za-z]+?)By(?P<role>[A-Za-z0-9]+)$")


def parse_stage(value) -> Stage:
    """Resolve a stage name (case-insensitive) or raise ValidationError."""
    if isinstance(value, Stage):
        return value
    stage = _STAGE_ALIASES.get(str(value or "").strip().lower())
    if stage is None:
        raise ValidationError(
            f"Invalid status '{value}'",
            details={"status": f"must be one of {sorted(s.value for s in DECISION_STAGES)}"},
        )
    return stage


def parse_role(value) -> AdminRole:
    """Resolve an admin tier from any accepted alias or raise ValidationError."""
    if isinstance(value, AdminRole):
        return value
    role = _ROLE_ALIASES.get(str(value or "").strip().lower())
    if role is None:
        raise ValidationError(
            f"Invalid admin role '{value}'",
            details={"adminRole": f"must be one of {[r.value for r in AdminRole]}"},
        )
    return role


def is_rejected_status(status: str | None) -> bool:
    """True for any stored status denoting rejection."""
    return "rejected" in (status or "").lower()


@dataclass(frozen=True)
class WorkflowStatus:
    stage: Stage
    acted_by: AdminRole | None = None

    def __str__(self) -> str:
        if self.acted_by is None:
            return self.stage.value
        return f"{self.stage.value}By{self.acted_by.value}"

    @property
    def is_terminal(self) -> bool:
        return self.stage is Stage.REJECTED

    @classmethod
    def decision(cls, stage, role) -> WorkflowStatus:
        """Build the status an admin decision produces, enforcing tier rules."""
        stage = parse_stage(stage)
        role = parse_role(role)
        if stage not in DECISION_STAGES:
            raise ValidationError(
                f"'{stage.value}' is not an admin decision",
                details={"status": f"must be one of {sorted(s.value for s in DECISION_STAGES)}"},
            )
        if role not in _ALLOWED_ROLES[stage]:
            raise ValidationError(
                f"{role.value} cannot set an idea to {stage.value}",
                details={"adminRole": role.value},
            )
        return cls(stage, role)

    @classmethod
    def parse(cls, text: str) -> WorkflowStatus:
        """Parse a stored status string back into its stage and role."""
        text = (text or "").strip()
        match = _STATUS_RE.match(text)
        if match:
            return cls(parse_stage(match["stage"]), parse_role(match["role"]))
        return cls(parse_stage(text))
