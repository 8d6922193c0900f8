from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import ResolutionMode


@dataclass(frozen=True)
class Resolution:
    """Whether an actor may act on a level, and on whose behalf."""

    authorized: bool
    mode: Optional[ResolutionMode] = None
    delegation_id: Optional[int] = None
    effective_name: Optional[str] = None

    @classmethod
    def denied(cls) -> "Resolution":
        return cls(authorized=False)

    @property
    def is_delegation(self) -> bool:
        return self.mode == ResolutionMode.DELEGATED

    def to_dict(self) -> dict:
        return {
            "authorized": self.authorized,
            "mode": self.mode.value if self.mode else None,
            "delegation_id": self.delegation_id,
            "effective_name": self.effective_name,
        }


@dataclass(frozen=True)
class ApprovalRights:
    can_approve: bool
    is_delegation: bool = False
    delegation_id: Optional[int] = None
    delegator_name: Optional[str] = None

    @classmethod
    def from_resolution(cls, resolution: Resolution) -> "ApprovalRights":
        if not resolution.authorized:
            return cls(can_approve=False)
        return cls(
            can_approve=True,
            is_delegation=resolution.is_delegation,
            delegation_id=resolution.delegation_id,
            delegator_name=resolution.effective_name if resolution.is_delegation else None,
        )

    def to_dict(self) -> dict:
        return {
            "can_approve": self.can_approve,
            "is_delegation": self.is_delegation,
            "delegation_id": self.delegation_id,
            "delegator_name": self.delegator_name,
        }
