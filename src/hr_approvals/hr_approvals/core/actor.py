from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable

from .enums import Capability


@dataclass(frozen=True)
class Actor:
    """Authenticated caller, as supplied by the auth middleware.

    The engine trusts this input and does no credential checks of its own.
    """

    actor_id: int
    capabilities: FrozenSet[Capability] = field(default_factory=frozenset)

    @classmethod
    def of(cls, actor_id: int, capabilities: Iterable[str] = ()) -> "Actor":
        caps = set()
        for c in capabilities:
            try:
                caps.add(Capability(str(c).strip()))
            except ValueError:
                continue
        return cls(actor_id=int(actor_id), capabilities=frozenset(caps))

    @property
    def is_admin(self) -> bool:
        return Capability.ADMIN in self.capabilities

    @property
    def can_manage_delegations(self) -> bool:
        return self.is_admin or Capability.DELEGATION_ADMIN in self.capabilities
