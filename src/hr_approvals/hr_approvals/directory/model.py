from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Employee:
    """Domain entity: an employee as seen by the approval workflow."""

    employee_id: int
    full_name: str
    is_active: bool = True

