from __future__ import annotations

from typing import Optional, Protocol, Sequence


class Directory(Protocol):
    """Employee/org directory interface.

    Note (DIP): the workflow depends on this interface only; it holds no
    org-chart knowledge of its own.
    """

    def manager_chain_of(self, employee_id: int) -> Sequence[int]:
        """Ordered approver ids: direct manager first, then upward."""

        raise NotImplementedError

    def display_name(self, employee_id: int) -> Optional[str]:
        raise NotImplementedError

    def exists(self, employee_id: int) -> bool:
        raise NotImplementedError


def is_report_of(directory: Directory, employee_id: int, manager_id: int) -> bool:
    """True if ``manager_id`` appears anywhere in the employee's chain."""
    return int(manager_id) in {int(m) for m in directory.manager_chain_of(int(employee_id))}
