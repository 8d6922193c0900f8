from __future__ import annotations

from datetime import datetime
from typing import Optional

import pytest

from src.hr_approvals.hr_approvals.container import Container, assemble
from src.hr_approvals.hr_approvals.core.actor import Actor
from tests.fakes import CHAINS, NAMES, FakeClock, FakeDirectory, InMemoryStore, UowFactory


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 3, 5, 9, 30, 0)


@pytest.fixture
def clock(fixed_now) -> FakeClock:
    return FakeClock(fixed_now)


@pytest.fixture
def store() -> InMemoryStore:
    s = InMemoryStore()
    for employee_id in NAMES:
        s.set_balance(employee_id, 1, 2024)
    return s


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory(NAMES, CHAINS)


@pytest.fixture
def uow_factory(store) -> UowFactory:
    return UowFactory(store)


@pytest.fixture
def approval_levels() -> dict:
    return {"leave": 2, "overtime": 1, "correction": 2}


@pytest.fixture
def container(directory, uow_factory, approval_levels, clock) -> Container:
    return assemble(directory=directory, uow_factory=uow_factory, approval_levels=approval_levels, clock=clock)


@pytest.fixture
def workflow(container):
    return container.workflow


@pytest.fixture
def delegations(container):
    return container.delegation_service


@pytest.fixture
def actor():
    def make(actor_id: int, *capabilities: str) -> Actor:
        return Actor.of(actor_id, capabilities)

    return make


@pytest.fixture
def leave_payload():
    def make(start: str = "2024-03-11", end: str = "2024-03-12", days: Optional[str] = None, leave_type_id: int = 1) -> dict:
        payload = {
            "leave_type_id": leave_type_id,
            "start_date": start,
            "end_date": end,
            "reason": "family trip",
        }
        if days is not None:
            payload["days_requested"] = days
        return payload

    return make
