"""Example: drive the engine through the service layer (no Flask).

Uses the demo seed: Tuan asks for leave, Lan is away and has delegated
leave approvals to Vy, Minh gives the final approval.
"""

import importlib
from datetime import timedelta

from dotenv import load_dotenv

from config import get_settings_module

from src.hr_approvals.hr_approvals.container import build_container
from src.hr_approvals.hr_approvals.core.actor import Actor

LAN, MINH, TUAN, VY = 3, 2, 4, 5


def main():
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG, approval_levels=settings.APPROVAL_LEVELS)
    today = container.delegation_service.today()

    created = container.delegation_service.create_delegation(
        Actor.of(LAN),
        delegate_id=VY,
        start_date=today,
        end_date=today + timedelta(days=7),
        delegation_type="leave",
        reason="Annual leave",
    )
    print("delegation:", created.delegation.to_dict(today=today), created.warnings)

    start = today + timedelta(days=14)
    result = container.workflow.create_request(
        Actor.of(TUAN),
        "leave",
        {"leave_type_id": 1, "start_date": start.isoformat(), "end_date": start.isoformat()},
    )
    request_id = result.request.request_id
    print("created:", result.to_dict())

    print("vy approves:", container.workflow.approve(request_id, Actor.of(VY), "Covering for Lan").to_dict())
    print("minh approves:", container.workflow.approve(request_id, Actor.of(MINH)).to_dict())


if __name__ == "__main__":
    main()
