"""HR approvals package.

Organized by feature modules (requests, delegations, approvals, ...) with a
thin Flask controller layer on top of service/repository layers. Multi-step
writes go through a unit of work (see ``database.unit_of_work``).
"""
