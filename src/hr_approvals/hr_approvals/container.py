from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from .common.datetime_utils import Clock, now_local
from .database.connection import DBConfig, DatabaseConnection
from .database.unit_of_work import MySQLUnitOfWork, UnitOfWorkFactory
from .delegations.service import DelegationService
from .directory.mysql_directory_repository import MySQLDirectory
from .directory.repository import Directory
from .requests.workflow import WorkflowEngine


@dataclass(frozen=True)
class Container:
    directory: Directory
    uow_factory: UnitOfWorkFactory

    workflow: WorkflowEngine
    delegation_service: DelegationService


def assemble(
    *,
    directory: Directory,
    uow_factory: UnitOfWorkFactory,
    approval_levels: Optional[Mapping[str, int]] = None,
    clock: Clock = now_local,
) -> Container:
    return Container(
        directory=directory,
        uow_factory=uow_factory,
        workflow=WorkflowEngine(uow_factory, directory, approval_levels=approval_levels, clock=clock),
        delegation_service=DelegationService(uow_factory, directory, clock=clock),
    )


def build_container(*, db_config: dict, approval_levels: Optional[Mapping[str, int]] = None) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    return assemble(
        directory=MySQLDirectory(conn),
        uow_factory=lambda: MySQLUnitOfWork(conn),
        approval_levels=approval_levels,
    )
