from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from fbo.repositories.sqlite_repo import SqliteRepository
from fbo.services.excel_service import ExcelService
from fbo.services.material_service import MaterialService
from fbo.services.order_service import OrderService
from fbo.services.reporting_service import ReportingService
from fbo.services.sofa_service import SofaModelService


@dataclass(frozen=True)
class AppContainer:
    repo: SqliteRepository
    materials: MaterialService
    sofa_models: SofaModelService
    orders: OrderService
    reporting: ReportingService
    excel: ExcelService


def build_container(db_path: Path | str) -> AppContainer:
    repo = SqliteRepository(db_path)
    repo.init_db()

    materials = MaterialService(repo)
    sofa_models = SofaModelService(repo)
    orders = OrderService(repo)
    reporting = ReportingService(repo)
    excel = ExcelService(repo, materials)

    return AppContainer(
        repo=repo,
        materials=materials,
        sofa_models=sofa_models,
        orders=orders,
        reporting=reporting,
        excel=excel,
    )
