from .material_service import MaterialService
from .sofa_service import SofaModelService
from .order_service import OrderService
from .reporting_service import ReportingService
from .excel_service import ExcelService

__all__ = [
    "MaterialService",
    "SofaModelService",
    "OrderService",
    "ReportingService",
    "ExcelService",
]
