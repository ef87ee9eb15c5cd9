"""Application use cases."""

from opstrack.application.use_cases.adjust_stock import AdjustStockResult, AdjustStockUseCase
from opstrack.application.use_cases.complete_production import CompleteProductionUseCase
from opstrack.application.use_cases.receive_stock import ReceiveStockUseCase

__all__ = [
    "ReceiveStockUseCase",
    "AdjustStockUseCase",
    "AdjustStockResult",
    "CompleteProductionUseCase",
]
