"""Receive Stock Use Case: RECEIPT or RETURN movement."""

from opstrack.application.dto.requests import ReceiveStockRequest
from opstrack.config import get_logger
from opstrack.core.entities import MovementType
from opstrack.core.exceptions import MaterialNotFoundError
from opstrack.core.services.stock_ledger import LedgerPosting, StockLedgerService

logger = get_logger(__name__)


class ReceiveStockUseCase:
    """Add stock to a material from a delivery or a customer return."""

    def __init__(self, ledger: StockLedgerService):
        self._ledger = ledger

    async def execute(self, request: ReceiveStockRequest) -> LedgerPosting:
        """Execute receive stock use case."""
        movement_type = (
            MovementType.RETURN if request.kind == "return" else MovementType.RECEIPT
        )
        logger.info(
            "receive_stock_started",
            material_id=request.material_id,
            quantity=request.quantity,
            type=movement_type.value,
        )

        posting = await self._ledger.post_movement(
            request.material_id,
            request.quantity,
            movement_type,
            reference_id=request.reference_id,
            notes=request.notes or ("Customer return" if request.kind == "return" else None),
        )
        if not posting.posted:
            raise MaterialNotFoundError(request.material_id)

        logger.info(
            "receive_stock_complete",
            material_id=request.material_id,
            new_qty=posting.material.current_quantity if posting.material else None,
        )
        return posting
