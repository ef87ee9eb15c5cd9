"""Adjust Stock Use Case: ADJUSTMENT movement from a delta or a stock take."""

from dataclasses import dataclass

from opstrack.application.dto.requests import AdjustStockRequest
from opstrack.config import get_logger
from opstrack.core.entities import Material, MovementType
from opstrack.core.exceptions import MaterialNotFoundError
from opstrack.core.services.entity_repository import EntityRepository
from opstrack.core.services.stock_ledger import LedgerPosting, StockLedgerService

logger = get_logger(__name__)


@dataclass
class AdjustStockResult:
    """Result of a stock adjustment."""

    material: Material
    posting: LedgerPosting | None = None  # None when already at the counted quantity


class AdjustStockUseCase:
    """Correct on-hand stock through the ledger."""

    def __init__(self, repository: EntityRepository, ledger: StockLedgerService):
        self._repository = repository
        self._ledger = ledger

    async def execute(self, request: AdjustStockRequest) -> AdjustStockResult:
        """Execute adjust stock use case."""
        material = self._repository.materials.get_by_id(request.material_id)
        if material is None:
            raise MaterialNotFoundError(request.material_id)

        if request.counted_quantity is not None:
            # Difference is taken under the ledger's write lock
            posting = await self._ledger.post_to_quantity(
                request.material_id,
                request.counted_quantity,
                notes=request.notes or f"Stock take: counted {request.counted_quantity:g}",
            )
        elif request.delta:
            posting = await self._ledger.post_movement(
                request.material_id, request.delta, MovementType.ADJUSTMENT, notes=request.notes
            )
        else:
            posting = None

        if posting is None:
            logger.info("adjust_stock_noop", material_id=request.material_id)
            return AdjustStockResult(material=material)
        if not posting.posted or posting.material is None:
            raise MaterialNotFoundError(request.material_id)
        logger.info(
            "adjust_stock_complete",
            material_id=request.material_id,
            delta=posting.movement.quantity if posting.movement else None,
            new_qty=posting.material.current_quantity,
        )
        return AdjustStockResult(material=posting.material, posting=posting)
