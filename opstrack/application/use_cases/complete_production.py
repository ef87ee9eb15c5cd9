"""Complete Production Use Case."""

from opstrack.application.dto.requests import CompleteProductionRequest
from opstrack.config import get_logger
from opstrack.core.entities import Production
from opstrack.core.services.event_orchestrator import (
    BusinessEventOrchestrator,
    EventOutcome,
)

logger = get_logger(__name__)


class CompleteProductionUseCase:
    """
    Close a production order with its actual consumption.

    Goes through the production update path, so stock only moves when
    status-transition posting is enabled.
    """

    def __init__(self, orchestrator: BusinessEventOrchestrator):
        self._orchestrator = orchestrator

    async def execute(self, request: CompleteProductionRequest) -> EventOutcome[Production]:
        logger.info("complete_production_started", production_id=request.production_id)
        outcome = await self._orchestrator.complete_production(
            request.production_id,
            actual_quantities=request.actual_quantities,
            end_date=request.end_date,
        )
        logger.info(
            "complete_production_complete",
            production_id=request.production_id,
            movements=len(outcome.movements),
        )
        return outcome
