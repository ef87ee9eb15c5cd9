"""
OperationsTracker - the facade the UI collaborator talks to.

Wraps the repository, ledger and orchestrator. Every write returns an
OperationResult instead of raising and publishes a Notification, so a
caller can branch on the outcome and show a toast.
"""

import traceback
from collections.abc import Awaitable, Callable
from datetime import date, datetime
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from opstrack.application.dto.requests import (
    AdjustStockRequest,
    CompleteProductionRequest,
    ReceiveStockRequest,
)
from opstrack.application.dto.results import Notification, NotificationLevel, OperationResult
from opstrack.application.use_cases import (
    AdjustStockUseCase,
    CompleteProductionUseCase,
    ReceiveStockUseCase,
)
from opstrack.config import LedgerSettings, get_logger, get_settings
from opstrack.core.entities import (
    BOQ,
    Customer,
    DashboardSummary,
    Material,
    MovementType,
    Production,
    Sale,
    StockMovement,
)
from opstrack.core.exceptions import MaterialNotFoundError, OpsTrackError, ValidationError
from opstrack.core.services import (
    BusinessEventOrchestrator,
    DisplayNumberAllocator,
    EntityRepository,
    EventOutcome,
    LedgerAuditor,
    LedgerAuditReport,
    StockLedgerService,
    build_dashboard_summary,
    inventory_value_by_category,
    movement_type_counts,
    movements_in_range,
    sales_in_date_range,
)
from opstrack.core.services.entity_repository import ChangeListener

logger = get_logger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

NotificationListener = Callable[[Notification], None]


def validate_input(model: type[M], data: M | dict[str, Any]) -> M:
    """
    Accept a model instance or a plain dict; raise ValidationError.

    Instances are dumped and validated again: fields assigned after
    construction are not checked and computed totals may be stale.
    """
    try:
        if isinstance(data, model):
            return model.model_validate(data.model_dump())
        return model.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or model.__name__
        raise ValidationError(field, first["msg"], first.get("input")) from e


class OperationsTracker:
    """
    Business operations core: materials, sales, BOQs, productions,
    customers and the stock ledger.

    Call ``start()`` once before use; ``is_loading`` is True while the
    collections are being hydrated.
    """

    def __init__(
        self,
        repository: EntityRepository,
        ledger_settings: LedgerSettings | None = None,
    ):
        settings = ledger_settings or get_settings().ledger
        self._repository = repository
        self._ledger = StockLedgerService(
            repository, allow_negative_stock=settings.allow_negative_stock
        )
        self._orchestrator = BusinessEventOrchestrator(
            repository,
            self._ledger,
            sale_numbers=DisplayNumberAllocator(settings.sale_number_prefix),
            production_numbers=DisplayNumberAllocator(settings.production_number_prefix),
            post_on_status_transition=settings.post_on_status_transition,
        )
        self._auditor = LedgerAuditor(repository)
        self._receive_stock = ReceiveStockUseCase(self._ledger)
        self._adjust_stock = AdjustStockUseCase(repository, self._ledger)
        self._complete_production = CompleteProductionUseCase(self._orchestrator)

        self._is_loading = False
        self._listeners: list[NotificationListener] = []

    # Lifecycle

    @property
    def is_loading(self) -> bool:
        """True while start() is hydrating the repository."""
        return self._is_loading

    @property
    def is_ready(self) -> bool:
        return self._repository.loaded and not self._is_loading

    @property
    def repository(self) -> EntityRepository:
        return self._repository

    async def start(self) -> list[str]:
        """
        Load all collections and reconcile the ledger.

        Returns:
            Non-fatal warnings (fallback data, repaired storage, ledger
            discrepancies)
        """
        self._is_loading = True
        try:
            warnings = await self._repository.load()
            report = self._auditor.audit()
            if not report.consistent:
                warnings.append(
                    f"Stock ledger has {len(report.discrepancies)} inconsistency(ies)"
                )
        finally:
            self._is_loading = False

        for warning in warnings:
            self._emit(NotificationLevel.WARNING, "Storage", warning)
        logger.info("tracker_started", warnings=len(warnings))
        return warnings

    async def close(self) -> None:
        await self._repository.store.close()

    def subscribe_notifications(self, listener: NotificationListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def subscribe_changes(self, listener: ChangeListener) -> Callable[[], None]:
        """Listener receives the set of collections changed by each commit."""
        return self._repository.subscribe(listener)

    # Reads

    def list_materials(self) -> list[Material]:
        return self._repository.materials.list()

    def list_sales(self) -> list[Sale]:
        return self._repository.sales.list()

    def list_boqs(self) -> list[BOQ]:
        return self._repository.boqs.list()

    def list_productions(self) -> list[Production]:
        return self._repository.productions.list()

    def list_stock_movements(self) -> list[StockMovement]:
        return self._repository.stock_movements.list()

    def list_customers(self) -> list[Customer]:
        return self._repository.customers.list()

    def get_material(self, material_id: str) -> Material | None:
        return self._repository.materials.get_by_id(material_id)

    def get_sale(self, sale_id: str) -> Sale | None:
        return self._repository.sales.get_by_id(sale_id)

    def get_boq(self, boq_id: str) -> BOQ | None:
        return self._repository.boqs.get_by_id(boq_id)

    def get_production(self, production_id: str) -> Production | None:
        return self._repository.productions.get_by_id(production_id)

    def get_customer(self, customer_id: str) -> Customer | None:
        return self._repository.customers.get_by_id(customer_id)

    def get_low_stock_materials(self) -> list[Material]:
        return self._repository.low_stock_materials()

    def get_stock_movements_for_material(self, material_id: str) -> list[StockMovement]:
        return self._repository.movements_for_material(material_id)

    def get_sales_by_date_range(self, start: date | datetime, end: date | datetime) -> list[Sale]:
        return sales_in_date_range(self._repository, start, end)

    def get_stock_movements_by_date_range(
        self,
        start: date | datetime,
        end: date | datetime,
        movement_type: MovementType | str | None = None,
    ) -> list[StockMovement]:
        return movements_in_range(self._repository, start, end, movement_type)

    def get_movement_type_counts(
        self, start: date | datetime | None = None, end: date | datetime | None = None
    ) -> dict[MovementType, int]:
        return movement_type_counts(self._repository, start, end)

    def get_inventory_value_by_category(self) -> dict[str, float]:
        return inventory_value_by_category(self._repository)

    def get_dashboard_summary(self) -> DashboardSummary:
        return build_dashboard_summary(self._repository)

    def audit_ledger(self) -> LedgerAuditReport:
        return self._auditor.audit()

    # Materials

    async def add_material(self, material: Material | dict[str, Any]) -> OperationResult[Material]:
        async def action() -> EventOutcome[Material]:
            return await self._orchestrator.add_material(validate_input(Material, material))

        return await self._execute(
            action,
            "Material Added",
            lambda m: f"{m.name} has been added to inventory.",
        )

    async def update_material(
        self, material: Material | dict[str, Any]
    ) -> OperationResult[Material]:
        async def action() -> EventOutcome[Material]:
            return await self._orchestrator.update_material(validate_input(Material, material))

        return await self._execute(
            action, "Material Updated", lambda m: f"{m.name} has been updated."
        )

    async def delete_material(self, material_id: str) -> OperationResult[bool]:
        return await self._execute_delete(
            lambda: self._orchestrator.delete_material(material_id),
            "Material Deleted",
            lambda m: f"{m.name} has been removed.",
        )

    # Customers

    async def add_customer(self, customer: Customer | dict[str, Any]) -> OperationResult[Customer]:
        async def action() -> Customer:
            return await self._orchestrator.add_customer(validate_input(Customer, customer))

        return await self._execute(
            action, "Customer Added", lambda c: f"{c.name} has been added."
        )

    async def update_customer(
        self, customer: Customer | dict[str, Any]
    ) -> OperationResult[Customer]:
        async def action() -> Customer:
            return await self._orchestrator.update_customer(validate_input(Customer, customer))

        return await self._execute(
            action, "Customer Updated", lambda c: f"{c.name} has been updated."
        )

    async def delete_customer(self, customer_id: str) -> OperationResult[bool]:
        return await self._execute_delete(
            lambda: self._orchestrator.delete_customer(customer_id),
            "Customer Deleted",
            lambda c: f"{c.name} has been removed.",
        )

    # Sales

    async def add_sale(self, sale: Sale | dict[str, Any]) -> OperationResult[Sale]:
        async def action() -> EventOutcome[Sale]:
            return await self._orchestrator.create_sale(validate_input(Sale, sale))

        return await self._execute(
            action,
            "Sale Created",
            lambda s: f"Sale order {s.order_number} has been created.",
        )

    async def update_sale(self, sale: Sale | dict[str, Any]) -> OperationResult[Sale]:
        async def action() -> EventOutcome[Sale]:
            return await self._orchestrator.update_sale(validate_input(Sale, sale))

        return await self._execute(
            action,
            "Sale Updated",
            lambda s: f"Sale order {s.order_number} has been updated.",
        )

    async def delete_sale(self, sale_id: str) -> OperationResult[bool]:
        return await self._execute_delete(
            lambda: self._orchestrator.delete_sale(sale_id),
            "Sale Deleted",
            lambda s: f"Sale order {s.order_number} has been deleted.",
        )

    # BOQs

    async def add_boq(self, boq: BOQ | dict[str, Any]) -> OperationResult[BOQ]:
        async def action() -> BOQ:
            return await self._orchestrator.create_boq(validate_input(BOQ, boq))

        return await self._execute(
            action,
            "BOQ Created",
            lambda b: f"BOQ for {b.project_name} has been created.",
        )

    async def update_boq(self, boq: BOQ | dict[str, Any]) -> OperationResult[BOQ]:
        async def action() -> BOQ:
            return await self._orchestrator.update_boq(validate_input(BOQ, boq))

        return await self._execute(
            action,
            "BOQ Updated",
            lambda b: f"BOQ for {b.project_name} has been updated.",
        )

    async def delete_boq(self, boq_id: str) -> OperationResult[bool]:
        return await self._execute_delete(
            lambda: self._orchestrator.delete_boq(boq_id),
            "BOQ Deleted",
            lambda b: f"BOQ for {b.project_name} has been deleted.",
        )

    # Productions

    async def add_production(
        self, production: Production | dict[str, Any]
    ) -> OperationResult[Production]:
        async def action() -> EventOutcome[Production]:
            return await self._orchestrator.create_production(
                validate_input(Production, production)
            )

        return await self._execute(
            action,
            "Production Created",
            lambda p: f"Production order {p.production_number} has been created.",
        )

    async def update_production(
        self, production: Production | dict[str, Any]
    ) -> OperationResult[Production]:
        async def action() -> EventOutcome[Production]:
            return await self._orchestrator.update_production(
                validate_input(Production, production)
            )

        return await self._execute(
            action,
            "Production Updated",
            lambda p: f"Production order {p.production_number} has been updated.",
        )

    async def complete_production(
        self, request: CompleteProductionRequest | dict[str, Any]
    ) -> OperationResult[Production]:
        async def action() -> EventOutcome[Production]:
            return await self._complete_production.execute(
                validate_input(CompleteProductionRequest, request)
            )

        return await self._execute(
            action,
            "Production Completed",
            lambda p: f"Production order {p.production_number} has been completed.",
        )

    async def delete_production(self, production_id: str) -> OperationResult[bool]:
        return await self._execute_delete(
            lambda: self._orchestrator.delete_production(production_id),
            "Production Deleted",
            lambda p: f"Production order {p.production_number} has been deleted.",
        )

    # Stock

    async def record_stock_movement(
        self,
        material_id: str,
        quantity: float,
        movement_type: MovementType | str,
        reference_id: str | None = None,
        notes: str | None = None,
    ) -> OperationResult[StockMovement]:
        """Post a movement directly; an unknown material fails with MATERIAL_NOT_FOUND."""

        async def action() -> StockMovement:
            try:
                kind = MovementType(movement_type)
            except ValueError as e:
                raise ValidationError("type", "unknown movement type", movement_type) from e
            posting = await self._ledger.post_movement(
                material_id, quantity, kind, reference_id=reference_id, notes=notes
            )
            if posting.movement is None:
                raise MaterialNotFoundError(material_id)
            return posting.movement

        return await self._execute(
            action,
            "Stock Updated",
            lambda mv: f"{mv.material_name}: {mv.before_quantity:g} -> {mv.after_quantity:g}",
        )

    async def receive_stock(
        self, request: ReceiveStockRequest | dict[str, Any]
    ) -> OperationResult[Material]:
        async def action() -> Material:
            posting = await self._receive_stock.execute(
                validate_input(ReceiveStockRequest, request)
            )
            return posting.material  # type: ignore[return-value]

        return await self._execute(
            action,
            "Stock Received",
            lambda m: f"{m.name} now at {m.current_quantity:g} {m.unit}.",
        )

    async def return_stock(
        self,
        material_id: str,
        quantity: float,
        reference_id: str | None = None,
        notes: str | None = None,
    ) -> OperationResult[Material]:
        """Book a customer return (RETURN movement)."""
        return await self.receive_stock(
            {
                "material_id": material_id,
                "quantity": quantity,
                "kind": "return",
                "reference_id": reference_id,
                "notes": notes,
            }
        )

    async def adjust_stock(
        self, request: AdjustStockRequest | dict[str, Any]
    ) -> OperationResult[Material]:
        async def action() -> Material:
            result = await self._adjust_stock.execute(validate_input(AdjustStockRequest, request))
            return result.material

        return await self._execute(
            action,
            "Stock Adjusted",
            lambda m: f"{m.name} now at {m.current_quantity:g} {m.unit}.",
        )

    # Plumbing

    async def _execute(
        self,
        action: Callable[[], Awaitable[Any]],
        title: str,
        describe: Callable[[Any], str],
    ) -> OperationResult:
        try:
            value = await action()
        except OpsTrackError as e:
            return self._fail(title, e)
        except Exception as e:
            return self._fail(title, self._unexpected(e))

        warnings: list[str] = []
        if isinstance(value, EventOutcome):
            warnings = value.warnings
            value = value.entity

        self._emit(NotificationLevel.INFO, title, describe(value))
        for warning in warnings:
            self._emit(NotificationLevel.WARNING, title, warning)
        return OperationResult.success(value, warnings=warnings)

    async def _execute_delete(
        self,
        action: Callable[[], Awaitable[Any]],
        title: str,
        describe: Callable[[Any], str],
    ) -> OperationResult[bool]:
        try:
            removed = await action()
        except OpsTrackError as e:
            return self._fail(title, e)
        except Exception as e:
            return self._fail(title, self._unexpected(e))
        if removed is None:
            return OperationResult.success(False)
        self._emit(NotificationLevel.INFO, title, describe(removed))
        return OperationResult.success(True)

    def _fail(self, title: str, error: OpsTrackError) -> OperationResult:
        logger.warning(
            "operation_failed",
            operation=title,
            code=error.code,
            error=error.message,
        )
        self._emit(NotificationLevel.ERROR, "Error", error.message)
        return OperationResult.failure(error)

    def _emit(self, level: NotificationLevel, title: str, message: str) -> None:
        notification = Notification(level=level, title=title, message=message)
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception:
                logger.exception("notification_listener_failed")

    @staticmethod
    def _unexpected(exc: Exception) -> OpsTrackError:
        logger.error(
            "unhandled_exception",
            error_type=exc.__class__.__name__,
            error=str(exc),
            traceback=traceback.format_exc(),
        )
        return OpsTrackError(str(exc) or exc.__class__.__name__, code="INTERNAL_ERROR")
