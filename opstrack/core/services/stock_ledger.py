"""
Stock Ledger Engine.

The only writer of StockMovement records. Each posting reads the
material's current quantity, appends one immutable movement with
before/after snapshots and writes the material back, both collections
in a single repository commit inside the repository's write
transaction, so no other write can interleave with the read.
"""

from dataclasses import dataclass
from enum import Enum

from opstrack.config import get_logger
from opstrack.core.entities import Material, MovementType, StockMovement, new_id, utc_now
from opstrack.core.exceptions import (
    InsufficientStockError,
    MaterialNotFoundError,
    ValidationError,
)
from opstrack.core.services.entity_repository import (
    CollectionKey,
    EntityRepository,
    WriteTransaction,
)

logger = get_logger(__name__)


class PostingStatus(str, Enum):
    """Outcome of a post_movement call."""

    POSTED = "posted"
    MATERIAL_NOT_FOUND = "material_not_found"


@dataclass
class LedgerPosting:
    """Result of posting a movement."""

    status: PostingStatus
    material_id: str
    movement: StockMovement | None = None
    material: Material | None = None  # state after the posting

    @property
    def posted(self) -> bool:
        return self.status == PostingStatus.POSTED


@dataclass
class MaterialCorrection:
    """Saved material edit and the ADJUSTMENT it produced, if any."""

    material: Material
    posting: LedgerPosting | None = None


class StockLedgerService:
    """
    Applies signed quantity deltas to materials.

    Sign convention: RECEIPT and RETURN add stock, SALE and
    PRODUCTION_CONSUMPTION deplete it (callers pass the negated quantity),
    ADJUSTMENT goes either way.
    """

    def __init__(self, repository: EntityRepository, allow_negative_stock: bool = True):
        self._repository = repository
        self._allow_negative_stock = allow_negative_stock

    async def post_movement(
        self,
        material_id: str,
        quantity: float,
        movement_type: MovementType | str,
        reference_id: str | None = None,
        notes: str | None = None,
    ) -> LedgerPosting:
        """
        Post one movement against a material.

        An unknown material is a no-op reported through the returned
        status, not an exception.

        Raises:
            ValidationError: zero delta or sign not matching the type
            InsufficientStockError: negative stock is disallowed and the
                posting would go below zero
            PersistenceError: nothing was posted
        """
        movement_type = MovementType(movement_type)
        self._check_sign(movement_type, quantity)

        async with self._repository.transaction() as tx:
            material = self._repository.materials.get_by_id(material_id)
            if material is None:
                logger.warning(
                    "stock_movement_skipped",
                    reason="material_not_found",
                    material_id=material_id,
                    type=movement_type.value,
                    reference_id=reference_id,
                )
                return LedgerPosting(
                    status=PostingStatus.MATERIAL_NOT_FOUND, material_id=material_id
                )
            posting = await self._post(tx, material, quantity, movement_type, reference_id, notes)

        self._log_posting(posting)
        return posting

    async def correct_material(self, edited: Material, notes: str) -> MaterialCorrection:
        """
        Save a material edit whose current_quantity may differ from stock.

        current_quantity is taken as the intended on-hand quantity. The
        other fields and one ADJUSTMENT for the difference against the
        stored quantity are written in a single commit; nothing is saved
        when that commit fails.

        Raises:
            MaterialNotFoundError: unknown material id
            InsufficientStockError: negative stock is disallowed
            PersistenceError: nothing was saved
        """
        async with self._repository.transaction() as tx:
            stored = self._repository.materials.get_by_id(edited.id or "")
            if stored is None:
                raise MaterialNotFoundError(edited.id or "")

            delta = edited.current_quantity - stored.current_quantity
            saved = edited.model_copy(
                update={"current_quantity": stored.current_quantity, "last_updated": utc_now()}
            )
            if not delta:
                await tx.commit(
                    {CollectionKey.MATERIALS: self._repository.materials.with_replaced(saved)}
                )
                return MaterialCorrection(material=saved)

            posting = await self._post(tx, saved, delta, MovementType.ADJUSTMENT, None, notes)

        self._log_posting(posting)
        return MaterialCorrection(material=posting.material or saved, posting=posting)

    async def post_to_quantity(
        self, material_id: str, target: float, notes: str | None = None
    ) -> LedgerPosting | None:
        """
        Post one ADJUSTMENT bringing a material to ``target``.

        The difference is taken against the stored quantity under the write
        lock. Returns None when the material is already at ``target``.

        Raises:
            MaterialNotFoundError: unknown material id
            InsufficientStockError: negative stock is disallowed
            PersistenceError: nothing was posted
        """
        async with self._repository.transaction() as tx:
            material = self._repository.materials.get_by_id(material_id)
            if material is None:
                raise MaterialNotFoundError(material_id)
            delta = target - material.current_quantity
            if not delta:
                return None
            posting = await self._post(tx, material, delta, MovementType.ADJUSTMENT, None, notes)

        self._log_posting(posting)
        return posting

    async def _post(
        self,
        tx: WriteTransaction,
        material: Material,
        quantity: float,
        movement_type: MovementType,
        reference_id: str | None,
        notes: str | None,
    ) -> LedgerPosting:
        """Commit material and movement together. Caller holds the transaction."""
        material_id = material.id or ""
        before = material.current_quantity
        after = before + quantity
        if after < 0 and quantity < 0 and not self._allow_negative_stock:
            raise InsufficientStockError(
                material_id=material_id, requested=-quantity, available=before
            )

        now = utc_now()
        movement = StockMovement(
            id=new_id(),
            material_id=material_id,
            material_name=material.name,
            type=movement_type,
            quantity=quantity,
            before_quantity=before,
            after_quantity=after,
            date=now,
            reference_id=reference_id,
            notes=notes,
        )
        updated = material.model_copy(update={"current_quantity": after, "last_updated": now})

        await tx.commit(
            {
                CollectionKey.MATERIALS: self._repository.materials.with_replaced(updated),
                CollectionKey.STOCK_MOVEMENTS: self._repository.stock_movements.with_appended(
                    movement
                ),
            }
        )
        return LedgerPosting(
            status=PostingStatus.POSTED,
            material_id=material_id,
            movement=movement,
            material=updated,
        )

    @staticmethod
    def _log_posting(posting: LedgerPosting) -> None:
        movement = posting.movement
        if movement is None:
            return
        if movement.after_quantity < 0:
            logger.warning(
                "negative_stock", material_id=posting.material_id, quantity=movement.after_quantity
            )
        logger.info(
            "stock_movement_posted",
            movement_id=movement.id,
            material_id=posting.material_id,
            type=movement.type.value,
            qty=movement.quantity,
            before=movement.before_quantity,
            after=movement.after_quantity,
            reference_id=movement.reference_id,
        )

    @staticmethod
    def _check_sign(movement_type: MovementType, quantity: float) -> None:
        if quantity == 0:
            raise ValidationError("quantity", "movement quantity must be non-zero", quantity)
        sign = movement_type.sign
        if sign and (quantity > 0) != (sign > 0):
            expected = "positive" if sign > 0 else "negative"
            raise ValidationError(
                "quantity",
                f"{movement_type.value} movements must be {expected}",
                quantity,
            )
