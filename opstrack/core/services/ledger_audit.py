"""Ledger reconciliation: checks materials against their movement history."""

import math
from dataclasses import dataclass, field

from opstrack.config import get_logger
from opstrack.core.entities import Material, StockMovement
from opstrack.core.services.entity_repository import EntityRepository

logger = get_logger(__name__)

_TOLERANCE = 1e-6


@dataclass
class LedgerDiscrepancy:
    """One inconsistency found for a material."""

    material_id: str
    kind: str  # snapshot | chain | balance | orphan
    message: str
    movement_id: str | None = None
    expected: float | None = None
    actual: float | None = None


@dataclass
class LedgerAuditReport:
    materials_checked: int = 0
    movements_checked: int = 0
    discrepancies: list[LedgerDiscrepancy] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.discrepancies

    def for_material(self, material_id: str) -> list[LedgerDiscrepancy]:
        return [d for d in self.discrepancies if d.material_id == material_id]


class LedgerAuditor:
    """
    Verifies the ledger invariant for every material.

    Movements are replayed in posting order: each snapshot must be
    self-consistent, each movement must start where the previous one
    ended, and the last after_quantity must equal current_quantity.
    Movements whose material no longer exists are reported as orphans.
    """

    def __init__(self, repository: EntityRepository):
        self._repository = repository

    def audit(self) -> LedgerAuditReport:
        report = LedgerAuditReport()
        by_material: dict[str, list[StockMovement]] = {}
        for movement in self._repository.stock_movements.list():
            by_material.setdefault(movement.material_id, []).append(movement)
            report.movements_checked += 1

        materials = {m.id: m for m in self._repository.materials.list()}
        for material in materials.values():
            report.materials_checked += 1
            report.discrepancies.extend(
                self._check_material(material, by_material.get(material.id or "", []))
            )

        for material_id, movements in by_material.items():
            if material_id not in materials:
                report.discrepancies.append(
                    LedgerDiscrepancy(
                        material_id=material_id,
                        kind="orphan",
                        message=f"{len(movements)} movement(s) reference a deleted material",
                    )
                )

        if report.consistent:
            logger.info(
                "ledger_audit_passed",
                materials=report.materials_checked,
                movements=report.movements_checked,
            )
        else:
            logger.warning(
                "ledger_audit_discrepancies",
                count=len(report.discrepancies),
                materials=sorted({d.material_id for d in report.discrepancies}),
            )
        return report

    @staticmethod
    def _check_material(
        material: Material, movements: list[StockMovement]
    ) -> list[LedgerDiscrepancy]:
        found: list[LedgerDiscrepancy] = []
        material_id = material.id or ""
        previous_after: float | None = None

        for movement in movements:
            if not _close(movement.after_quantity - movement.before_quantity, movement.quantity):
                found.append(
                    LedgerDiscrepancy(
                        material_id=material_id,
                        kind="snapshot",
                        message="after - before does not match quantity",
                        movement_id=movement.id,
                        expected=movement.before_quantity + movement.quantity,
                        actual=movement.after_quantity,
                    )
                )
            if previous_after is not None and not _close(movement.before_quantity, previous_after):
                found.append(
                    LedgerDiscrepancy(
                        material_id=material_id,
                        kind="chain",
                        message="movement does not start where the previous one ended",
                        movement_id=movement.id,
                        expected=previous_after,
                        actual=movement.before_quantity,
                    )
                )
            previous_after = movement.after_quantity

        if previous_after is not None and not _close(material.current_quantity, previous_after):
            found.append(
                LedgerDiscrepancy(
                    material_id=material_id,
                    kind="balance",
                    message="current quantity differs from the ledger balance",
                    expected=previous_after,
                    actual=material.current_quantity,
                )
            )
        return found


def _close(a: float, b: float) -> bool:
    return math.isclose(a, b, abs_tol=_TOLERANCE)
