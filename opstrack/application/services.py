"""
Factory functions wiring infrastructure to the core.

Clean Architecture: the application layer chooses the store backend and
the built-in data; core services only see the injected interfaces.
"""

from opstrack.application.tracker import OperationsTracker
from opstrack.config import Settings, configure_logging, get_logger, get_settings
from opstrack.core.interfaces import IKeyValueStore
from opstrack.core.services import EntityRepository

logger = get_logger(__name__)


def create_repository(
    store: IKeyValueStore | None = None,
    settings: Settings | None = None,
) -> EntityRepository:
    """
    Build an EntityRepository.

    Args:
        store: Optional store override (defaults to the configured backend)
        settings: Optional settings override

    Returns:
        Repository seeded with the built-in sample data as defaults
    """
    # Lazy import infrastructure to keep the core importable on its own
    from opstrack.infrastructure.storage import build_sample_data, create_store

    settings = settings or get_settings()
    store = store or create_store(settings.storage)
    defaults = build_sample_data().as_collections() if settings.storage.seed_sample_data else {}
    return EntityRepository(
        store,
        defaults=defaults,
        seed_defaults=settings.storage.seed_sample_data,
    )


async def open_tracker(
    store: IKeyValueStore | None = None,
    settings: Settings | None = None,
) -> tuple[OperationsTracker, list[str]]:
    """
    Create and start an OperationsTracker.

    Configures logging first, as the process entry point.

    Returns:
        The ready tracker and its startup warnings
    """
    settings = settings or get_settings()
    configure_logging(settings)
    tracker = OperationsTracker(
        create_repository(store=store, settings=settings),
        ledger_settings=settings.ledger,
    )
    warnings = await tracker.start()
    logger.info(
        "tracker_opened",
        backend=settings.storage.backend if store is None else type(store).__name__,
        warnings=len(warnings),
    )
    return tracker, warnings
