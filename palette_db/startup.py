"""Process startup: reconnect to the connection that was active last time."""

from __future__ import annotations

import logging

from palette_core.errors import BackendConnectionError, ValidationError
from palette_db.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


async def restore_active_connection(
    registry: ConnectionRegistry, *, timeout: float | None = None
) -> str | None:
    """Reconnect using the persisted store's active record.

    Returns:
        The new connection id, or None when nothing is active or the saved
        configuration no longer validates or connects. In that case the
        caller should ask the operator for a configuration.
    """
    record = registry.store.get_active()
    if record is None:
        logger.info("No active saved connection to restore")
        return None

    try:
        connection_id = await registry.connect_to_backend(
            record.config, record.type, record.name, timeout=timeout
        )
    except ValidationError as exc:
        logger.warning("Saved connection %r no longer validates: %s", record.name, exc)
        return None
    except BackendConnectionError as exc:
        logger.warning(
            "Could not restore saved connection %r (%s): %s",
            record.name,
            exc.kind.value,
            exc,
        )
        return None

    logger.info("Restored saved connection %r as %s", record.name, connection_id)
    return connection_id
