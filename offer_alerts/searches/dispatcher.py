"""Seam towards the external alert dispatcher.

The dispatcher that evaluates searches and sends alerts runs elsewhere. This
side only tells it when a search is gone.
"""

import logging
import sqlite3
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime

from offer_alerts.core.db import insert_alert_cancellation
from offer_alerts.core.schemas import SavedSearch

logger = logging.getLogger(__name__)


class AlertDispatcher(ABC):
    """Receives alert lifecycle signals from the saved search manager."""

    @abstractmethod
    def cancel(self, search: SavedSearch) -> None:
        """Signal that no further alert must be produced for this search."""


class OutboxDispatcher(AlertDispatcher):
    """Writes cancellations to the alert_cancellations table for the dispatcher to poll."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._conn = conn
        self._clock = clock

    def cancel(self, search: SavedSearch) -> None:
        insert_alert_cancellation(self._conn, search.id, search.owner_id, self._clock())
        logger.debug("Queued alert cancellation for search '%s'", search.id)
