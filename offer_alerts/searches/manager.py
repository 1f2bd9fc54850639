"""Saved search manager: validation, alert-state rules, and owner-scoped persistence.

Every operation takes the owner explicitly. Authorization beyond "the row
belongs to this owner" is left to whatever sits in front of the manager.

Usage::

    manager = SavedSearchManager(conn, settings.alerts, OutboxDispatcher(conn))
    search = manager.create("cand-1", "Stages Finance Paris",
                            {"locations": ["Paris"], "contract_types": ["stage"]})
    manager.toggle_alert("cand-1", search.id)
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any, Literal

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from offer_alerts.core.config import AlertDefaults
from offer_alerts.core.db import (
    delete_saved_search,
    get_saved_search,
    insert_saved_search,
    list_saved_searches,
    list_subscriptions,
    touch_last_used,
    transaction,
    update_saved_search,
)
from offer_alerts.core.errors import NotFoundError, ValidationError
from offer_alerts.core.schemas import (
    AlertFrequency,
    AlertTiming,
    JobOffer,
    SavedSearch,
    SearchFilters,
    Weekday,
)
from offer_alerts.searches.dispatcher import AlertDispatcher
from offer_alerts.searches.matcher import match_offers

logger = logging.getLogger(__name__)


class SearchUpdate(BaseModel):
    """Fields an owner may change on an existing search. Unset means unchanged."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    filters: SearchFilters | None = None
    alert_enabled: bool | None = None
    alert_frequency: AlertFrequency | None = None
    preferred_day: Weekday | None = None
    preferred_hour: int | None = Field(default=None, ge=0, le=23)
    biweekly_week: Literal[1, 2] | None = None


def _validation_message(exc: pydantic.ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "value"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def _new_id() -> str:
    return uuid.uuid4().hex


class SavedSearchManager:
    """Creates, updates, toggles, deletes, lists and executes saved searches."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        alerts: AlertDefaults,
        dispatcher: AlertDispatcher,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._conn = conn
        self._alerts = alerts
        self._dispatcher = dispatcher
        self._clock = clock
        self._id_factory = id_factory

    # ------------------------------------------------------------------
    # Alert state
    # ------------------------------------------------------------------

    def set_alert_state(
        self,
        search: SavedSearch,
        enabled: bool,
        frequency: AlertFrequency | None = None,
    ) -> SavedSearch:
        """Return a copy of search with a consistent (enabled, frequency) pair.

        Disabled always means frequency 'never'. Enabling without an active
        frequency restores the last active one, or the configured default.
        Nothing is persisted.
        """
        remembered = search.last_active_frequency
        if search.alert_frequency != AlertFrequency.NEVER:
            remembered = search.alert_frequency
        if frequency is not None and frequency != AlertFrequency.NEVER:
            remembered = frequency

        if enabled:
            active = remembered or self._alerts.default_frequency
            return search.model_copy(update={
                "alert_enabled": True,
                "alert_frequency": active,
                "last_active_frequency": active,
            })
        return search.model_copy(update={
            "alert_enabled": False,
            "alert_frequency": AlertFrequency.NEVER,
            "last_active_frequency": remembered,
        })

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create(
        self,
        owner_id: str,
        name: str,
        filters: SearchFilters | dict[str, Any] | None = None,
        alert_enabled: bool | None = None,
        alert_frequency: AlertFrequency | str | None = None,
        timing: AlertTiming | dict[str, Any] | None = None,
    ) -> SavedSearch:
        """Validate, normalize and persist a new saved search.

        When alert_enabled is omitted it follows alert_frequency: 'never'
        creates the search with alerts off, anything else (or nothing) on.
        Does not schedule anything: the external dispatcher reads the row.
        """
        self._require_owner(owner_id)
        now = self._clock()
        try:
            parsed_filters = self._parse_filters(filters)
            parsed_timing = self._parse_timing(timing)
            frequency = AlertFrequency(alert_frequency) if alert_frequency is not None else None
            draft = SavedSearch(
                id=self._id_factory(),
                owner_id=owner_id,
                name=name,
                filters=parsed_filters,
                alert_enabled=False,
                alert_frequency=AlertFrequency.NEVER,
                preferred_day=parsed_timing.preferred_day,
                preferred_hour=parsed_timing.preferred_hour,
                biweekly_week=parsed_timing.biweekly_week,
                created_at=now,
                updated_at=now,
            )
        except ValidationError:
            raise
        except pydantic.ValidationError as e:
            raise ValidationError(_validation_message(e)) from e
        except ValueError as e:
            raise ValidationError(str(e)) from e

        if alert_enabled is None:
            alert_enabled = frequency != AlertFrequency.NEVER
        search = self.set_alert_state(draft, alert_enabled, frequency)
        insert_saved_search(self._conn, search)
        logger.info(
            "Created saved search '%s' (%s) for '%s', alerts %s",
            search.name, search.id, owner_id, search.alert_frequency.value,
        )
        return search

    def update(self, owner_id: str, search_id: str, /, **changes: Any) -> SavedSearch:
        """Apply a partial update, re-applying the alert-state rule after the merge."""
        try:
            patch = SearchUpdate.model_validate(changes)
        except pydantic.ValidationError as e:
            raise ValidationError(_validation_message(e)) from e
        if patch.filters is not None:
            self._check_location_cap(patch.filters)

        current = self.get(owner_id, search_id)
        fields = {
            k: v for k, v in patch.model_dump(exclude_unset=True).items()
            if v is not None and k not in ("alert_enabled", "alert_frequency")
        }
        data = current.model_dump()
        data.update(fields)
        data["updated_at"] = self._clock()
        try:
            merged = SavedSearch.model_validate(data)
        except pydantic.ValidationError as e:
            raise ValidationError(_validation_message(e)) from e

        if patch.alert_enabled is not None:
            merged = self.set_alert_state(merged, patch.alert_enabled, patch.alert_frequency)
        elif patch.alert_frequency is not None:
            enabled = patch.alert_frequency != AlertFrequency.NEVER
            merged = self.set_alert_state(merged, enabled, patch.alert_frequency)

        self._save(merged)
        logger.info("Updated saved search '%s' for '%s'", search_id, owner_id)
        return merged

    def toggle_alert(self, owner_id: str, search_id: str) -> SavedSearch:
        """Flip alerts on or off for one search."""
        current = self.get(owner_id, search_id)
        toggled = self.set_alert_state(current, not current.alert_enabled)
        toggled = toggled.model_copy(update={"updated_at": self._clock()})
        self._save(toggled)
        logger.info(
            "Alerts for saved search '%s' now %s",
            search_id, toggled.alert_frequency.value,
        )
        return toggled

    def delete(self, owner_id: str, search_id: str) -> None:
        """Remove a search and tell the dispatcher to stop alerting on it."""
        current = self.get(owner_id, search_id)
        self._delete_and_cancel(current)
        logger.info("Deleted saved search '%s' for '%s'", search_id, owner_id)

    def delete_all(self, owner_id: str) -> int:
        """Remove every search of an owner (account deletion). Returns the count."""
        self._require_owner(owner_id)
        searches = list_saved_searches(self._conn, owner_id)
        for search in searches:
            self._delete_and_cancel(search)
        logger.info("Deleted %d saved searches for '%s'", len(searches), owner_id)
        return len(searches)

    def get(self, owner_id: str, search_id: str) -> SavedSearch:
        search = get_saved_search(self._conn, search_id, owner_id)
        if search is None:
            raise NotFoundError(search_id, owner_id)
        return search

    def list(self, owner_id: str) -> list[SavedSearch]:
        """All searches of owner_id, newest first."""
        self._require_owner(owner_id)
        return list_saved_searches(self._conn, owner_id)

    def execute(
        self,
        owner_id: str,
        search_id: str,
        offers: Iterable[JobOffer],
    ) -> list[JobOffer]:
        """Run a saved search against an offer list and stamp last_used_at."""
        search = self.get(owner_id, search_id)
        matched = match_offers(search.filters, list(offers))
        if not touch_last_used(self._conn, search_id, owner_id, self._clock()):
            raise NotFoundError(search_id, owner_id)
        logger.info("Saved search '%s' matched %d offers", search_id, len(matched))
        return matched

    def subscriptions(self, frequency: AlertFrequency | str) -> list[SavedSearch]:
        """Searches the dispatcher should evaluate on a run of the given cadence."""
        try:
            cadence = AlertFrequency(frequency)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        if cadence == AlertFrequency.NEVER:
            msg = "'never' is not a delivery cadence"
            raise ValidationError(msg)
        return list_subscriptions(self._conn, cadence)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _save(self, search: SavedSearch) -> None:
        if not update_saved_search(self._conn, search):
            raise NotFoundError(search.id, search.owner_id)

    def _delete_and_cancel(self, search: SavedSearch) -> None:
        # The row removal only commits together with the cancellation signal.
        with transaction(self._conn):
            if not delete_saved_search(self._conn, search.id, search.owner_id, commit=False):
                raise NotFoundError(search.id, search.owner_id)
            self._dispatcher.cancel(search)

    def _parse_filters(self, filters: SearchFilters | dict[str, Any] | None) -> SearchFilters:
        if filters is None:
            parsed = SearchFilters()
        elif isinstance(filters, SearchFilters):
            parsed = filters
        else:
            parsed = SearchFilters.model_validate(filters)
        self._check_location_cap(parsed)
        return parsed

    def _parse_timing(self, timing: AlertTiming | dict[str, Any] | None) -> AlertTiming:
        if timing is None:
            return self._alerts.timing()
        if isinstance(timing, AlertTiming):
            return timing
        defaults = self._alerts.timing().model_dump()
        defaults.update(timing)
        return AlertTiming.model_validate(defaults)

    def _check_location_cap(self, filters: SearchFilters) -> None:
        if len(filters.locations) > self._alerts.max_locations:
            msg = (
                f"at most {self._alerts.max_locations} locations allowed, "
                f"got {len(filters.locations)}"
            )
            raise ValidationError(msg)

    @staticmethod
    def _require_owner(owner_id: str) -> None:
        if not owner_id or not owner_id.strip():
            msg = "owner_id must not be empty"
            raise ValidationError(msg)
