"""Filter chain that evaluates saved search criteria against offers.

One filter per dimension of SearchFilters. An offer matches when it survives
every filter; a filter built from an empty dimension passes everything.
"""

import logging
from collections.abc import Callable

from offer_alerts.core.schemas import (
    ContractType,
    EducationLevel,
    JobOffer,
    RemotePolicy,
    SearchFilters,
)
from offer_alerts.searches.locations import location_matches

logger = logging.getLogger(__name__)

# A filter is a callable that takes offers and returns a subset.
Filter = Callable[[list[JobOffer]], list[JobOffer]]


class TextQueryFilter:
    """Keep offers whose title, company or description contains the query (case-insensitive)."""

    def __init__(self, query: str | None) -> None:
        self._query = (query or "").strip().lower()

    def __call__(self, offers: list[JobOffer]) -> list[JobOffer]:
        if not self._query:
            return offers
        result = [o for o in offers if self._matches(o)]
        excluded = len(offers) - len(result)
        if excluded:
            logger.debug("TextQueryFilter: removed %d offers", excluded)
        return result

    def _matches(self, offer: JobOffer) -> bool:
        text = f"{offer.title}\n{offer.company}\n{offer.description}".lower()
        return self._query in text


class LocationFilter:
    """Keep offers located in at least one of the given cities, regions or countries."""

    def __init__(self, locations: list[str]) -> None:
        self._locations = [loc for loc in locations if loc.strip()]

    def __call__(self, offers: list[JobOffer]) -> list[JobOffer]:
        if not self._locations:
            return offers
        result = [
            o for o in offers
            if any(location_matches(loc, o.location_city, o.country) for loc in self._locations)
        ]
        excluded = len(offers) - len(result)
        if excluded:
            logger.debug("LocationFilter: removed %d offers", excluded)
        return result


class ContractTypeFilter:
    """Keep offers whose contract type is one of the wanted types."""

    def __init__(self, contract_types: list[ContractType]) -> None:
        self._types = set(contract_types)

    def __call__(self, offers: list[JobOffer]) -> list[JobOffer]:
        if not self._types:
            return offers
        result = [o for o in offers if o.contract_type in self._types]
        excluded = len(offers) - len(result)
        if excluded:
            logger.debug("ContractTypeFilter: removed %d offers", excluded)
        return result


class EducationLevelFilter:
    """Keep offers open to at least one of the wanted education levels."""

    def __init__(self, levels: list[EducationLevel]) -> None:
        self._levels = set(levels)

    def __call__(self, offers: list[JobOffer]) -> list[JobOffer]:
        if not self._levels:
            return offers
        result = [o for o in offers if self._levels.intersection(o.education_levels)]
        excluded = len(offers) - len(result)
        if excluded:
            logger.debug("EducationLevelFilter: removed %d offers", excluded)
        return result


class RemotePolicyFilter:
    """Keep offers with exactly the wanted remote policy."""

    def __init__(self, policy: RemotePolicy | None) -> None:
        self._policy = policy

    def __call__(self, offers: list[JobOffer]) -> list[JobOffer]:
        if self._policy is None:
            return offers
        result = [o for o in offers if o.remote_policy == self._policy]
        excluded = len(offers) - len(result)
        if excluded:
            logger.debug("RemotePolicyFilter: removed %d offers", excluded)
        return result


def build_filters(filters: SearchFilters) -> list[Filter]:
    """Build the filter chain for a saved search's criteria."""
    return [
        ContractTypeFilter(filters.contract_types),
        EducationLevelFilter(filters.education_levels),
        RemotePolicyFilter(filters.remote_policy),
        LocationFilter(filters.locations),
        TextQueryFilter(filters.search),
    ]


def run_filter_chain(offers: list[JobOffer], filters: list[Filter]) -> list[JobOffer]:
    """Apply filters in order, returning the surviving offers."""
    result = offers
    for f in filters:
        result = f(result)
    return result


def match_offers(filters: SearchFilters, offers: list[JobOffer]) -> list[JobOffer]:
    """Return the offers satisfying every non-empty dimension of filters."""
    return run_filter_chain(list(offers), build_filters(filters))
