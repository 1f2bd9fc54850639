"""Error taxonomy for saved search operations."""


class SavedSearchError(Exception):
    """Base class for every error raised by the saved search layer."""


class ValidationError(SavedSearchError, ValueError):
    """Input rejected before any persistence attempt (blank name, bad enum...)."""


class NotFoundError(SavedSearchError, LookupError):
    """The id does not exist or is not owned by the caller."""

    def __init__(self, search_id: str, owner_id: str) -> None:
        super().__init__(f"Saved search '{search_id}' not found for owner '{owner_id}'")
        self.search_id = search_id
        self.owner_id = owner_id


class PersistenceError(SavedSearchError):
    """Opaque storage failure. The original error is chained as __cause__."""
