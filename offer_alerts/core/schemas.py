"""Core data models: saved searches, their filters, and the offers they match."""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AlertFrequency(str, Enum):
    INSTANT = "instant"
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    NEVER = "never"


class Weekday(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


class ContractType(str, Enum):
    STAGE = "stage"
    ALTERNANCE = "alternance"
    CDI = "cdi"
    CDD = "cdd"


class EducationLevel(str, Enum):
    BAC_3 = "bac+3"
    BAC_4 = "bac+4"
    BAC_5 = "bac+5"
    BAC_6 = "bac+6"
    DOCTORAT = "doctorat"


class RemotePolicy(str, Enum):
    ON_SITE = "on_site"
    HYBRID = "hybrid"
    REMOTE = "remote"


def _unique(values: list) -> list:
    seen = set()
    result = []
    for v in values:
        if v not in seen:
            seen.add(v)
            result.append(v)
    return result


class SearchFilters(BaseModel):
    """Offer filter criteria stored with a saved search.

    Empty lists and a missing query mean "no constraint" on that dimension.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    search: str | None = None
    locations: list[str] = Field(default_factory=list)
    contract_types: list[ContractType] = Field(default_factory=list)
    education_levels: list[EducationLevel] = Field(default_factory=list)
    remote_policy: RemotePolicy | None = None

    @field_validator("search", mode="before")
    @classmethod
    def blank_search_is_none(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v

    @field_validator("remote_policy", mode="before")
    @classmethod
    def blank_policy_is_none(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("locations", mode="before")
    @classmethod
    def clean_locations(cls, v: object) -> object:
        if v is None:
            return []
        if not isinstance(v, (list, tuple, set)):
            return v
        result: list[str] = []
        seen: set[str] = set()
        for loc in v:
            if not isinstance(loc, str):
                result.append(loc)  # let pydantic reject it
                continue
            loc = loc.strip()
            if loc and loc.lower() not in seen:
                seen.add(loc.lower())
                result.append(loc)
        return result

    @field_validator("contract_types", "education_levels", mode="before")
    @classmethod
    def drop_blank_members(cls, v: object) -> object:
        if v is None:
            return []
        if not isinstance(v, (list, tuple, set)):
            return v
        return [item for item in v if not (isinstance(item, str) and not item.strip())]

    @field_validator("contract_types", "education_levels")
    @classmethod
    def dedupe(cls, v: list) -> list:
        return _unique(v)

    def is_empty(self) -> bool:
        """True when no dimension constrains the offer list."""
        return not (
            self.search
            or self.locations
            or self.contract_types
            or self.education_levels
            or self.remote_policy
        )


class AlertTiming(BaseModel):
    """When a scheduled alert digest should go out."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    preferred_day: Weekday = Weekday.MONDAY
    preferred_hour: int = Field(default=9, ge=0, le=23)
    biweekly_week: Literal[1, 2] = 1


class SavedSearch(BaseModel):
    """A persisted set of offer filters plus alert preferences, owned by one candidate.

    Frozen: every mutation goes through the manager, which builds a new copy.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    owner_id: str
    name: str
    filters: SearchFilters = Field(default_factory=SearchFilters)
    alert_enabled: bool = True
    alert_frequency: AlertFrequency = AlertFrequency.DAILY
    last_active_frequency: AlertFrequency | None = None
    preferred_day: Weekday = Weekday.MONDAY
    preferred_hour: int = Field(default=9, ge=0, le=23)
    biweekly_week: Literal[1, 2] = 1
    matching_offers_count: int | None = None
    last_used_at: datetime | None = None
    last_notified_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v.strip():
            msg = "name must not be empty"
            raise ValueError(msg)
        return v.strip()

    @property
    def timing(self) -> AlertTiming:
        return AlertTiming(
            preferred_day=self.preferred_day,
            preferred_hour=self.preferred_hour,
            biweekly_week=self.biweekly_week,
        )


class JobOffer(BaseModel):
    """An offer from the catalogue, as seen by the matcher."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    company: str = ""
    description: str = ""
    location_city: str = ""
    country: str = "France"
    contract_type: ContractType | None = None
    education_levels: list[EducationLevel] = Field(default_factory=list)
    remote_policy: RemotePolicy | None = None
