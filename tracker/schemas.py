# tracker/schemas.py
from typing import List, Optional, Any, Dict, Iterable, Literal
from pydantic import BaseModel, Field, ConfigDict

from tracker import monitoring

Priority = Literal["High", "Medium", "Normal", "Low"]
PRIORITIES: List[str] = ["High", "Medium", "Normal", "Low"]

# Option lists offered by the dashboard forms; stored data may carry others
STATUSES: List[str] = ["Not Started", "In Progress", "Not Doing", "Waiting Feedback", "Done"]
TIERS: List[str] = ["Tier 1", "Tier 2", "Tier 3", "Tier 4"]
REQUEST_TYPES: List[str] = ["Not Poll", "Poll"]


class RequestItem(BaseModel):
    """One character art request, serialized with the camelCase keys the dashboard uses."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    patreon_name: str = Field("", alias="patreonName")
    tier: str = ""
    character_name: str = Field("", alias="characterName")
    origin: str = ""
    request_type: str = Field("", alias="requestType")
    status: str = ""
    priority: Priority = "Normal"
    date_requested: str = Field("", alias="dateRequested")
    date_started: Optional[str] = Field(None, alias="dateStarted")
    date_completed: Optional[str] = Field(None, alias="dateCompleted")
    revision_count: int = Field(0, alias="revisionCount", ge=0)
    notes: str = ""
    details: str = ""
    # derived; recomputed on every normalization
    days_since_request: Optional[int] = Field(None, alias="daysSinceRequest")

    def to_wire(self, include_derived: bool = True) -> Dict[str, Any]:
        exclude = None if include_derived else {"days_since_request"}
        return self.model_dump(by_alias=True, exclude_none=True, exclude=exclude)


class RequestPatch(BaseModel):
    """Partial update; only fields explicitly present in the payload are applied."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    patreon_name: Optional[str] = Field(None, alias="patreonName")
    tier: Optional[str] = None
    character_name: Optional[str] = Field(None, alias="characterName")
    origin: Optional[str] = None
    request_type: Optional[str] = Field(None, alias="requestType")
    status: Optional[str] = None
    priority: Optional[Priority] = None
    date_requested: Optional[str] = Field(None, alias="dateRequested")
    date_started: Optional[str] = Field(None, alias="dateStarted")
    date_completed: Optional[str] = Field(None, alias="dateCompleted")
    revision_count: Optional[int] = Field(None, alias="revisionCount", ge=0)
    notes: Optional[str] = None
    details: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        """Field-name keyed dict of the fields the caller actually sent."""
        return self.model_dump(exclude_unset=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)


class OptionSet:
    """
    An extensible list of suggested values for an open string field.

    Unknown values pass through unchanged (historical rows carry values that
    are no longer offered) unless the set is strict.
    """

    def __init__(self, name: str, options: Iterable[str], strict: bool = False):
        self.name = name
        self.options: List[str] = []
        self.strict = strict
        self.extend(*options)

    def extend(self, *values: str) -> "OptionSet":
        for v in values:
            v = (v or "").strip()
            if v and v not in self.options:
                self.options.append(v)
        return self

    def is_known(self, value: Optional[str]) -> bool:
        return value in self.options

    def coerce(self, value: Any) -> str:
        """Clean a stored value; unknown values always pass through on read."""
        if value is None:
            return ""
        text = str(value).strip()
        if text and not self.is_known(text):
            monitoring.inc_unknown_option(self.name)
            monitoring.logger.debug("Passing through unknown option", extra={"field": self.name, "value": text})
        return text

    def validate(self, value: Any) -> str:
        """Check a value submitted by a client; rejects unknown values only when strict."""
        text = "" if value is None else str(value).strip()
        if self.strict and text and not self.is_known(text):
            raise ValueError(f"{self.name} {text!r} is not one of {self.options}")
        return text


class Vocabulary:
    def __init__(self, tiers: OptionSet, statuses: OptionSet, request_types: OptionSet):
        self.tiers = tiers
        self.statuses = statuses
        self.request_types = request_types

    def validate_fields(self, wire: Dict[str, Any]) -> None:
        """Raise ValueError for client-submitted option values a strict set rejects."""
        for key, option_set in (("tier", self.tiers), ("status", self.statuses), ("requestType", self.request_types)):
            if key in wire:
                option_set.validate(wire[key])

    @classmethod
    def default(cls, strict: bool = False) -> "Vocabulary":
        return cls(
            tiers=OptionSet("tier", TIERS, strict=strict),
            statuses=OptionSet("status", STATUSES, strict=strict),
            request_types=OptionSet("requestType", REQUEST_TYPES, strict=strict),
        )

    @classmethod
    def from_config(cls, config) -> "Vocabulary":
        vocab = cls.default(strict=config.strict_options)
        vocab.tiers.extend(*config.extra_tiers)
        vocab.statuses.extend(*config.extra_statuses)
        vocab.request_types.extend(*config.extra_request_types)
        return vocab
