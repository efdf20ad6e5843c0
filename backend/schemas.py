from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

FAILED_LATENCY = -1


class Status(str, Enum):
    SUCCESS = "success"
    MEDIUM = "medium"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Outcome:
    """Result of one probe: a latency in milliseconds, or a failure."""
    latency_ms: Optional[int] = None

    @classmethod
    def ok(cls, latency_ms: int) -> "Outcome":
        return cls(int(latency_ms))

    @classmethod
    def failed(cls) -> "Outcome":
        return cls(None)

    @classmethod
    def from_wire(cls, latency_ms: int) -> "Outcome":
        """Interpret the -1 sentinel used by probes on the wire."""
        if latency_ms == FAILED_LATENCY:
            return cls.failed()
        return cls.ok(latency_ms)

    @property
    def is_failed(self) -> bool:
        return self.latency_ms is None

    def as_sentinel(self) -> int:
        return FAILED_LATENCY if self.latency_ms is None else self.latency_ms


class CamelModel(BaseModel):
    """Base for wire schemas: snake_case in Python, camelCase in JSON."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Sample(CamelModel):
    """Schema for a single stored latency observation."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    entity_id: str
    timestamp: int
    latency_ms: int
    status: Status

    @property
    def outcome(self) -> Outcome:
        return Outcome.from_wire(self.latency_ms)


class DataPoint(CamelModel):
    timestamp: int
    latency_ms: int
    status: Status


class StatSummary(CamelModel):
    min: int
    max: int
    avg: int


class ExtendedStats(CamelModel):
    min: int
    max: int
    avg: float
    median: int
    p25: int
    p75: int
    p95: int
    std_dev: float
    variance: float
    count: int


class GroupSummary(CamelModel):
    key: str
    min: int
    max: int
    avg: int
    count: int


class DistributionBucket(CamelModel):
    name: str
    label: str
    count: int


class HistoricalResponse(CamelModel):
    """Schema for the historical range response."""
    entity_id: str
    data: List[DataPoint]
    stats: StatSummary
    granularity: Optional[str] = None
    synthetic: bool = False


class IngestRequest(CamelModel):
    """Schema for a single-sample write.

    Fields are optional here so that missing values surface as a 400 from the
    ingestion gateway rather than a framework validation error.
    """
    entity_id: Optional[str] = None
    latency_ms: Optional[int] = None
    latency: Optional[int] = None
    timestamp: Optional[int] = None

    def resolved_latency(self) -> Optional[int]:
        return self.latency_ms if self.latency_ms is not None else self.latency


class IngestAck(CamelModel):
    success: bool = True
    entity_id: str
    timestamp: int
    status: Status
    pruned: int = 0


class LatencyReading(CamelModel):
    """One live measurement (real probe or mock) for one entity."""
    entity_id: str
    latency_ms: int
    timestamp: int
    status: Status

    @property
    def outcome(self) -> Outcome:
        return Outcome.from_wire(self.latency_ms)


class RankedEntity(CamelModel):
    entity_id: str
    name: str
    provider: str
    latency_ms: int


class AnalyticsResponse(CamelModel):
    overall: ExtendedStats
    distribution: List[DistributionBucket]
    by_provider: List[GroupSummary]
    by_region: List[GroupSummary]
    fastest: List[RankedEntity]
    status_counts: Dict[str, int]
