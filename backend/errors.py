"""Exceptions raised by the telemetry store and aggregation layer."""


class TelemetryError(Exception):
    """Base class for service errors."""


class InvalidSample(TelemetryError):
    """A write was missing its entity id or latency."""


class NoData(TelemetryError):
    """Statistics were requested over an empty sample set."""


class StoreUnavailable(TelemetryError):
    """The backing store failed or did not answer in time."""


class UnknownEntity(TelemetryError):
    """The requested entity is not in the catalog."""

    def __init__(self, entity_id: str):
        super().__init__(f"Unknown entity: {entity_id}")
        self.entity_id = entity_id
