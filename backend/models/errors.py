"""Domain exceptions."""


class QRateError(Exception):
    """Base class for errors raised by the QRate core."""


class StateDeserializationError(QRateError):
    """Persisted DJ state could not be decoded."""


class EventNotFoundError(QRateError):
    """No event is registered under the requested id."""

    def __init__(self, event_id: str) -> None:
        super().__init__(f"Event not found: {event_id}")
        self.event_id = event_id
