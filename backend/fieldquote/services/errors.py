class QuoteEngineError(Exception):
    """Base class for quote engine errors."""


class UnknownServiceError(QuoteEngineError, KeyError):
    """Raised when a service id has no registered pricing strategy."""

    def __init__(self, service_id: str):
        self.service_id = service_id
        super().__init__(service_id)

    def __str__(self) -> str:
        return f"Unknown service: {self.service_id}"


class ConfigUnavailableError(QuoteEngineError):
    """Raised by a config source when a remote document cannot be fetched or parsed."""


class InvalidOverrideError(QuoteEngineError, ValueError):
    """Raised when an override value is not a number."""

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = value
        super().__init__(f"Override for {field} must be a number, got {value!r}")
