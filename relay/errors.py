"""Error taxonomy shared by the relay pipeline, directory and admin routes."""


class RelayError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(RelayError):
    """A required setting is missing; the process must not start."""


class MalformedEvent(RelayError):
    """Webhook payload does not decode into a single text message."""


class TenantNotFound(RelayError):
    pass


class RoutingKeyConflict(RelayError):
    """Another tenant already owns this routing key."""


class PersistenceError(RelayError):
    pass


class ProviderError(RelayError):
    """Completion call failed or returned nothing usable."""


class DeliveryError(RelayError):
    """Reply could not be handed to the messaging platform."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
