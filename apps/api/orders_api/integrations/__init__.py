from orders_api.integrations.errors import (
    IntegrationBadGatewayError,
    IntegrationError,
    IntegrationRejectedError,
    IntegrationTimeoutError,
    IntegrationUnavailableError,
)

__all__ = [
    "IntegrationError",
    "IntegrationTimeoutError",
    "IntegrationUnavailableError",
    "IntegrationBadGatewayError",
    "IntegrationRejectedError",
]
