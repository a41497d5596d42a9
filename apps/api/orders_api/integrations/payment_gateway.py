import time
from typing import Protocol

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from orders_api.config import settings
from orders_api.integrations.errors import (
    IntegrationBadGatewayError,
    IntegrationError,
    IntegrationRejectedError,
    IntegrationTimeoutError,
    IntegrationUnavailableError,
)

SERVICE_NAME = "payment_gateway"


class GatewayTransaction(BaseModel):
    """Server-side view of a gateway transaction."""

    model_config = ConfigDict(extra="ignore")

    id: str
    tx_ref: str
    status: str
    amount: float
    payment_type: str | None = None
    app_fee: float | None = None
    currency: str | None = None


class PaymentGatewayProtocol(Protocol):
    def verify_transaction(self, transaction_id: str) -> GatewayTransaction: ...

    def refund(self, transaction_id: str, amount: float) -> None: ...


class FlutterwaveClient:
    """Verify and refund transactions against a Flutterwave-style v3 API.

    Only ``verify_transaction`` is retried: it is a read. Refunds are posted
    exactly once so a timeout can never issue two refunds.
    """

    def __init__(
        self,
        base_url: str,
        secret_key: str,
        timeout_s: float,
        max_retries: int,
        backoff_s: float,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.secret_key = secret_key
        self.timeout_s = timeout_s
        self.max_retries = max_retries
        self.backoff_s = backoff_s

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.status_code >= 500:
            raise IntegrationUnavailableError(
                SERVICE_NAME, "Payment gateway returned 5xx", response.status_code
            )
        if response.status_code >= 400:
            raise IntegrationRejectedError(
                SERVICE_NAME,
                f"Payment gateway returned {response.status_code}",
                response.status_code,
            )

    def _ensure_configured(self) -> None:
        if not self.base_url or not self.secret_key:
            raise IntegrationUnavailableError(SERVICE_NAME, "Payment gateway is not configured")

    def verify_transaction(self, transaction_id: str) -> GatewayTransaction:
        self._ensure_configured()

        attempts = self.max_retries + 1
        for attempt in range(attempts):
            try:
                with httpx.Client(timeout=self.timeout_s) as client:
                    response = client.get(
                        f"{self.base_url}/transactions/{transaction_id}/verify",
                        headers=self._headers(),
                    )
                self._raise_for_status(response)

                try:
                    body = response.json()
                except ValueError as err:
                    raise IntegrationBadGatewayError(
                        SERVICE_NAME, "Payment gateway returned a non-JSON body"
                    ) from err
                data = body.get("data") if isinstance(body, dict) else None
                if not isinstance(data, dict):
                    raise IntegrationBadGatewayError(
                        SERVICE_NAME, "Payment gateway returned malformed payload"
                    )
                try:
                    return GatewayTransaction.model_validate(
                        {
                            **data,
                            "id": str(data.get("id", "")),
                            "tx_ref": str(data.get("tx_ref", "")),
                        }
                    )
                except ValidationError as err:
                    raise IntegrationBadGatewayError(
                        SERVICE_NAME, "Payment gateway returned malformed transaction"
                    ) from err
            except httpx.TimeoutException:
                integration_error: IntegrationError = IntegrationTimeoutError(SERVICE_NAME)
            except httpx.TransportError as err:
                integration_error = IntegrationUnavailableError(SERVICE_NAME, str(err))
            except IntegrationUnavailableError as err:
                integration_error = err

            if attempt >= self.max_retries:
                raise integration_error

            time.sleep(self.backoff_s * (2**attempt))

        raise IntegrationUnavailableError(SERVICE_NAME, "Payment gateway retries exhausted")

    def refund(self, transaction_id: str, amount: float) -> None:
        self._ensure_configured()

        try:
            with httpx.Client(timeout=self.timeout_s) as client:
                response = client.post(
                    f"{self.base_url}/transactions/{transaction_id}/refund",
                    json={"amount": amount},
                    headers=self._headers(),
                )
        except httpx.TimeoutException as err:
            raise IntegrationTimeoutError(SERVICE_NAME) from err
        except httpx.TransportError as err:
            raise IntegrationUnavailableError(SERVICE_NAME, str(err)) from err

        self._raise_for_status(response)


def get_payment_gateway() -> PaymentGatewayProtocol:
    return FlutterwaveClient(
        base_url=settings.payment_gateway_base_url,
        secret_key=settings.payment_gateway_secret_key,
        timeout_s=settings.payment_gateway_timeout_s,
        max_retries=settings.payment_gateway_max_retries,
        backoff_s=settings.payment_gateway_backoff_s,
    )
