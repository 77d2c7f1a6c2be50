"""
PayPal Payment Provider Implementation.

Talks to PayPal REST v2 (Orders API) with client-credentials auth.

NO DICTIONARIES - All data uses strongly typed models.
"""

import time
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx
from structlog import get_logger

from calculator_api.exceptions import PaymentProviderError
from calculator_api.models.domain import PurchaseMetadata
from calculator_api.observability.metrics import metrics
from calculator_api.observability.tracing import trace_operation
from calculator_api.services.payment_provider import (
    CaptureResult,
    OrderIntent,
    OrderLink,
    OrderResult,
)

logger = get_logger(__name__)


class PayPalProvider:
    """
    PayPal payment provider implementation.

    Implements the PaymentProvider protocol for PayPal checkout orders.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        api_base: str = "https://api-m.paypal.com",
        timeout: float = 15.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize PayPal provider.

        Args:
            client_id: PayPal REST app client ID
            client_secret: PayPal REST app secret
            api_base: PayPal API base URL (live or sandbox)
            timeout: Per-request timeout in seconds
            http_client: Optional pre-configured client (tests)
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def _get_access_token(self) -> str:
        """
        Obtain an OAuth2 access token via client credentials.

        Raises:
            PaymentProviderError: If PayPal rejects the credentials
        """
        start = time.perf_counter()
        try:
            response = await self.http_client.post(
                f"{self.api_base}/v1/oauth2/token",
                auth=(self.client_id, self.client_secret),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                content="grant_type=client_credentials",
            )
            response.raise_for_status()
            access_token = response.json()["access_token"]
        except httpx.HTTPStatusError as exc:
            logger.error(
                "paypal_auth_failed",
                status=exc.response.status_code,
            )
            raise PaymentProviderError(
                f"PayPal authentication failed: {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, ValueError, KeyError) as exc:
            logger.error("paypal_auth_error", error=str(exc), error_type=type(exc).__name__)
            raise PaymentProviderError(f"PayPal authentication failed: {exc}") from exc
        finally:
            metrics.record_paypal_call("oauth2_token", time.perf_counter() - start)

        if not isinstance(access_token, str) or not access_token:
            raise PaymentProviderError("PayPal returned an empty access token")
        return access_token

    async def _post_json(
        self, path: str, operation: str, payload: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        access_token = await self._get_access_token()

        start = time.perf_counter()
        try:
            response = await self.http_client.post(
                f"{self.api_base}{path}",
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {access_token}",
                },
                json=payload,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "paypal_request_failed",
                operation=operation,
                status=exc.response.status_code,
                text=exc.response.text[:500],
            )
            raise PaymentProviderError(
                f"PayPal {operation} failed: {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(
                "paypal_request_error",
                operation=operation,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise PaymentProviderError(f"PayPal {operation} failed: {exc}") from exc
        finally:
            metrics.record_paypal_call(operation, time.perf_counter() - start)

        if not isinstance(data, dict):
            raise PaymentProviderError(f"PayPal {operation} returned unexpected payload")
        return data

    async def create_order(self, intent: OrderIntent) -> OrderResult:
        """
        Create a PayPal checkout order with intent CAPTURE.

        Args:
            intent: Order details for one tier

        Returns:
            Order result with PayPal order ID and approval links

        Raises:
            PaymentProviderError: If PayPal API call fails
        """
        logger.info(
            "creating_paypal_order",
            user_id=intent.metadata.user_id,
            tier=intent.metadata.tier,
            price=str(intent.price),
        )

        payload = {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "amount": {
                        "currency_code": intent.currency,
                        "value": f"{intent.price:.2f}",
                    },
                    "description": intent.description,
                    "custom_id": intent.metadata.to_custom_id(),
                }
            ],
        }

        with trace_operation("paypal_create_order", tier=intent.metadata.tier):
            data = await self._post_json("/v2/checkout/orders", "create_order", payload)

        try:
            order = OrderResult(
                order_id=str(data["id"]),
                status=str(data["status"]),
                links=tuple(
                    OrderLink(
                        href=str(link["href"]),
                        rel=str(link["rel"]),
                        method=link.get("method"),
                    )
                    for link in data.get("links", [])
                ),
            )
        except (KeyError, TypeError, AttributeError) as exc:
            raise PaymentProviderError(f"Malformed PayPal order response: {exc}") from exc

        logger.info("paypal_order_created", order_id=order.order_id, status=order.status)
        return order

    async def capture_order(self, order_id: str) -> CaptureResult:
        """
        Capture an approved PayPal order.

        The returned result carries the status as reported by PayPal; callers
        decide what to do with anything other than COMPLETED.

        Raises:
            PaymentProviderError: If the call fails or the response is malformed
        """
        logger.info("capturing_paypal_order", order_id=order_id)

        with trace_operation("paypal_capture_order", order_id=order_id) as span:
            data = await self._post_json(f"/v2/checkout/orders/{order_id}/capture", "capture_order")
            result = self._parse_capture(order_id, data)
            span.set_attribute("paypal.status", result.status)

        logger.info(
            "paypal_order_captured",
            order_id=order_id,
            capture_id=result.capture_id,
            status=result.status,
        )
        return result

    @staticmethod
    def _parse_capture(order_id: str, data: dict[str, Any]) -> CaptureResult:
        """Extract status, custom_id and amount from a capture response."""
        status = str(data.get("status", ""))
        try:
            capture = data["purchase_units"][0]["payments"]["captures"][0]
            metadata = PurchaseMetadata.from_custom_id(capture["custom_id"])
            amount_data = capture.get("amount") or {}
            raw_value = amount_data.get("value")
            amount = Decimal(str(raw_value)) if raw_value is not None else None
        except (KeyError, IndexError, TypeError, ValueError, InvalidOperation) as exc:
            logger.error("paypal_capture_malformed", order_id=order_id, status=status)
            raise PaymentProviderError(f"Malformed PayPal capture response: {exc}") from exc

        return CaptureResult(
            order_id=str(data.get("id", order_id)),
            capture_id=str(capture.get("id") or data.get("id", order_id)),
            status=status,
            metadata=metadata,
            amount=amount,
            currency=amount_data.get("currency_code"),
        )

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
