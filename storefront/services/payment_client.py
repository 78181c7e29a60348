# storefront/services/payment_client.py
from decimal import Decimal, ROUND_HALF_UP

import requests
from requests import RequestException

from storefront.domain.enums import PaymentMethod, PaymentOutcome
from storefront.domain.errors import PaymentGatewayUnavailable
from storefront.utils.retry import http_retry
from storefront.utils.settings import PAYMENT_CURRENCY, PAYMENT_GATEWAY_URL, PAYMENT_TIMEOUT_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def to_minor_units(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentClient:
    """
    Adapter for the payment gateway.

    Only an explicit ``FAILED`` answer from the gateway counts as a failed
    payment. Timeouts, connection errors and 5xx responses raise
    ``PaymentGatewayUnavailable``: the money may still have moved, so the
    order has to stay PENDING until the gateway says otherwise.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = PAYMENT_TIMEOUT_SECONDS,
        currency: str = PAYMENT_CURRENCY,
        session: requests.Session | None = None,
    ):
        self.base_url = (base_url or PAYMENT_GATEWAY_URL).rstrip("/")
        self.timeout = timeout
        self.currency = currency
        self.session = session or requests.Session()

    def authorize(self, amount_minor_units: int, method: PaymentMethod, order_id: int) -> PaymentOutcome:
        url = f"{self.base_url}/payments"
        payload = {
            "amount": amount_minor_units,
            "currency": self.currency,
            "method": PaymentMethod(method).value,
            "order_id": order_id,
        }
        logger.info(f"PaymentClient POST {url} order={order_id} amount={amount_minor_units}")
        try:
            resp = self._post(url, payload, idempotency_key=f"order-{order_id}")
        except RequestException as e:
            logger.warning(f"Payment gateway unreachable for order {order_id}: {e}")
            raise PaymentGatewayUnavailable() from e
        return self._outcome(resp, order_id)

    def get_status(self, order_id: int) -> PaymentOutcome:
        url = f"{self.base_url}/payments/{order_id}"
        logger.info(f"PaymentClient GET {url}")
        try:
            resp = self._get(url)
        except RequestException as e:
            raise PaymentGatewayUnavailable() from e
        if resp.status_code == 404:
            return PaymentOutcome.UNKNOWN
        return self._outcome(resp, order_id)

    @http_retry()
    def _post(self, url: str, payload: dict, idempotency_key: str) -> requests.Response:
        # the idempotency key makes a retried POST safe on the gateway side
        return self.session.post(
            url,
            json=payload,
            headers={"Idempotency-Key": idempotency_key},
            timeout=self.timeout,
        )

    @http_retry()
    def _get(self, url: str) -> requests.Response:
        return self.session.get(url, timeout=self.timeout)

    def _outcome(self, resp: requests.Response, order_id: int) -> PaymentOutcome:
        if resp.status_code >= 500:
            logger.warning(f"Payment gateway error {resp.status_code} for order {order_id}")
            raise PaymentGatewayUnavailable()
        if resp.status_code == 402:
            return PaymentOutcome.FAILED
        try:
            body = resp.json()
        except ValueError as e:
            raise PaymentGatewayUnavailable() from e
        if not isinstance(body, dict):
            logger.warning(f"Unreadable gateway reply for order {order_id}: {body!r}")
            raise PaymentGatewayUnavailable()
        status = body.get("status")
        try:
            return PaymentOutcome(status)
        except ValueError:
            # anything we cannot read is not a definitive failure
            logger.warning(f"Unexpected gateway status {status!r} for order {order_id}")
            return PaymentOutcome.PENDING
