"""
Checkout Orchestrator
=====================
Storefront checkout -> Comgate prepare-only payment -> unpaid order.

Flow:
1. Server credentials present?            (MissingConfigurationError -> 500)
2. Payload normalized and validated        (CheckoutValidationError -> 400)
3. Price in haléře, fresh refId, Comgate /create
4. Gateway refused?                        (GatewayRejectedError -> 502)
5. Unpaid Order stored + transId indexed, redirect and return URLs handed back
"""

import threading
import time
from typing import Any, Callable, Optional
from urllib.parse import quote

import structlog
from pydantic import BaseModel

from config import ShopConfig
from gateway.comgate import ComgateClient, GatewayResult
from gateway.money import to_minor_units
from schemas.checkout import CheckoutRequest, CheckoutValidationError
from schemas.order import Order
from storage.order_store import IOrderStore


GATEWAY_HINT = (
    "Check allowed IP in Comgate portal (Povolené IP adresy) "
    "+ correct merchant/secret + test mode."
)


# =============================================================================
# ERRORS
# =============================================================================

class CheckoutError(Exception):
    pass


class MissingConfigurationError(CheckoutError):
    pass


class GatewayRejectedError(CheckoutError):
    """Comgate refused to prepare the payment; carries the raw diagnostics."""

    def __init__(self, result: GatewayResult):
        super().__init__(result.message or "Comgate create payment failed")
        self.result = result

    def to_response(self) -> dict[str, Any]:
        return {
            "message": "Comgate create payment failed",
            "comgate": self.result.data,
            "raw": self.result.raw,
            "httpStatus": self.result.http_status,
            "error": self.result.error,
            "hint": GATEWAY_HINT,
        }


# =============================================================================
# REF IDS
# =============================================================================

class RefIdFactory:
    """
    "<prefix>-<epoch ms>", strictly increasing within the process.
    Best-effort unique, not a security token.
    """

    def __init__(self, prefix: str = "elora", clock: Callable[[], float] = time.time):
        self.prefix = prefix
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            stamp = max(int(self._clock() * 1000), self._last + 1)
            self._last = stamp
        return f"{self.prefix}-{stamp}"


# =============================================================================
# RESULT
# =============================================================================

class ReturnUrls(BaseModel):
    paid: str
    cancelled: str
    pending: str


class CheckoutResult(BaseModel):
    order: Order
    redirect_url: str
    return_urls: ReturnUrls
    request: CheckoutRequest

    def to_response(self) -> dict[str, Any]:
        body = {
            "refId": self.order.ref_id,
            "transactionId": self.order.transaction_id,
            "redirectUrl": self.redirect_url,
            "shipping": self.order.shipping.value,
            "totalCzk": float(self.order.total_czk),
            "priceHalers": self.order.price_halers,
            "items": [item.as_payload() for item in self.order.items],
            "returnUrls": self.return_urls.model_dump(),
        }
        body.update(self.request.fulfillment_payload())
        return body


# =============================================================================
# ORCHESTRATOR
# =============================================================================

class CheckoutOrchestrator:

    def __init__(
        self,
        config: ShopConfig,
        gateway: ComgateClient,
        store: IOrderStore,
        ref_ids: Optional[Callable[[], str]] = None,
    ):
        self.config = config
        self.gateway = gateway
        self.store = store
        self.ref_ids = ref_ids or RefIdFactory(config.ref_prefix)
        self._logger = structlog.get_logger().bind(component="checkout")

    def return_urls(self, ref_id: str) -> ReturnUrls:
        base = self.config.public_base_url.rstrip("/")
        query = f"?refId={quote(ref_id, safe='')}"
        return ReturnUrls(
            paid=f"{base}{self.config.return_path_paid}{query}",
            cancelled=f"{base}{self.config.return_path_cancelled}{query}",
            pending=f"{base}{self.config.return_path_pending}{query}",
        )

    async def init_checkout(self, payload: Any) -> CheckoutResult:
        if not self.config.has_gateway_credentials:
            self._logger.error("checkout_misconfigured", missing="COMGATE_MERCHANT/COMGATE_SECRET")
            raise MissingConfigurationError("Set COMGATE_MERCHANT and COMGATE_SECRET in .env")

        try:
            request = CheckoutRequest.from_payload(payload)
        except CheckoutValidationError as e:
            self._logger.info("checkout_rejected", reason=str(e))
            raise

        price = to_minor_units(request.total_czk)
        if price <= 0:
            raise CheckoutValidationError("totalCzk must be a positive number")
        ref_id = self.ref_ids()
        log = self._logger.bind(ref_id=ref_id)
        log.info("checkout_initiated",
                 shipping=request.shipping.value,
                 price=price,
                 items=len(request.items))

        result = await self.gateway.create_payment(
            price=price,
            curr=self.config.currency,
            label=self.config.payment_label,
            ref_id=ref_id,
            method=self.config.payment_method,
            email=request.customer.email,
            phone=request.customer.phone,
            full_name=request.customer.full_name,
            delivery=request.shipping.delivery,
            category=self.config.payment_category,
            lang=self.config.payment_lang,
            country=self.config.payment_country,
        )
        if not result.ok:
            log.error("checkout_gateway_failed",
                      http_status=result.http_status,
                      code=result.code,
                      message=result.message)
            raise GatewayRejectedError(result)

        order = await self.store.insert(
            Order.from_checkout(request, ref_id, result.trans_id, price)
        )
        log.info("checkout_created", trans_id=order.transaction_id)

        return CheckoutResult(
            order=order,
            redirect_url=result.redirect_url,
            return_urls=self.return_urls(ref_id),
            request=request,
        )
