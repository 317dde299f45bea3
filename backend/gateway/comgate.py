"""
Comgate Payment Gateway Client
==============================
Thin async wrapper around two Comgate endpoints:
- POST /create  (prepare-only payment, returns transId + redirect)
- POST /status  (authoritative payment status for a transId)

Comgate answers with urlencoded text (code=0&message=OK&transId=...), and
with HTML or a redirect when something is badly wrong (IP not allowed,
wrong merchant). Bodies that are not key-value data are returned raw.

Nothing in this module raises on network or protocol problems; every call
returns a GatewayResult the caller can inspect.
"""

from typing import Optional
from urllib.parse import parse_qsl

import httpx
import structlog
from pydantic import BaseModel, Field, computed_field

from config import ShopConfig


PAID_STATUSES = frozenset({"PAID", "AUTHORIZED"})


def is_paid_status(status: Optional[str]) -> bool:
    return bool(status) and status.strip().upper() in PAID_STATUSES


def looks_like_key_value(text: str) -> bool:
    body = text.strip()
    return bool(body) and not body.startswith("<") and "=" in body


def parse_key_value(text: str) -> dict[str, str]:
    return dict(parse_qsl(text.strip(), keep_blank_values=True))


class GatewayResult(BaseModel):
    """Outcome of one Comgate call"""
    ok: bool
    http_status: Optional[int] = None
    data: Optional[dict[str, str]] = None
    raw: Optional[str] = None
    error: Optional[str] = None

    @computed_field
    @property
    def code(self) -> Optional[int]:
        if not self.data:
            return None
        try:
            return int(self.data.get("code", ""))
        except ValueError:
            return None

    @property
    def trans_id(self) -> Optional[str]:
        return (self.data or {}).get("transId") or None

    @property
    def ref_id(self) -> Optional[str]:
        return (self.data or {}).get("refId") or None

    @property
    def redirect_url(self) -> Optional[str]:
        return (self.data or {}).get("redirect") or None

    @property
    def status(self) -> Optional[str]:
        value = (self.data or {}).get("status")
        return value.strip().upper() if value else None

    @property
    def message(self) -> Optional[str]:
        return (self.data or {}).get("message") or self.error


class ComgateClient:
    """
    Stateless Comgate client.

    Example:
        client = ComgateClient.from_config(config)
        result = await client.create_payment(price=25000, ref_id="elora-1", ...)
        if result.ok:
            redirect_customer_to(result.redirect_url)
    """

    def __init__(
        self,
        merchant: Optional[str],
        secret: Optional[str],
        test: bool = False,
        base_url: str = "https://payments.comgate.cz/v1.0",
        timeout_seconds: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.merchant = merchant
        self.secret = secret
        self.test = test
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._logger = structlog.get_logger().bind(component="comgate")

    @classmethod
    def from_config(
        cls, config: ShopConfig, client: Optional[httpx.AsyncClient] = None
    ) -> "ComgateClient":
        return cls(
            merchant=config.comgate_merchant,
            secret=config.comgate_secret,
            test=config.comgate_test,
            base_url=config.comgate_base_url,
            timeout_seconds=config.comgate_timeout_seconds,
            client=client,
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    async def create_payment(
        self,
        *,
        price: int,
        curr: str,
        label: str,
        ref_id: str,
        method: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        full_name: Optional[str] = None,
        delivery: Optional[str] = None,
        category: Optional[str] = None,
        lang: Optional[str] = None,
        country: str = "CZ",
    ) -> GatewayResult:
        """Prepare a payment session. Amount is in haléře and must be positive."""
        if price <= 0:
            raise ValueError("price must be a positive number of minor units")

        # prepareOnly makes the secret mandatory; we never finalize here
        params = {
            "merchant": self.merchant or "",
            "prepareOnly": "true",
            "secret": self.secret or "",
            "test": "true" if self.test else "false",
            "country": country,
            "price": str(price),
            "curr": curr,
            "label": label,
            "refId": ref_id,
            "method": method,
        }
        optional = {
            "email": email,
            "phone": phone,
            "fullName": full_name,
            "delivery": delivery,
            "category": category,
            "lang": lang,
        }
        params.update({k: v for k, v in optional.items() if v})

        result = await self._post("create", params)
        if result.ok and not (result.trans_id and result.redirect_url):
            result = result.model_copy(update={
                "ok": False,
                "error": "gateway response is missing transId or redirect",
            })

        log = self._logger.bind(ref_id=ref_id)
        if result.ok:
            log.info("payment_prepared", trans_id=result.trans_id, price=price, test=self.test)
        else:
            log.warning("payment_prepare_failed",
                        http_status=result.http_status,
                        code=result.code,
                        message=result.message)
        return result

    async def get_status(self, trans_id: str) -> GatewayResult:
        """Ask Comgate for the real state of a transaction."""
        params = {
            "merchant": self.merchant or "",
            "transId": trans_id,
            "secret": self.secret or "",
            "test": "true" if self.test else "false",
        }
        result = await self._post("status", params)
        self._logger.info("status_checked",
                          trans_id=trans_id,
                          ok=result.ok,
                          status=result.status,
                          http_status=result.http_status)
        return result

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    async def _post(self, endpoint: str, params: dict[str, str]) -> GatewayResult:
        url = f"{self.base_url}/{endpoint}"
        try:
            response = await self._client.post(
                url,
                data=params,
                headers={"Accept": "application/x-www-form-urlencoded"},
            )
        except httpx.HTTPError as e:
            self._logger.error("gateway_transport_error",
                               endpoint=endpoint,
                               error=str(e),
                               error_type=type(e).__name__)
            return GatewayResult(ok=False, error=f"{type(e).__name__}: {e}")

        text = response.text
        if not looks_like_key_value(text):
            return GatewayResult(
                ok=False,
                http_status=response.status_code,
                raw=text,
                error="gateway response is not key-value data",
            )

        result = GatewayResult(ok=False, http_status=response.status_code, data=parse_key_value(text))
        return result.model_copy(update={"ok": response.is_success and result.code == 0})
