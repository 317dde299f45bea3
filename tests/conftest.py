"""
Pytest configuration and fixtures.

Comgate is replaced by FakeComgate behind httpx.MockTransport so the real
ComgateClient request encoding and response decoding are exercised.
"""
from typing import Optional
from urllib.parse import parse_qsl, urlencode

import httpx
import pytest
import pytest_asyncio

from config import ShopConfig
from gateway.comgate import ComgateClient
from pipeline.checkout import CheckoutOrchestrator
from pipeline.reconciler import NotificationReconciler
from services.notifier import EmailMessage, INotifier, NotifierError
from storage.order_store import InMemoryOrderStore
from tasks.background import BackgroundWorker


class FakeComgate:
    """In-process stand-in for the Comgate create/status endpoints."""

    def __init__(self):
        self.created: list[dict[str, str]] = []
        self.status_calls: list[str] = []
        self.statuses: dict[str, str] = {}
        self.ref_ids: dict[str, str] = {}
        self.create_response: Optional[httpx.Response] = None
        self.status_response: Optional[httpx.Response] = None
        self.fail_transport = False
        self._next_trans = 1

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.fail_transport:
            raise httpx.ConnectError("connection refused", request=request)
        params = dict(parse_qsl(request.content.decode()))
        if request.url.path.endswith("/create"):
            return self._create(params)
        if request.url.path.endswith("/status"):
            return self._status(params)
        return httpx.Response(404, text="<html>not found</html>")

    def _create(self, params: dict[str, str]) -> httpx.Response:
        self.created.append(params)
        if self.create_response is not None:
            return self.create_response
        trans_id = f"T{self._next_trans}"
        self._next_trans += 1
        self.statuses.setdefault(trans_id, "PENDING")
        self.ref_ids[trans_id] = params.get("refId", "")
        body = urlencode({
            "code": "0",
            "message": "OK",
            "transId": trans_id,
            "redirect": f"https://payments.comgate.cz/client/instructions/index?id={trans_id}",
        })
        return httpx.Response(200, text=body)

    def _status(self, params: dict[str, str]) -> httpx.Response:
        trans_id = params.get("transId", "")
        self.status_calls.append(trans_id)
        if self.status_response is not None:
            return self.status_response
        if trans_id not in self.statuses:
            return httpx.Response(200, text=urlencode({"code": "1400", "message": "Payment not found"}))
        return httpx.Response(200, text=urlencode({
            "code": "0",
            "message": "OK",
            "transId": trans_id,
            "refId": self.ref_ids.get(trans_id, ""),
            "status": self.statuses[trans_id],
        }))


class RecordingNotifier(INotifier):
    """Collects messages instead of sending them."""

    def __init__(self, fail_for: Optional[set[str]] = None):
        self.sent: list[EmailMessage] = []
        self.fail_for = fail_for or set()

    async def send(self, message: EmailMessage) -> bool:
        if message.to in self.fail_for:
            raise NotifierError(f"mailbox unavailable: {message.to}")
        self.sent.append(message)
        return True


class SequenceRefIds:
    def __init__(self, *ref_ids: str):
        self._ids = list(ref_ids)

    def __call__(self) -> str:
        return self._ids.pop(0)


def checkout_payload(**overrides) -> dict:
    payload = {
        "fullName": "Jana Nováková",
        "email": "jana@example.cz",
        "phone": "+420777123456",
        "shipping": "cz_pickup",
        "packeta": {"pointId": "12345", "name": "Z-BOX Praha 1", "address": "Národní 1, Praha"},
        "totalCzk": 250,
        "items": [
            {"name": "Náušnice Luna", "variant": "zlatá", "qty": 1, "lineTotalCzk": 250},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def config() -> ShopConfig:
    return ShopConfig(
        comgate_merchant="123456",
        comgate_secret="s3cret",
        comgate_test=True,
        public_base_url="https://shop.example.cz",
        owner_email="owner@elora.example",
        resend_api_key="re_test",
    )


@pytest.fixture
def fake_comgate() -> FakeComgate:
    return FakeComgate()


@pytest_asyncio.fixture
async def gateway(config, fake_comgate):
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake_comgate.handler))
    comgate = ComgateClient.from_config(config, client=client)
    yield comgate
    await client.aclose()


@pytest.fixture
def store() -> InMemoryOrderStore:
    return InMemoryOrderStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def worker() -> BackgroundWorker:
    return BackgroundWorker("test")


@pytest.fixture
def orchestrator(config, gateway, store) -> CheckoutOrchestrator:
    return CheckoutOrchestrator(config, gateway, store, ref_ids=SequenceRefIds("elora-1", "elora-2", "elora-3"))


@pytest.fixture
def reconciler(config, gateway, store, notifier, worker) -> NotificationReconciler:
    return NotificationReconciler(
        store=store,
        gateway=gateway,
        notifier=notifier,
        worker=worker,
        owner_email=config.owner_email,
    )
