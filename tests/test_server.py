"""
HTTP surface: status code mapping and the unconditional notify acknowledgment.
"""
from urllib.parse import urlencode

import httpx
import pytest
import pytest_asyncio

from api.server import create_app
from config import ShopConfig

from conftest import checkout_payload


@pytest.fixture
def app(config, store, gateway, notifier, worker):
    return create_app(config, store=store, gateway=gateway, notifier=notifier, worker=worker)


@pytest_asyncio.fixture
async def client(app):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.mark.asyncio
async def test_health(client) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert "X-Response-Time-Ms" in response.headers


@pytest.mark.asyncio
async def test_checkout_success(client, store) -> None:
    response = await client.post("/api/checkout/init", json=checkout_payload(totalCzk=250))
    assert response.status_code == 200
    body = response.json()
    assert body["priceHalers"] == 25000
    assert body["transactionId"] == "T1"
    assert set(body["returnUrls"]) == {"paid", "cancelled", "pending"}
    assert (await store.get_by_ref(body["refId"])).paid is False


@pytest.mark.asyncio
async def test_checkout_home_without_address_is_400(client) -> None:
    response = await client.post("/api/checkout/init", json=checkout_payload(shipping="cz_home"))
    assert response.status_code == 400
    assert response.json()["message"].startswith("address required")


@pytest.mark.asyncio
async def test_checkout_accepts_urlencoded_form(client) -> None:
    form = urlencode({
        "fullName": "Petr Svoboda",
        "email": "petr@example.cz",
        "shipping": "sk_pickup",
        "packeta[pointId]": "987",
        "amountCzk": "99.90",
        "items[0][name]": "Prívesok",
        "items[0][qty]": "1",
        "items[0][lineTotalCzk]": "99.90",
    })
    response = await client.post(
        "/api/checkout/init",
        content=form,
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["priceHalers"] == 9990
    assert body["packeta"]["pointId"] == "987"
    assert body["items"][0]["name"] == "Prívesok"


@pytest.mark.asyncio
async def test_checkout_without_credentials_is_500(store, gateway, notifier, worker) -> None:
    app = create_app(ShopConfig(), store=store, gateway=gateway, notifier=notifier, worker=worker)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        response = await ac.post("/api/checkout/init", json=checkout_payload())
    assert response.status_code == 500
    assert "COMGATE_MERCHANT" in response.json()["message"]


@pytest.mark.asyncio
async def test_checkout_gateway_failure_is_502(client, fake_comgate) -> None:
    fake_comgate.create_response = httpx.Response(200, text="<html>Povolené IP adresy</html>")
    response = await client.post("/api/checkout/init", json=checkout_payload())
    assert response.status_code == 502
    body = response.json()
    assert body["message"] == "Comgate create payment failed"
    assert body["comgate"] is None
    assert "Povolené IP adresy" in body["raw"]
    assert body["httpStatus"] == 200


@pytest.mark.asyncio
async def test_notify_acks_and_reconciles_in_background(client, store, worker, notifier, fake_comgate) -> None:
    created = (await client.post("/api/checkout/init", json=checkout_payload())).json()
    fake_comgate.statuses[created["transactionId"]] = "PAID"

    form = urlencode({"refId": created["refId"], "transId": created["transactionId"], "status": "PAID"})
    for _ in range(2):
        response = await client.post(
            "/api/comgate/notify",
            content=form,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        assert response.status_code == 200
        assert response.text == "OK"

    await worker.drain(timeout=5)
    assert (await store.get_by_ref(created["refId"])).paid is True
    assert len(notifier.sent) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("content, content_type", [
    (b"", "application/x-www-form-urlencoded"),
    (b"{not json", "application/json"),
    (b"\xff\xfe", "application/octet-stream"),
    (b'{"transId": "T404"}', "application/json"),
])
async def test_notify_always_200(client, worker, store, content, content_type) -> None:
    response = await client.post("/api/comgate/notify", content=content, headers={"Content-Type": content_type})
    assert response.status_code == 200
    assert response.text == "OK"
    await worker.drain(timeout=5)
    assert await store.count() == 0
