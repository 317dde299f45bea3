from decimal import Decimal

import pytest

from schemas.checkout import CheckoutRequest, CheckoutValidationError, NotificationPayload, ShippingMethod

from conftest import checkout_payload


HOME_ADDRESS = {"street": "Dlouhá 5", "city": "Brno", "zip": "60200", "country": "CZ"}


def rejection(payload) -> str:
    with pytest.raises(CheckoutValidationError) as exc:
        CheckoutRequest.from_payload(payload)
    return exc.value.message


def test_pickup_request_is_normalized() -> None:
    request = CheckoutRequest.from_payload(checkout_payload())
    assert request.shipping is ShippingMethod.CZ_PICKUP
    assert request.pickup_point.point_id == "12345"
    assert request.address is None
    assert request.total_czk == Decimal(250)
    assert request.customer.phone == "+420777123456"
    assert request.items[0].variant == "zlatá"


def test_home_request_is_normalized() -> None:
    request = CheckoutRequest.from_payload(
        checkout_payload(shipping="sk_home", packeta=None, address=HOME_ADDRESS)
    )
    assert request.shipping.delivery == "DELIVERY"
    assert request.pickup_point is None
    assert request.address.city == "Brno"


@pytest.mark.parametrize("overrides, message", [
    ({"fullName": ""}, "fullName required"),
    ({"email": "  "}, "email required"),
    ({"shipping": None}, "shipping required"),
    ({"shipping": "drone"}, "shipping must be one of"),
    ({"packeta": {"name": "no id"}}, "packeta.pointId required"),
    ({"shipping": "cz_home"}, "address required"),
    ({"shipping": "cz_home", "address": {**HOME_ADDRESS, "zip": ""}}, "address required"),
    ({"totalCzk": None}, "total amount required"),
    ({"totalCzk": "-5"}, "totalCzk must be a positive number"),
    ({"totalCzk": 0}, "totalCzk must be a positive number"),
    ({"totalCzk": "free"}, "totalCzk must be a positive number"),
])
def test_validation_reasons(overrides, message) -> None:
    assert rejection(checkout_payload(**overrides)).startswith(message)


def test_first_failure_wins() -> None:
    payload = checkout_payload(fullName="", email="", shipping="drone", totalCzk=None)
    assert rejection(payload) == "fullName required"


def test_phone_does_not_replace_email() -> None:
    assert rejection(checkout_payload(email=None, phone="+420777000000")) == "email required"


def test_non_dict_payload() -> None:
    assert rejection(["not", "a", "dict"]) == "fullName required"


@pytest.mark.parametrize("field", ["totalCzk", "amountCzk", "amount"])
def test_amount_field_aliases(field) -> None:
    payload = checkout_payload()
    del payload["totalCzk"]
    payload[field] = "199,90"
    assert CheckoutRequest.from_payload(payload).total_czk == Decimal("199.90")


def test_bad_line_items_are_dropped_not_fatal() -> None:
    request = CheckoutRequest.from_payload(checkout_payload(items=[
        {"name": "Prsten", "qty": 2, "lineTotalCzk": 200},
        {"name": "", "qty": 1, "lineTotalCzk": 10},
        {"name": "Řetízek", "qty": 0, "lineTotalCzk": 10},
        {"name": "Náramek", "qty": 1, "lineTotalCzk": -1},
        "garbage",
    ]))
    assert [item.name for item in request.items] == ["Prsten"]
    assert CheckoutRequest.from_payload(checkout_payload(items="nope")).items == []


def test_notification_payload_fields() -> None:
    payload = NotificationPayload.from_payload({"refId": "elora-1", "transId": "T1", "status": "PAID"})
    assert (payload.ref_id, payload.trans_id, payload.claimed_status) == ("elora-1", "T1", "PAID")
    assert NotificationPayload.from_payload({"transactionId": "T2"}).trans_id == "T2"
    empty = NotificationPayload.from_payload("junk")
    assert empty.ref_id is None and empty.trans_id is None
