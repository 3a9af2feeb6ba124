import pytest

from application.validators import (
    MSG_ADDRESS_INCOMPLETE,
    MSG_CUSTOMER_INCOMPLETE,
    MSG_INCOMPLETE,
    MSG_INVALID_CEP,
    MSG_INVALID_CPF,
    MSG_INVALID_ITEM,
    MSG_INVALID_PHONE,
    MSG_INVALID_SHIPPING,
    validate_checkout,
)
from domain.common.exceptions import CheckoutValidationException


def _reject(body, **kwargs):
    with pytest.raises(CheckoutValidationException) as exc_info:
        validate_checkout(body, **kwargs)
    return exc_info.value


def test_valid_body_is_sanitized(checkout_body):
    order = validate_checkout(checkout_body)
    assert order.customer.phone == "11987654321"
    assert order.customer.cpf == "12345678909"
    assert order.address.cep == "01310100"
    assert order.tracking_params.utm_source == "instagram"
    assert order.items[0].price == 29.90


def test_document_alias_is_accepted(checkout_body):
    checkout_body["customer"]["document"] = checkout_body["customer"].pop("cpf")
    assert validate_checkout(checkout_body).customer.cpf == "12345678909"


@pytest.mark.parametrize("section", ["customer", "address", "items"])
def test_missing_section(checkout_body, section):
    del checkout_body[section]
    assert _reject(checkout_body).message == MSG_INCOMPLETE


def test_empty_items(checkout_body):
    checkout_body["items"] = []
    assert _reject(checkout_body).message == MSG_INCOMPLETE


@pytest.mark.parametrize("body", [None, [], "checkout"])
def test_body_not_an_object(body):
    assert _reject(body).message == MSG_INCOMPLETE


@pytest.mark.parametrize("field", ["name", "email", "phone", "cpf"])
def test_missing_customer_field(checkout_body, field):
    del checkout_body["customer"][field]
    error = _reject(checkout_body)
    assert error.message == MSG_CUSTOMER_INCOMPLETE
    assert error.details == {"missing": [field]}


@pytest.mark.parametrize("field", ["cep", "street", "number", "neighborhood", "city", "state"])
def test_missing_address_field(checkout_body, field):
    checkout_body["address"][field] = ""
    assert _reject(checkout_body).message == MSG_ADDRESS_INCOMPLETE


def test_customer_checked_before_address(checkout_body):
    del checkout_body["customer"]["email"]
    del checkout_body["address"]["city"]
    assert _reject(checkout_body).message == MSG_CUSTOMER_INCOMPLETE


@pytest.mark.parametrize(
    "section,field,value,message",
    [
        ("customer", "phone", "(11) 9876-543", MSG_INVALID_PHONE),
        ("customer", "cpf", "123.456.789-0", MSG_INVALID_CPF),
        ("customer", "cpf", "123.456.789-091", MSG_INVALID_CPF),
        ("address", "cep", "01310-10", MSG_INVALID_CEP),
    ],
)
def test_sanitized_length_checks(checkout_body, section, field, value, message):
    checkout_body[section][field] = value
    assert _reject(checkout_body).message == message


def test_ten_digit_phone_is_accepted(checkout_body):
    checkout_body["customer"]["phone"] = "(11) 3456-7890"
    assert validate_checkout(checkout_body).customer.phone == "1134567890"


def test_numeric_fields_are_coerced(checkout_body):
    checkout_body["customer"]["cpf"] = 12345678909
    checkout_body["address"]["number"] = 1000
    order = validate_checkout(checkout_body)
    assert order.customer.cpf == "12345678909"
    assert order.address.number == "1000"


@pytest.mark.parametrize("item", [{"price": -1, "quantity": 1}, {"price": 10, "quantity": 0}, {"quantity": 1}])
def test_invalid_item(checkout_body, item):
    checkout_body["items"] = [item]
    assert _reject(checkout_body).message == MSG_INVALID_ITEM


def test_negative_shipping_price(checkout_body):
    checkout_body["shipping"] = {"id": "sedex", "name": "Sedex", "price": -100}
    error = _reject(checkout_body)
    assert error.message == MSG_INVALID_SHIPPING
    assert error.field == "shipping.price"


def test_free_shipping_is_accepted(checkout_body):
    checkout_body["shipping"] = {"id": "retirada", "price": 0}
    assert validate_checkout(checkout_body).shipping_price == 0


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
@pytest.mark.parametrize("section", ["items", "shipping"])
def test_non_finite_price(checkout_body, section, value):
    if section == "items":
        checkout_body["items"][0]["price"] = value
    else:
        checkout_body["shipping"] = {"id": "sedex", "price": value}
    error = _reject(checkout_body)
    assert error.message.startswith("Invalid checkout data")
    assert error.field.endswith("price")


def test_wrong_type_is_reported(checkout_body):
    checkout_body["items"] = "sku-1"
    assert _reject(checkout_body).message.startswith("Invalid checkout data")


def test_query_string_tracking_fallback(checkout_body):
    del checkout_body["trackingParams"]
    order = validate_checkout(checkout_body, fallback_tracking={"utm_source": "google", "gclid": "x"})
    assert order.tracking_params.utm_source == "google"


def test_body_tracking_wins_over_query_string(checkout_body):
    order = validate_checkout(checkout_body, fallback_tracking={"utm_source": "google"})
    assert order.tracking_params.utm_source == "instagram"
