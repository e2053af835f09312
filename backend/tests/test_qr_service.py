"""
QR payload codec tests.

Verifies:
- Encoded labels carry only the product id and resolve to live data
- Legacy label shapes ({id,...} and {name,...}) are still accepted
- Malformed payloads are a ParseFailure, never an exception
"""

import json

import pytest

from cashdesk.errors import ProductNotFound
from cashdesk.services.qr_service import (
    ParseFailure,
    ProductRef,
    decode_payload,
    decode_scan,
    encode_product_ref,
    resolve_product,
)


class TestEncode:

    def test_payload_is_versioned_id_only(self, water):
        payload = json.loads(encode_product_ref(water))
        assert payload == {"v": 1, "id": water.id}

    def test_label_resolves_to_current_price(self, db_session, water):
        label = encode_product_ref(water)
        water.price_cents = 1500
        db_session.commit()

        product = decode_scan(label)
        assert product.id == water.id
        assert product.price_cents == 1500


class TestDecodePayload:

    def test_versioned(self):
        assert decode_payload('{"v":1,"id":7}') == ProductRef(id=7)

    def test_legacy_id_with_extra_fields(self):
        ref = decode_payload('{"id": 3, "name": "Milk 1 L", "price": 32}')
        assert ref == ProductRef(id=3, name="Milk 1 L", legacy=True)

    def test_legacy_name_only(self):
        assert decode_payload('{"name": "Milk 1 L"}') == ProductRef(name="Milk 1 L", legacy=True)

    @pytest.mark.parametrize(
        "text",
        [
            None,
            "",
            "   ",
            "not json",
            "[1, 2]",
            '"just a string"',
            "{}",
            '{"v": 2, "id": 7}',
            '{"v": 1}',
            '{"v": true, "id": 7}',
            '{"id": true}',
            '{"name": "   "}',
        ],
    )
    def test_malformed_is_parse_failure(self, text):
        assert isinstance(decode_payload(text), ParseFailure)


class TestResolve:

    def test_by_id(self, water):
        assert resolve_product(ProductRef(id=water.id)).id == water.id

    def test_digit_string_id(self, water):
        assert resolve_product(ProductRef(id=str(water.id))).id == water.id

    def test_falls_back_to_name_case_insensitive(self, water):
        product = resolve_product(ProductRef(id=99999, name="WATER 600 ML", legacy=True))
        assert product.id == water.id

    def test_unknown_product(self, db_session):
        with pytest.raises(ProductNotFound):
            resolve_product(ProductRef(id=424242))

    def test_decode_scan_rejects_garbage(self, db_session):
        with pytest.raises(ProductNotFound) as exc:
            decode_scan("garbage")
        assert exc.value.details["reason"] == "payload is not JSON"
