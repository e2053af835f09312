# Overview: Encoding and decoding of the product-reference payload printed in QR labels.

"""
QR payload codec.

Only the product id is embedded (`{"v": 1, "id": ...}`); name, price and
stock are always re-read from live inventory, so an old printed label still
sells at today's price.

Decoding is a small tagged-variant parser tried in a fixed order:
1. versioned payload  {"v": 1, "id": ...}
2. legacy payload     {"id": ..., ...}      (no version tag)
3. legacy payload     {"name": ..., ...}    (no version tag, no id)
Anything else yields ParseFailure. The parser never raises.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

from ..errors import ProductNotFound
from ..extensions import db
from ..models import Product
from .inventory_service import find_by_name

PAYLOAD_VERSION = 1


@dataclass(frozen=True)
class ProductRef:
    id: int | str | None = None
    name: str | None = None
    legacy: bool = False


@dataclass(frozen=True)
class ParseFailure:
    reason: str
    raw: str = ""


def encode_product_ref(product) -> str:
    """Text to render into the QR image for `product`."""
    return json.dumps({"v": PAYLOAD_VERSION, "id": product.id}, separators=(",", ":"))


def _usable(value) -> bool:
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return isinstance(value, int)


def decode_payload(text) -> ProductRef | ParseFailure:
    if not isinstance(text, str) or not text.strip():
        return ParseFailure("empty payload")
    try:
        obj = json.loads(text)
    except ValueError:
        return ParseFailure("payload is not JSON", raw=text)
    if not isinstance(obj, dict):
        return ParseFailure("payload is not an object", raw=text)

    if "v" in obj:
        if obj["v"] != PAYLOAD_VERSION or isinstance(obj["v"], bool):
            return ParseFailure(f"unsupported payload version {obj['v']!r}", raw=text)
        if not _usable(obj.get("id")):
            return ParseFailure("versioned payload without id", raw=text)
        return ProductRef(id=obj["id"])

    if _usable(obj.get("id")):
        name = obj.get("name") if isinstance(obj.get("name"), str) else None
        return ProductRef(id=obj["id"], name=name, legacy=True)

    if isinstance(obj.get("name"), str) and obj["name"].strip():
        return ProductRef(name=obj["name"], legacy=True)

    return ParseFailure("payload has neither id nor name", raw=text)


def _lookup_id(ref_id) -> Product | None:
    if isinstance(ref_id, str):
        ref_id = ref_id.strip()
        if not ref_id.isdigit():
            return None
        ref_id = int(ref_id)
    return db.session.get(Product, ref_id)


def resolve_product(ref: ProductRef) -> Product:
    """
    Resolve against live inventory: id first, then case-insensitive exact
    name. Raises ProductNotFound when neither matches.
    """
    product = _lookup_id(ref.id) if ref.id is not None else None
    if product is None and ref.name:
        product = find_by_name(ref.name)
    if product is None:
        raise ProductNotFound(
            "Product not found",
            details={"id": ref.id, "name": ref.name},
        )
    return product


def decode_scan(text) -> Product:
    """Decode a scanned payload and resolve it to the live product."""
    ref = decode_payload(text)
    if isinstance(ref, ParseFailure):
        raise ProductNotFound("Invalid QR payload", details={"reason": ref.reason})
    return resolve_product(ref)
