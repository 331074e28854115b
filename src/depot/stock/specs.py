"""Attribute matching for SKU identity.

Two items of the same warehouse and category are the same SKU when their
specs hold the same set of attribute names and identical (case-sensitive)
values for every name. Key order never matters.
"""

import json


def same_spec(a, b):
    """Return True when both spec maps describe the same SKU."""
    a = a or {}
    b = b or {}
    if set(a.keys()) != set(b.keys()):
        return False
    return all(a[key] == b[key] for key in a)


def clean_specs(specs):
    """Coerce a spec map to ``{str: str}``, dropping blank values."""
    cleaned = {}
    for key, value in (specs or {}).items():
        key = str(key).strip()
        if value is None or not key:
            continue
        value = str(value).strip()
        if value:
            cleaned[key] = value
    return cleaned


def encode_specs(specs):
    """Serialize specs in a stable, key-sorted form for storage."""
    return json.dumps(specs or {}, sort_keys=True, ensure_ascii=False)


def decode_specs(raw):
    if not raw:
        return {}
    return json.loads(raw)


def sku_key(warehouse_id, category_id, specs):
    """Hashable identity of a SKU, used to merge duplicates within one batch."""
    return (str(warehouse_id), str(category_id), encode_specs(specs))
