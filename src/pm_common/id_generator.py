"""Business ID generation for orders.

IDs are prefixed random hex strings, e.g. ``ord_3f9c2a1b7e4d``. Uniqueness
is enough here; ordering comes from the store's insertion order.
"""

import uuid

ORDER_PREFIX = "ord"


def generate_id(prefix: str = ORDER_PREFIX) -> str:
    """Return ``<prefix>_<24 hex chars>``."""
    if not prefix or "_" in prefix:
        raise ValueError(f"invalid id prefix: {prefix!r}")
    return f"{prefix}_{uuid.uuid4().hex[:24]}"
