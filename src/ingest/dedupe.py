"""Deduplication utilities using content hashing."""
import hashlib


def make_entity_id(family_id: str, kind: str, owner_id: str, name: str) -> str:
    """Stable hash ID from family + entity kind + owner + name."""
    raw = f"{family_id.strip()}:{kind.lower().strip()}:{owner_id.strip()}:{name.strip().lower()}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]


def dedupe_preserving_order(items) -> list:
    """Drop repeated items, first occurrence wins."""
    seen: set = set()
    unique: list = []
    for item in items:
        if item not in seen:
            seen.add(item)
            unique.append(item)
    return unique
