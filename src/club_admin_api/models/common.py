"""Response helpers shared by every router: document serialization and pagination blocks."""

import math
from datetime import datetime
from typing import Any, Dict, Iterable, List

from bson import ObjectId

SENSITIVE_FIELDS = ("password", "resetPasswordToken", "resetPasswordExpires")


def serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: serialize_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]
    return value


def serialize_document(doc: Dict[str, Any], hide: Iterable[str] = SENSITIVE_FIELDS) -> Dict[str, Any]:
    """JSON-ready copy of a MongoDB document with ObjectIds as strings and secrets removed."""
    hidden = set(hide)
    return {key: serialize_value(value) for key, value in doc.items() if key not in hidden}


def serialize_documents(docs: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [serialize_document(doc) for doc in docs]


def build_pagination(page: int, limit: int, count: int, total_items: int) -> Dict[str, int]:
    """Pagination block: `current` page, `total` pages, `count` on this page, `totalItems`."""
    return {
        "current": page,
        "total": math.ceil(total_items / limit) if limit else 0,
        "count": count,
        "totalItems": total_items,
    }
