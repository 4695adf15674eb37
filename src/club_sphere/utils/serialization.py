"""
Document serialization helpers.

MongoDB documents carry `ObjectId` values that FastAPI's JSON encoder does not know
about. `to_public()` walks a document (or a list of them) and turns every
`ObjectId` into its hex string, leaving everything else for FastAPI to encode.
"""

from typing import Any

from bson import ObjectId


def to_public(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {key: to_public(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_public(item) for item in value]
    return value
