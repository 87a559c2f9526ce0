"""Deterministic point identities.

Point IDs derived from a document name are UUIDv5 values under a fixed
namespace, so re-ingesting the same file always addresses the same point.
"""

import uuid

from shared.exceptions.errors import ValidationError

# Fixed namespace for deterministic UUIDv5 point IDs.
# Changing this value would invalidate all existing point IDs in the store.
DOCUMENT_ID_NAMESPACE = uuid.UUID("6ba7b810-9dad-11d1-80b4-00c04fd430c8")

PointId = str | int


def identity_for(name: str, namespace: uuid.UUID = DOCUMENT_ID_NAMESPACE) -> str:
    """Derive a stable point ID from a document name (usually its filename).

    Args:
        name (str): The document name or caller-supplied key.
        namespace (uuid.UUID): Namespace the name is hashed under.

    Returns:
        str: The UUIDv5 string.

    Raises:
        ValidationError: If name is not a non-empty string.
    """
    if not isinstance(name, str) or not name:
        raise ValidationError(f"Identity name must be a non-empty string, got {name!r}.")
    return str(uuid.uuid5(namespace, name))


def normalize_point_id(point_id: PointId) -> PointId:
    """Normalise a caller-supplied point ID.

    Canonical digit strings become ints so that "7" (e.g. from a URL path)
    and 7 address the same point. Digit strings with a leading zero such as
    "007" stay strings, so they never alias the integer point 7.

    Raises:
        ValidationError: For booleans, negative ints, empty strings or other types.
    """
    if isinstance(point_id, bool) or not isinstance(point_id, (str, int)):
        raise ValidationError(f"Point id must be a string or integer, got {type(point_id).__name__}.")
    if isinstance(point_id, int):
        if point_id < 0:
            raise ValidationError(f"Point id must not be negative, got {point_id}.")
        return point_id
    point_id = point_id.strip()
    if not point_id:
        raise ValidationError("Point id must not be empty.")
    if point_id.isascii() and point_id.isdigit() and (point_id == "0" or not point_id.startswith("0")):
        return int(point_id)
    return point_id


def is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except (ValueError, AttributeError, TypeError):
        return False
    return True
