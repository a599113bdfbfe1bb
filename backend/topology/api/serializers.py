import base64
from enum import Enum
from typing import Any, Mapping


PRIMITIVE_TYPES = (str, int, float, bool, type(None))


def serialize_ir(obj: Any):
    """
    Safely serialize IR objects into JSON-compatible structures.
    Deterministic.
    Tolerant to primitives.
    """

    # Primitive values pass through
    if isinstance(obj, PRIMITIVE_TYPES):
        return obj

    # Opaque payloads (bootstrap scripts) travel base64-encoded
    if isinstance(obj, (bytes, bytearray)):
        return base64.b64encode(bytes(obj)).decode("ascii")

    if isinstance(obj, Enum):
        return obj.value

    # Lists / tuples: serialize each element
    if isinstance(obj, (list, tuple)):
        return [serialize_ir(item) for item in obj]

    # Dicts and read-only mappings: serialize values
    if isinstance(obj, Mapping):
        return {str(k): serialize_ir(v) for k, v in obj.items()}

    if hasattr(obj, "to_dict"):
        return serialize_ir(obj.to_dict())

    # IR / dataclass-like objects
    if hasattr(obj, "__dict__"):
        return {
            key: serialize_ir(value)
            for key, value in obj.__dict__.items()
            if not key.startswith("_")
        }

    # Fallback (should rarely happen)
    return str(obj)
