import json
from typing import Any


def json_dumps(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


def canonical_json(obj: Any) -> bytes:
    """Sorted-key compact JSON, the byte form used for anything that is signed."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":")).encode("utf-8")


def json_loads(s: str) -> Any:
    return json.loads(s)
