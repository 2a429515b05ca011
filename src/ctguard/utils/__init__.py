from .json import canonical_json, json_dumps, json_loads
from .timestamps import ms_to_iso, now_ms

__all__ = ["canonical_json", "json_dumps", "json_loads", "ms_to_iso", "now_ms"]
