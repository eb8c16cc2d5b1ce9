"""Type aliases for JSON-shaped record payloads."""

from typing import Any, TypeAlias

JSONDict: TypeAlias = dict[str, Any]
