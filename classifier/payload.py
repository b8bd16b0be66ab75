"""
Typed access to provider payloads.

Provider responses are free-form JSON. Instead of chaining ``.get()`` calls,
fields are read by path (``"Portfolios[0].RegionalExposure"``) and a missing
field comes back as the explicit ``MISSING`` marker, never as ``None``, so
that "field absent" and "field is null" stay distinguishable.
"""

import re
from typing import Any, Dict, List, Mapping

_TOKEN_PATTERN = re.compile(r"[^.\[\]]+|\[(\d+)\]")


class _Missing:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "MISSING"


MISSING = _Missing()


def _tokens(path: str) -> List[Any]:
    tokens = []
    for match in _TOKEN_PATTERN.finditer(path):
        index = match.group(1)
        tokens.append(int(index) if index is not None else match.group(0))
    return tokens


def get_path(payload: Any, path: str) -> Any:
    """Returns the value at ``path`` in ``payload`` or MISSING."""
    if not path:
        return MISSING
    current = payload
    for token in _tokens(path):
        if isinstance(token, int):
            if not isinstance(current, list) or token >= len(current):
                return MISSING
            current = current[token]
        elif isinstance(current, Mapping) and token in current:
            current = current[token]
        elif isinstance(current, list) and token.isdigit() and int(token) < len(current):
            current = current[int(token)]
        else:
            return MISSING
    return current


def matches_filter(item: Any, criteria: Dict[str, Any]) -> bool:
    """True when every criteria field of the item equals the expected value."""
    if not isinstance(item, Mapping):
        return False
    for field, expected in criteria.items():
        if get_path(item, field) != expected:
            return False
    return True
