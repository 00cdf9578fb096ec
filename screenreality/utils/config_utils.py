from __future__ import annotations

from typing import Any, Dict, Optional, Sequence, Tuple


def as_float(x: Any, default: float) -> float:
    try:
        return float(x)
    except (TypeError, ValueError):
        return float(default)


def as_int(x: Any, default: int) -> int:
    try:
        return int(x)
    except (TypeError, ValueError):
        return int(default)


def as_bool(x: Any, default: bool) -> bool:
    if isinstance(x, bool):
        return x
    if isinstance(x, str):
        v = x.strip().lower()
        if v in ("1", "true", "yes", "on"):
            return True
        if v in ("0", "false", "no", "off"):
            return False
    if isinstance(x, (int, float)):
        return bool(x)
    return bool(default)


def as_choice(x: Any, choices: Sequence[str], default: str) -> str:
    v = str(x).strip().lower() if x is not None else ""
    return v if v in choices else default


def as_vec3(x: Any, default: Sequence[float]) -> Tuple[float, float, float]:
    if isinstance(x, (list, tuple)) and len(x) == 3:
        try:
            return (float(x[0]), float(x[1]), float(x[2]))
        except (TypeError, ValueError):
            pass
    return (float(default[0]), float(default[1]), float(default[2]))


def as_point2(x: Any) -> Optional[Tuple[float, float]]:
    """(x, y) pair or None when unset/malformed."""
    if isinstance(x, (list, tuple)) and len(x) == 2:
        try:
            return (float(x[0]), float(x[1]))
        except (TypeError, ValueError):
            return None
    return None


def get_section(root: Dict[str, Any], path: str) -> Dict[str, Any]:
    """Nested mapping at a dotted path such as "tracking.intrinsics"; {} if absent."""
    node: Any = root
    for key in path.split("."):
        if not isinstance(node, dict):
            return {}
        node = node.get(key, {})
    return node if isinstance(node, dict) else {}
