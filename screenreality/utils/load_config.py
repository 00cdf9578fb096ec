import logging
from typing import Any, Dict

import yaml

log = logging.getLogger(__name__)


def load_yaml_document(path: str) -> Dict[str, Any]:
    """Whole YAML mapping at `path`, or {} when missing, malformed or not a mapping."""
    try:
        with open(path, "r") as f:
            raw = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        log.warning(f"Config error at '{path}': {e}. Using defaults.")
        return {}
    return raw if isinstance(raw, dict) else {}
