"""
NBR 6118 design constants.

Partial factors, material tables, fatigue and serviceability tables and
the combination factors live in data/nbr6118.yaml and are read once on
import.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_PARAMETERS_PATH = Path(__file__).parent.parent / "data" / "nbr6118.yaml"


def load_design_parameters(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load NBR 6118 design constants from YAML.

    Args:
        path: Optional override file. Defaults to the packaged nbr6118.yaml.

    Returns:
        Nested dictionary of constants (safety factors, tables, combinations)
    """
    yaml_path = Path(path) if path is not None else DEFAULT_PARAMETERS_PATH
    with open(yaml_path, 'r', encoding='utf-8') as f:
        params = yaml.safe_load(f)
    logger.debug("Loaded design parameters from %s", yaml_path)
    return params


# Load constants on module import
NBR_PARAMETERS = load_design_parameters()
