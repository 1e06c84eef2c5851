import os
import sys
from typing import Optional

import yaml
from loguru import logger


def load_config(path: Optional[str] = None) -> dict:
    config_path = path or os.path.join(os.path.dirname(__file__), "config.yaml")
    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def configure_logging(cfg: dict):
    level = str(cfg.get("logging", {}).get("level", "WARNING")).upper()
    logger.remove()
    logger.add(sys.stderr, level=level)


def ensure_outputs_dir(out_dir_name: str) -> str:
    # relative names resolve against the working directory
    out_dir = os.path.abspath(out_dir_name)
    os.makedirs(out_dir, exist_ok=True)
    return out_dir
