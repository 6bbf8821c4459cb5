"""
Central configuration for the evaluation engine.

Values come from environment variables (a local .env file is loaded by the
CLI entry point):
  - SUPPLIER_EVAL_MODELS_PATH: evaluation model YAML (default: config/evaluation_models.yaml)
  - SUPPLIER_EVAL_RELAY_URL: notification relay endpoint (unset = relay disabled)
  - SUPPLIER_EVAL_RELAY_TIMEOUT: relay request timeout in seconds (default: 10)
  - SUPPLIER_EVAL_LOG_DIR: directory for log files (default: logs/)

Database settings live in supplier_eval.db.client.
"""

import os
from pathlib import Path
from typing import Optional

from supplier_eval.constants import DEFAULT_RELAY_TIMEOUT_SECONDS

PROJECT_ROOT = Path(__file__).parent.parent


def get_models_config_path() -> Path:
    """Get the path of the evaluation model definitions."""
    env_path = os.environ.get("SUPPLIER_EVAL_MODELS_PATH")
    if env_path:
        return Path(env_path).expanduser().resolve()
    return PROJECT_ROOT / "config" / "evaluation_models.yaml"


def get_relay_url() -> Optional[str]:
    """Get the notification relay URL, or None when the relay is disabled."""
    url = os.environ.get("SUPPLIER_EVAL_RELAY_URL", "").strip()
    return url or None


def get_relay_timeout() -> float:
    """Get the relay request timeout in seconds."""
    raw = os.environ.get("SUPPLIER_EVAL_RELAY_TIMEOUT")
    if not raw:
        return DEFAULT_RELAY_TIMEOUT_SECONDS
    try:
        return float(raw)
    except ValueError:
        return DEFAULT_RELAY_TIMEOUT_SECONDS


def get_log_dir() -> Path:
    """Get the log directory."""
    env_path = os.environ.get("SUPPLIER_EVAL_LOG_DIR")
    if env_path:
        return Path(env_path).expanduser().resolve()
    return PROJECT_ROOT / "logs"
