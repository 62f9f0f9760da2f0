"""
Configuration for the Ship Network Assistant.

This module provides:
1. Settings loaded from the environment (and an optional .env file)
2. The YAML loader used for the static service configuration files
"""
import os
from dataclasses import dataclass
from typing import Optional

import yaml
from dotenv import load_dotenv

from ship_assistant.errors import ConfigurationError

load_dotenv()

# Get the absolute path to the services directory
SERVICES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "services")

DEFAULT_TABLE_PREFIX = "wgc_databasewgc_database_"

# Hard cap the store applies to any single row request
STORE_ROW_CAP = 1000
DEFAULT_MAX_PAGES = 20


@dataclass(frozen=True)
class Settings:
    """Process configuration read once at application start-up."""
    store_url: str
    store_key: str
    table_prefix: str = DEFAULT_TABLE_PREFIX
    page_size: int = STORE_ROW_CAP
    max_pages: int = DEFAULT_MAX_PAGES
    request_timeout: float = 30.0
    log_level: str = "INFO"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def load_settings() -> Settings:
    """
    Build Settings from the environment.

    Returns:
        Settings instance

    Raises:
        ConfigurationError: If the store URL or key is missing or a numeric value is malformed
    """
    store_url = os.getenv("SUPABASE_URL", "").strip()
    store_key = os.getenv("SUPABASE_KEY", "").strip()

    missing = [name for name, value in (("SUPABASE_URL", store_url), ("SUPABASE_KEY", store_key)) if not value]
    if missing:
        raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

    page_size = min(max(_int_env("PAGE_SIZE", STORE_ROW_CAP), 1), STORE_ROW_CAP)
    max_pages = max(_int_env("MAX_PAGES", DEFAULT_MAX_PAGES), 1)

    return Settings(
        store_url=store_url.rstrip("/"),
        store_key=store_key,
        table_prefix=os.getenv("TABLE_PREFIX", DEFAULT_TABLE_PREFIX),
        page_size=page_size,
        max_pages=max_pages,
        request_timeout=_float_env("STORE_TIMEOUT", 30.0),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def load_yaml_config(filename: str, required_key: Optional[str] = None):
    """Load a YAML configuration file from the services directory with error handling."""
    filepath = os.path.join(SERVICES_DIR, filename)
    try:
        with open(filepath, 'r', encoding='utf-8') as file:
            config = yaml.safe_load(file)
    except FileNotFoundError:
        raise ValueError(f"Configuration file not found: {filename}")
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {filename}: {str(e)}")

    if config is None:
        raise ValueError(f"Empty configuration file: {filename}")
    if required_key and required_key not in config:
        raise ValueError(f"Missing required key '{required_key}' in {filename}")
    return config[required_key] if required_key else config
