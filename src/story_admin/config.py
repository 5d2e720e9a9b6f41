from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from typing import Any, Dict, Optional

# --- Configuration ---
DEFAULT_API_BASE_URL = "https://api.yourhourapp.com/api/v1/"
UNSPLASH_SEARCH_URL = "https://api.unsplash.com/search/photos"
UNSPLASH_PER_PAGE = 20
HTTP_TIMEOUT = 15
DEFAULT_PAGE_SIZE = 10
MIN_PASSWORD_LENGTH = 8
DEFAULT_APP_NAME = "story_admin"

CONFIG_PATH = os.path.expanduser("~/.config/story-admin/config.json")
SESSION_PATH = os.path.expanduser("~/.config/story-admin/session.json")
AUTH_STORAGE_KEY = "auth-storage"

REQUEST_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
    "ngrok-skip-browser-warning": "true",
}
RETRY_TOTAL = 3
RETRY_BACKOFF = 0.3
RETRY_STATUSES = (429, 500, 502, 503, 504)

NETWORK_ERROR_MESSAGE = "Network error. Please try again."

DEFAULT_CONFIG: Dict[str, Any] = {
    "api_base_url": DEFAULT_API_BASE_URL,
    "unsplash_access_key": "",
    "app_name": DEFAULT_APP_NAME,
    "page_size": DEFAULT_PAGE_SIZE,
    "theme": "textual-dark",
}

# Default UI settings
UI_DEFAULTS = {
    "statusbar_keybindings": "[b {color}]space[/] select, [b {color}]a[/] approve, [b {color}]x[/] reject",
    "light_theme": "textual-light",
}

# --- Logging ---
logger = logging.getLogger("story_admin")


def setup_logging(debug: bool = False) -> Optional[str]:
    """Configure logging."""
    if not debug:
        logging.basicConfig(level=logging.CRITICAL, handlers=[logging.NullHandler()])
        return None

    ts = datetime.now().strftime("%Y%m%dT%H%M%S")
    pid = os.getpid()
    debug_path = f"/tmp/story_admin_debug_{ts}_{pid}.log"

    logging.basicConfig(
        level=logging.DEBUG,
        filename=debug_path,
        filemode="a",
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )

    logger.debug("Debug logging enabled to %s", debug_path)
    return debug_path


def ensure_config_file_exists(path: str = CONFIG_PATH) -> None:
    """Write the default config file if the user's config file is not found."""
    if os.path.exists(path):
        return
    logger.info("Config file not found at %s, creating default.", path)
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w") as f:
            json.dump(DEFAULT_CONFIG, f, indent=2)
    except OSError as e:
        logger.error("Failed to create default config file: %s", e)


def load_config(path: str = CONFIG_PATH) -> Dict[str, Any]:
    """Load the main configuration file, filling in defaults for missing keys."""
    ensure_config_file_exists(path)
    config = dict(DEFAULT_CONFIG)
    try:
        with open(path, "r") as f:
            config.update(json.load(f))
        logger.info("Loaded config from %s", path)
    except (IOError, json.JSONDecodeError) as e:
        logger.error("Failed to load config from %s: %s", path, e)
    return config


def save_config(config: Dict[str, Any], path: str = CONFIG_PATH) -> None:
    """Save the main configuration file."""
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w") as f:
            json.dump(config, f, indent=2)
        logger.info("Saved config to %s", path)
    except IOError as e:
        logger.error("Failed to save config to %s: %s", path, e)


def resolve_settings(
    config: Dict[str, Any], environ: Optional[Dict[str, str]] = None
) -> Dict[str, Any]:
    """Apply environment overrides on top of the loaded config."""
    env = os.environ if environ is None else environ
    settings = dict(config)
    if env.get("STORY_ADMIN_API_BASE_URL"):
        settings["api_base_url"] = env["STORY_ADMIN_API_BASE_URL"]
    if env.get("UNSPLASH_ACCESS_KEY"):
        settings["unsplash_access_key"] = env["UNSPLASH_ACCESS_KEY"]
    if env.get("STORY_ADMIN_APP_NAME"):
        settings["app_name"] = env["STORY_ADMIN_APP_NAME"]

    base_url = settings.get("api_base_url") or DEFAULT_API_BASE_URL
    if not base_url.endswith("/"):
        base_url += "/"
    settings["api_base_url"] = base_url
    try:
        settings["page_size"] = max(1, int(settings.get("page_size", DEFAULT_PAGE_SIZE)))
    except (TypeError, ValueError):
        logger.warning("Invalid page_size %r; using default", settings.get("page_size"))
        settings["page_size"] = DEFAULT_PAGE_SIZE
    return settings
