#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations

import argparse
import logging
import sys

from .app import StoryAdminApp
from .config import load_config, resolve_settings, setup_logging

logger = logging.getLogger("story_admin")


# --- Entrypoint ---
def main() -> None:
    parser = argparse.ArgumentParser(description="Story moderation console")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--api-url", type=str, help="Override the admin API base URL")
    parser.add_argument("--theme", type=str, help="Set theme for this run")
    args = parser.parse_args()

    debug_path = setup_logging(args.debug)
    if debug_path:
        print(f"Debug logging enabled: {debug_path}", file=sys.stderr)

    config = resolve_settings(load_config())
    if args.api_url:
        config["api_base_url"] = args.api_url.rstrip("/") + "/"
    logger.info("Using API at %s", config["api_base_url"])

    theme_name = args.theme or config.get("theme") or "textual-dark"
    logger.info("Using theme: %s", theme_name)

    try:
        app = StoryAdminApp(config=config, theme=theme_name)
        app.run()
    except Exception as e:
        logger.exception("Application crashed: %s", e)
        print(f"Application crashed: {e}", file=sys.stderr)


if __name__ == "__main__":
    main()
