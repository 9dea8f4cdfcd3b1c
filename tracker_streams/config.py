# tracker_streams/config.py

import configparser
import logging
import os
import sys
from typing import Any

# --- Constants ---
FORMATTER_CONCURRENCY = 3
MAX_METADATA_CACHE_ENTRIES = 50
CACHE_EVICTION_FRACTION = 0.25
PAGE_TIMEOUT_SECONDS = 10
SEARCH_TIMEOUT_SECONDS = 15
LOGIN_TIMEOUT_SECONDS = 15
TORZNAB_TIMEOUT_SECONDS = 30
DEFAULT_ZAMUNDA_RIP_LIMIT = 50
VIDEO_EXTENSIONS = (".mkv", ".mp4", ".avi", ".mov", ".wmv", ".flv", ".webm", ".m4v")
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/115.0 Safari/537.36"
)
LOG_SCRAPER_STATS = True

# Sources in the order their streams are concatenated.
DEFAULT_ENABLED_SOURCES = ["zamunda", "zamunda_ch", "zamunda_se", "arenabg", "zamunda_rip"]

# Setup basic logging
logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)
logging.getLogger("httpx").setLevel(logging.WARNING)


def get_configuration(
    config_path: str = "config.ini",
) -> tuple[dict[str, dict[str, str]], dict[str, Any]]:
    """
    Reads tracker credentials and the [search] section from config.ini.

    Every credential may also be supplied through the environment as
    ``<SECTION>_USERNAME`` / ``<SECTION>_PASSWORD``; the file value wins
    when both are present.
    """
    if not os.path.exists(config_path):
        logger.critical(
            f"Configuration file '{config_path}' not found. Please create it."
        )
        sys.exit(1)

    parser = configparser.ConfigParser()
    with open(config_path, encoding="utf-8") as f:
        parser.read_string(f.read())

    search_config = _load_search_config(parser)
    credentials = {
        source: _load_credentials(parser, source)
        for source in search_config["enabled_sources"]
    }

    logger.info(
        "[CONFIG] Loaded configuration for sources: %s",
        ", ".join(search_config["enabled_sources"]) or "none",
    )
    return credentials, search_config


def _load_credentials(
    config: configparser.ConfigParser, section: str
) -> dict[str, str]:
    """Returns the username/password pair for one source section."""
    env_prefix = section.upper()
    username = config.get(section, "username", fallback="") or os.getenv(
        f"{env_prefix}_USERNAME", ""
    )
    password = config.get(section, "password", fallback="") or os.getenv(
        f"{env_prefix}_PASSWORD", ""
    )
    return {"username": username.strip(), "password": password.strip()}


def _load_search_config(config: configparser.ConfigParser) -> dict[str, Any]:
    """Parses the optional [search] section, applying defaults."""
    raw_sources = config.get("search", "enabled_sources", fallback="")
    enabled_sources = [
        name.strip().lower() for name in raw_sources.split(",") if name.strip()
    ] or list(DEFAULT_ENABLED_SOURCES)

    try:
        concurrency = config.getint(
            "search", "formatter_concurrency", fallback=FORMATTER_CONCURRENCY
        )
        cache_size = config.getint(
            "search", "metadata_cache_size", fallback=MAX_METADATA_CACHE_ENTRIES
        )
        rip_limit = int(
            os.getenv("ZAMUNDA_RIP_LIMIT")
            or config.get(
                "search", "zamunda_rip_limit", fallback=str(DEFAULT_ZAMUNDA_RIP_LIMIT)
            )
        )
    except ValueError as e:
        logger.critical(f"Invalid numeric value in [search] section: {e}")
        raise ValueError(f"Invalid numeric value in [search] section: {e}")

    if concurrency < 1 or cache_size < 1:
        raise ValueError(
            "'formatter_concurrency' and 'metadata_cache_size' must be positive."
        )

    return {
        "enabled_sources": enabled_sources,
        "formatter_concurrency": concurrency,
        "metadata_cache_size": cache_size,
        "zamunda_rip_limit": rip_limit,
    }
