"""
Configuration for the YouTube comment extractor.

Settings live in a single CONFIG dictionary so the CLI and the library modules
share the same defaults. Secrets come from the environment (optionally a .env
file loaded with python-dotenv).
"""

# ============================================================================
# IMPORTS
# ============================================================================

import logging
import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


# ============================================================================
# CONFIGURATION
# ============================================================================

CONFIG = {
    'output_dir': 'output',              # Directory for exported files
    'max_results_comments': 100,         # Comments per API call (max 100 per YouTube API)
    'max_pages_per_video': 10,           # Page ceiling per video, bounds per-video cost
    'page_delay': 0.1,                   # Seconds to wait before requesting the next page
    'video_delay': 0.2,                  # Seconds to wait between videos
    'retry_attempts': 3,                 # Number of retry attempts for rate limiting
    'api_version': 'v3',                 # YouTube Data API version
    'daily_quota_limit': 10000,          # Default daily quota limit in units
    'metadata_cache_ttl': 300,           # Seconds a fetched video title stays cached
    'log_level': os.getenv("LOG_LEVEL", "INFO"),
}

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def get_api_key():
    """
    Return the YouTube Data API key from the environment.

    Set your API key in .env file: YOUTUBE_API_KEY=your_key_here

    Returns:
        str or None: The configured key, or None when missing or still the placeholder
    """
    api_key = os.getenv("YOUTUBE_API_KEY")
    if not api_key or api_key == "your_api_key_here":
        return None
    return api_key


def validate_config(config=None):
    """
    Validate the tunables in CONFIG.

    Raises:
        ValueError: Listing every invalid setting
    """
    config = CONFIG if config is None else config
    errors = []

    if not 1 <= config['max_results_comments'] <= 100:
        errors.append("max_results_comments must be between 1 and 100")
    if config['max_pages_per_video'] < 1:
        errors.append("max_pages_per_video must be >= 1")
    if config['page_delay'] < 0:
        errors.append("page_delay must be >= 0")
    if config['video_delay'] < 0:
        errors.append("video_delay must be >= 0")
    if config['retry_attempts'] < 1:
        errors.append("retry_attempts must be >= 1")
    if config['metadata_cache_ttl'] < 0:
        errors.append("metadata_cache_ttl must be >= 0")

    if errors:
        raise ValueError("Configuration errors:\n" + "\n".join(errors))

    return True


def setup_logging(level=None):
    """Configure root logging once with a console handler."""
    level = level or CONFIG['log_level']
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)
