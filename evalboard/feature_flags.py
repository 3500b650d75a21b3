import os
import logging

logger = logging.getLogger(__name__)

_FLAG_CACHE = {}


def is_enabled(flag_name):
    if flag_name in _FLAG_CACHE:
        return _FLAG_CACHE[flag_name]
    val = os.environ.get(flag_name, "").strip().lower()
    enabled = val in ("true", "1", "yes", "on")
    _FLAG_CACHE[flag_name] = enabled
    return enabled


def clear_cache():
    _FLAG_CACHE.clear()


PRIMARY_ONLY = "EVALBOARD_PRIMARY_ONLY"

def is_primary_only():
    """Secondary sources are skipped entirely when set."""
    return is_enabled(PRIMARY_ONLY)


DEBUG_SAMPLES = "EVALBOARD_DEBUG_SAMPLES"

def is_debug_samples_enabled():
    return is_enabled(DEBUG_SAMPLES)
