import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Tuple

logger = logging.getLogger(__name__)

DEFAULT_PRIMARY_LABEL = "primary"
DEFAULT_SECONDARY_LABEL = "secondary"
DEFAULT_ROUTE_HEADER = "X-Dashboard-Route"
DEFAULT_FUZZY_MIN_TOKEN_MATCHES = 2
DEFAULT_POOL_MIN = 2
DEFAULT_POOL_MAX = 10


def _config_path() -> Path:
    return Path(os.getenv("EVALBOARD_CONFIG", "config/evalboard.json"))


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("[CONFIG] %s=%r is not an integer, using %d", name, raw, default)
        return default


@lru_cache(maxsize=1)
def _load_config() -> Dict[str, Any]:
    path = _config_path()
    if not path.exists():
        logger.warning("[CONFIG] Config file not found: %s (no aliases, no route scopes)", path)
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("[CONFIG] Could not read %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("[CONFIG] %s must hold a JSON object", path)
        return {}
    return data


def get_seller_aliases() -> Mapping[str, str]:
    aliases = _load_config().get("seller_aliases") or {}
    return MappingProxyType({str(k): str(v) for k, v in aliases.items()})


def get_route_table() -> Mapping[str, frozenset]:
    routes = _load_config().get("routes") or {}
    return MappingProxyType({
        str(name): frozenset(str(n) for n in (names or []))
        for name, names in routes.items()
    })


def get_fuzzy_min_token_matches() -> int:
    value = _load_config().get("fuzzy_min_token_matches", DEFAULT_FUZZY_MIN_TOKEN_MATCHES)
    try:
        return max(1, int(value))
    except (TypeError, ValueError):
        return DEFAULT_FUZZY_MIN_TOKEN_MATCHES


def get_route_header() -> str:
    return str(_load_config().get("route_header") or DEFAULT_ROUTE_HEADER)


def get_primary_label() -> str:
    return os.getenv("EVALBOARD_PRIMARY_LABEL") or str(
        _load_config().get("primary_label") or DEFAULT_PRIMARY_LABEL
    )


def get_primary_dsn() -> str:
    return os.environ.get("DATABASE_URL", "")


def get_secondary_dsns() -> List[Tuple[str, str]]:
    """(label, dsn) pairs for every secondary source with a DSN set, in config order."""
    sources = []
    single = os.environ.get("SECONDARY_DATABASE_URL", "").strip()
    if single:
        sources.append((DEFAULT_SECONDARY_LABEL, single))
    for entry in _load_config().get("secondary_sources") or []:
        label = str(entry.get("label") or "").strip()
        dsn_env = str(entry.get("dsn_env") or "").strip()
        if not label or not dsn_env:
            logger.warning("[CONFIG] Ignoring secondary source entry without label/dsn_env: %r", entry)
            continue
        dsn = os.environ.get(dsn_env, "").strip()
        if not dsn:
            logger.info("[CONFIG] Secondary source %s skipped: %s not set", label, dsn_env)
            continue
        sources.append((label, dsn))
    return sources


def get_pool_bounds() -> Tuple[int, int]:
    min_conn = _env_int("DB_POOL_MIN", DEFAULT_POOL_MIN)
    max_conn = _env_int("DB_POOL_MAX", DEFAULT_POOL_MAX)
    return min_conn, max(min_conn, max_conn)


def reset_config_cache() -> None:
    _load_config.cache_clear()
