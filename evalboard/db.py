"""
Data sources — one bounded connection pool per configured database.

The first registered source is the primary; any further sources are
secondaries. query_all() runs one statement against every source in
registration order and tags each row with the source label under `origin`.

    primary failure    -> exception propagates, the request fails
    secondary failure  -> logged, that source contributes no rows
"""
import logging
from datetime import date, datetime

from psycopg2 import pool

from evalboard import config
from evalboard.feature_flags import is_primary_only

logger = logging.getLogger(__name__)

ORIGIN_KEY = "origin"

_sources = []


def _row_to_dict(row, columns):
    d = {}
    for i, col in enumerate(columns):
        val = row[i]
        if isinstance(val, (datetime, date)):
            d[col] = val.isoformat()
        else:
            d[col] = val
    return d


class DataSource:
    __slots__ = ("label", "pool")

    def __init__(self, label, conn_pool):
        self.label = label
        self.pool = conn_pool

    def execute(self, sql, params=None):
        conn = self.pool.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                columns = [desc[0] for desc in cur.description or ()]
                rows = cur.fetchall() if columns else []
            return [_row_to_dict(r, columns) for r in rows]
        except Exception:
            conn.rollback()
            raise
        finally:
            self.pool.putconn(conn)

    def check_health(self):
        try:
            conn = self.pool.getconn()
            try:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1;")
                    cur.fetchone()
                return True
            finally:
                self.pool.putconn(conn)
        except Exception as e:
            logger.error("[SOURCES] Health check failed for %s: %s", self.label, e)
            return False

    def close(self):
        self.pool.closeall()


class MergeResult:
    """Rows from every source plus which secondaries failed to answer."""

    __slots__ = ("rows", "source_counts", "failed_sources")

    def __init__(self):
        self.rows = []
        self.source_counts = {}
        self.failed_sources = []

    @property
    def status(self):
        return "partial" if self.failed_sources else "full"

    def __iter__(self):
        return iter(self.rows)

    def __len__(self):
        return len(self.rows)


def register_source(label, conn_pool):
    if any(s.label == label for s in _sources):
        raise ValueError("Duplicate data source label: %s" % label)
    source = DataSource(label, conn_pool)
    _sources.append(source)
    return source


def init_pools(database_url=None, secondaries=None, min_conn=None, max_conn=None):
    if database_url is None:
        database_url = config.get_primary_dsn()
    if not database_url:
        raise RuntimeError("DATABASE_URL not set")
    if secondaries is None:
        secondaries = config.get_secondary_dsns()
    default_min, default_max = config.get_pool_bounds()
    min_conn = default_min if min_conn is None else min_conn
    max_conn = default_max if max_conn is None else max_conn

    close_pools()
    primary_label = config.get_primary_label()
    register_source(primary_label, pool.ThreadedConnectionPool(min_conn, max_conn, database_url))
    logger.info("[SOURCES] Primary pool %s initialized (min=%d, max=%d)", primary_label, min_conn, max_conn)

    for label, dsn in secondaries:
        try:
            register_source(label, pool.ThreadedConnectionPool(min_conn, max_conn, dsn))
        except Exception as e:
            logger.error("[SOURCES] Secondary pool %s unavailable at startup: %s", label, e)
            continue
        logger.info("[SOURCES] Secondary pool %s initialized (min=%d, max=%d)", label, min_conn, max_conn)


def get_sources():
    if not _sources:
        raise RuntimeError("Connection pools not initialized. Call init_pools() first.")
    return list(_sources)


def close_pools():
    while _sources:
        source = _sources.pop()
        try:
            source.close()
        except Exception as e:
            logger.warning("[SOURCES] Error closing pool %s: %s", source.label, e)
        else:
            logger.info("[SOURCES] Pool %s closed", source.label)


def query_all(sql, params=None, sources=None):
    if sources is None:
        sources = get_sources()
    if not sources:
        raise RuntimeError("No data sources configured")
    primary, secondaries = sources[0], list(sources[1:])
    if secondaries and is_primary_only():
        secondaries = []

    result = MergeResult()
    for row in primary.execute(sql, params):
        row[ORIGIN_KEY] = primary.label
        result.rows.append(row)
    result.source_counts[primary.label] = len(result.rows)

    for source in secondaries:
        try:
            rows = source.execute(sql, params)
        except Exception as e:
            logger.error("[SOURCES] Secondary source %s failed, continuing without it: %s", source.label, e)
            result.failed_sources.append(source.label)
            result.source_counts[source.label] = 0
            continue
        for row in rows:
            row[ORIGIN_KEY] = source.label
        result.rows.extend(rows)
        result.source_counts[source.label] = len(rows)

    logger.info("[SOURCES] Merged %d rows (%s) status=%s", len(result.rows),
                ", ".join("%s=%d" % kv for kv in result.source_counts.items()), result.status)
    return result


def check_health():
    return {source.label: source.check_health() for source in _sources}
