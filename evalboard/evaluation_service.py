"""
Evaluation service — the three read operations behind the dashboard.

    get_dashboard(scope)                   -> stats, topSellers, sellers, leads
    get_seller_detail(seller_id, scope)    -> seller, stats, evaluations
    get_evaluation_detail(lead_id, scope)  -> one evaluation, calificacion parsed

Every call re-reads all configured sources; nothing is cached between
requests. Inputs are validated before any query is issued.
"""
import logging
import re

from evalboard import db
from evalboard.aggregator import aggregate, seller_stats
from evalboard.errors import AccessDenied, InvalidInput, NotFound, PayloadMalformed
from evalboard.feature_flags import is_debug_samples_enabled
from evalboard.payload import parse_payload, score_records
from evalboard.resolvers.route_visibility import VisibilityFilter
from evalboard.resolvers.seller_identity import SellerIdentity

logger = logging.getLogger(__name__)

EVALUATION_SELECT = """SELECT e.lead_id, e.sellers_id, e.fecha, e.calificacion, s.nombre AS seller_name
       FROM evaluations e
       JOIN sellers s ON e.sellers_id = s.id"""

SCORED_EVALUATIONS_SQL = (
    EVALUATION_SELECT
    + "\n       WHERE e.calificacion IS NOT NULL AND e.calificacion <> ''"
)
SELLER_EVALUATIONS_SQL = SCORED_EVALUATIONS_SQL + " AND s.nombre = ANY(%s)"
EVALUATION_BY_LEAD_SQL = EVALUATION_SELECT + "\n       WHERE e.lead_id = %s\n       LIMIT 1"
SELLERS_SQL = "SELECT id, nombre FROM sellers ORDER BY nombre"
SELLER_BY_ID_SQL = "SELECT id, nombre FROM sellers WHERE id = %s"

LEAD_ID_RE = re.compile(r"[A-Za-z0-9\-_.]{1,100}")
_DIGITS_RE = re.compile(r"[0-9]+")

LEAD_FIELDS = ("lead_id", "seller_name", "sellers_id", "fecha", db.ORIGIN_KEY)
SAMPLE_PREVIEW_CHARS = 80


def validate_seller_id(value):
    if isinstance(value, bool):
        raise InvalidInput("Seller ID must be a positive integer", {"seller_id": value})
    if isinstance(value, int):
        seller_id = value
    elif isinstance(value, str) and _DIGITS_RE.fullmatch(value.strip()):
        seller_id = int(value.strip())
    else:
        raise InvalidInput("Seller ID must be a positive integer", {"seller_id": value})
    if seller_id <= 0:
        raise InvalidInput("Seller ID must be a positive integer", {"seller_id": value})
    return seller_id


def validate_lead_id(value):
    if not value or not isinstance(value, str):
        raise InvalidInput("Lead ID is required")
    if not LEAD_ID_RE.fullmatch(value):
        raise InvalidInput(
            "Lead ID contains invalid characters or is too long",
            {"lead_id": value[:120]},
        )
    return value


def _by_date_desc(rows):
    dated = [r for r in rows if r.get("fecha")]
    undated = [r for r in rows if not r.get("fecha")]
    return sorted(dated, key=lambda r: str(r["fecha"]), reverse=True) + undated


def _log_samples(rows):
    for i, row in enumerate(rows[:3], start=1):
        blob = row.get("calificacion")
        blob = "" if blob is None else str(blob)
        logger.info(
            "[DASHBOARD] sample %d: lead_id=%s sellers_id=%s seller=%s origin=%s calificacion=%s",
            i, row.get("lead_id"), row.get("sellers_id"), row.get("seller_name"),
            row.get(db.ORIGIN_KEY), (blob[:SAMPLE_PREVIEW_CHARS] + "...") if blob else "NULL",
        )


class EvaluationService:
    def __init__(self, reader=None, identity=None, visibility=None):
        self.reader = reader or db.query_all
        self.identity = identity or SellerIdentity()
        self.visibility = visibility or VisibilityFilter(self.identity)

    @classmethod
    def from_config(cls, reader=None):
        identity = SellerIdentity.from_config()
        return cls(reader, identity, VisibilityFilter.from_config(identity))

    def _usable_evaluations(self, sql, params=None):
        merged = self.reader(sql, params)
        if merged.failed_sources:
            logger.warning("[DASHBOARD] Partial read, sources without rows: %s",
                           ", ".join(merged.failed_sources))
        if is_debug_samples_enabled():
            _log_samples(merged.rows)
        usable, skipped = score_records(merged.rows)
        logger.info("[DASHBOARD] %d evaluations read, %d usable, %d without final_score",
                    len(merged.rows), len(usable), skipped)
        return usable

    def seller_roster(self, scope=None):
        rows = self.visibility.filter_sellers(self.reader(SELLERS_SQL).rows, scope)
        roster = {}
        for row in rows:
            name = self.identity.canonicalize(row.get("nombre"))
            current = roster.get(name)
            if current is None or (
                row.get("id") is not None and (current["id"] is None or row["id"] < current["id"])
            ):
                roster[name] = {"id": row.get("id"), "nombre": name, db.ORIGIN_KEY: row.get(db.ORIGIN_KEY)}
        return sorted(roster.values(), key=lambda s: (s["nombre"] or "").lower())

    def get_dashboard(self, scope=None):
        usable = self._usable_evaluations(SCORED_EVALUATIONS_SQL)
        visible = self.visibility.filter_evaluations(usable, scope)
        stats, top_sellers = aggregate(visible, self.identity)
        leads = _by_date_desc([{k: ev.get(k) for k in LEAD_FIELDS} for ev in visible])
        logger.info("[DASHBOARD] route=%s totalLeads=%d avgScore=%.2f avgResponseTime=%.1fs",
                    scope.route_name if scope else "-", stats["totalLeads"],
                    stats["avgScore"], stats["avgResponseTime"])
        return {
            "stats": stats,
            "topSellers": top_sellers,
            "sellers": self.seller_roster(scope),
            "leads": leads,
        }

    def get_seller_detail(self, seller_id, scope=None):
        seller_id = validate_seller_id(seller_id)
        rows = self.reader(SELLER_BY_ID_SQL, (seller_id,)).rows
        if not rows:
            raise NotFound("Seller not found: %d" % seller_id)
        stored_name = rows[0].get("nombre")
        if not self.visibility.allows(stored_name, scope):
            logger.warning("[DASHBOARD] route=%s denied seller %d (%s)",
                           scope.route_name, seller_id, stored_name)
            raise AccessDenied("Seller %d is not visible on this route" % seller_id)

        canonical = self.identity.canonicalize(stored_name)
        names = self.identity.names_for(canonical)
        if stored_name not in names:
            names.append(stored_name)
        usable = self._usable_evaluations(SELLER_EVALUATIONS_SQL, (names,))
        mine = [ev for ev in usable if self.identity.canonicalize(ev.get("seller_name")) == canonical]

        return {
            "seller": {"id": seller_id, "nombre": canonical},
            "stats": seller_stats(mine),
            "evaluations": _by_date_desc([
                {
                    "lead_id": ev.get("lead_id"),
                    "sellers_id": ev.get("sellers_id"),
                    "seller_name": ev.get("seller_name"),
                    "fecha": ev.get("fecha"),
                    "final_score": ev["final_score"],
                    "tiempo_promedio": ev.get("tiempo_promedio"),
                    db.ORIGIN_KEY: ev.get(db.ORIGIN_KEY),
                }
                for ev in mine
            ]),
        }

    def get_evaluation_detail(self, lead_id, scope=None):
        lead_id = validate_lead_id(lead_id)
        rows = self.reader(EVALUATION_BY_LEAD_SQL, (lead_id,)).rows
        if not rows:
            raise NotFound("Evaluation not found: %s" % lead_id)
        evaluation = dict(rows[0])
        if not self.visibility.allows(evaluation.get("seller_name"), scope):
            logger.warning("[DASHBOARD] route=%s denied evaluation %s", scope.route_name, lead_id)
            raise AccessDenied("Evaluation %s is not visible on this route" % lead_id)

        try:
            evaluation["calificacion"] = parse_payload(evaluation.get("calificacion"))
        except ValueError as e:
            logger.error("[PAYLOAD] Malformed calificacion for lead %s (%s): %s",
                         lead_id, evaluation.get(db.ORIGIN_KEY), e)
            raise PayloadMalformed("Invalid calificacion format", {"lead_id": lead_id}) from e
        return evaluation


def get_service():
    return EvaluationService.from_config()
