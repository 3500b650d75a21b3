"""
Evaluation aggregation — global stats and a per-seller ranking in one pass.

Input is the list of usable evaluations produced by payload.score_records()
(each carries `final_score` and `tiempo_promedio`). Sellers are grouped by
canonical name; the displayed id is the smallest stored id seen for that
name so the output does not depend on row order across sources.

Ranking: avgScore descending, stable (ties keep first-seen order).
"""
import logging

from evalboard.payload import duration_to_seconds, seconds_to_hms
from evalboard.resolvers.seller_identity import SellerIdentity

logger = logging.getLogger(__name__)


class _Accumulator:
    __slots__ = ("score_sum", "score_count", "duration_sum", "duration_count")

    def __init__(self):
        self.score_sum = 0
        self.score_count = 0
        self.duration_sum = 0
        self.duration_count = 0

    def add(self, final_score, duration_seconds):
        self.score_sum += final_score
        self.score_count += 1
        if duration_seconds > 0:
            self.duration_sum += duration_seconds
            self.duration_count += 1

    @property
    def avg_score(self):
        return self.score_sum / self.score_count if self.score_count else 0

    @property
    def avg_duration(self):
        return self.duration_sum / self.duration_count if self.duration_count else 0

    def stats_dict(self):
        return {
            "totalLeads": self.score_count,
            "avgScore": self.avg_score,
            "avgResponseTime": self.avg_duration,
            "avgResponseTimeFormatted": seconds_to_hms(self.avg_duration),
        }


class SellerAggregate(_Accumulator):
    __slots__ = ("canonical_id", "canonical_name")

    def __init__(self, canonical_id, canonical_name):
        super().__init__()
        self.canonical_id = canonical_id
        self.canonical_name = canonical_name

    def note_id(self, seller_id):
        if seller_id is None:
            return
        if self.canonical_id is None or seller_id < self.canonical_id:
            self.canonical_id = seller_id

    def to_dict(self):
        return {
            "id": self.canonical_id,
            "nombre": self.canonical_name,
            "totalScore": self.score_sum,
            "count": self.score_count,
            "totalTime": self.duration_sum,
            "timeCount": self.duration_count,
            "avgScore": self.avg_score,
            "avgTime": self.avg_duration,
        }


def _usable_score(evaluation):
    score = evaluation.get("final_score")
    if isinstance(score, bool) or not isinstance(score, int) or score < 0:
        return None
    return score


def aggregate(evaluations, identity=None):
    """Return (global stats dict, ranked list of seller dicts)."""
    identity = identity or SellerIdentity()
    overall = _Accumulator()
    sellers = {}

    for evaluation in evaluations:
        score = _usable_score(evaluation)
        if score is None:
            continue
        seconds = duration_to_seconds(evaluation.get("tiempo_promedio"))
        overall.add(score, seconds)

        name = identity.canonicalize(evaluation.get("seller_name"))
        seller = sellers.get(name)
        if seller is None:
            seller = SellerAggregate(None, name)
            sellers[name] = seller
        seller.note_id(evaluation.get("sellers_id"))
        seller.add(score, seconds)

    ranking = sorted(sellers.values(), key=lambda s: -s.avg_score)
    logger.debug("[AGGREGATE] %d usable evaluations across %d sellers", overall.score_count, len(sellers))
    return overall.stats_dict(), [s.to_dict() for s in ranking]


def seller_stats(evaluations):
    """Stats dict for an already seller-scoped list of usable evaluations."""
    acc = _Accumulator()
    for evaluation in evaluations:
        score = _usable_score(evaluation)
        if score is None:
            continue
        acc.add(score, duration_to_seconds(evaluation.get("tiempo_promedio")))
    return acc.stats_dict()
