import pytest

from evalboard import db
from evalboard.evaluation_service import (
    EVALUATION_BY_LEAD_SQL,
    SCORED_EVALUATIONS_SQL,
    SELLER_BY_ID_SQL,
    SELLER_EVALUATIONS_SQL,
    SELLERS_SQL,
)

EVALUATIONS = [
    {"lead_id": "L-1", "sellers_id": 1, "seller_name": "María Calle", "fecha": "2024-05-01",
     "calificacion": '{"final_score": 80, "tiempo_promedio": "00:02:00"}', "origin": "primary"},
    {"lead_id": "L-2", "sellers_id": 2, "seller_name": "Beto Ruiz", "fecha": "2024-05-03",
     "calificacion": '{"final_score": 60}', "origin": "primary"},
    {"lead_id": "L-3", "sellers_id": 1, "seller_name": "María Calle", "fecha": "2024-05-02",
     "calificacion": '{"final_score": null, "tiempo_promedio": 02:15:30}', "origin": "primary"},
    {"lead_id": "X-7", "sellers_id": 8, "seller_name": "María Isabel Calle", "fecha": "2024-05-04",
     "calificacion": '{"final_score": 90,\n "tiempo_promedio": "00:04:00"}', "origin": "legacy"},
]

SELLERS = [
    {"id": 2, "nombre": "Beto Ruiz", "origin": "primary"},
    {"id": 1, "nombre": "María Calle", "origin": "primary"},
    {"id": 8, "nombre": "María Isabel Calle", "origin": "legacy"},
]


class FakeReader:
    """Stands in for db.query_all: answers the service's statements from fixed rows."""

    def __init__(self, evaluations=None, sellers=None, failed=None):
        self.evaluations = evaluations if evaluations is not None else EVALUATIONS
        self.sellers = sellers if sellers is not None else SELLERS
        self.failed = failed or []
        self.calls = []

    def __call__(self, sql, params=None):
        self.calls.append((sql, params))
        result = db.MergeResult()
        result.failed_sources = list(self.failed)
        if sql == SCORED_EVALUATIONS_SQL:
            rows = self.evaluations
        elif sql == SELLER_EVALUATIONS_SQL:
            names = set(params[0])
            rows = [r for r in self.evaluations if r["seller_name"] in names]
        elif sql == EVALUATION_BY_LEAD_SQL:
            rows = [r for r in self.evaluations if r["lead_id"] == params[0]][:1]
        elif sql == SELLERS_SQL:
            rows = self.sellers
        elif sql == SELLER_BY_ID_SQL:
            rows = [r for r in self.sellers if r["id"] == params[0]]
        else:
            raise AssertionError("unexpected SQL: %s" % sql)
        result.rows = [dict(r) for r in rows]
        return result


@pytest.fixture
def make_reader():
    return FakeReader
