import json

import pytest

from evalboard import config, route_scope
from evalboard.evaluation_service import EvaluationService


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "evalboard.json"
    path.write_text(
        json.dumps(
            {
                "primary_label": "crm",
                "secondary_sources": [
                    {"label": "legacy", "dsn_env": "LEGACY_DATABASE_URL"},
                    {"label": "archive", "dsn_env": "ARCHIVE_DATABASE_URL"},
                    {"label": "", "dsn_env": "NOPE"},
                ],
                "seller_aliases": {"María Isabel Calle": "María Calle"},
                "routes": {"equipo-norte": ["María Calle", "Juan Pérez"]},
                "fuzzy_min_token_matches": 3,
                "route_header": "X-Team",
            }
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("EVALBOARD_CONFIG", str(path))
    monkeypatch.delenv("EVALBOARD_PRIMARY_LABEL", raising=False)
    monkeypatch.delenv("SECONDARY_DATABASE_URL", raising=False)
    monkeypatch.delenv("ARCHIVE_DATABASE_URL", raising=False)
    config.reset_config_cache()
    yield path
    config.reset_config_cache()


def test_tables_loaded(config_file):
    assert dict(config.get_seller_aliases()) == {"María Isabel Calle": "María Calle"}
    assert config.get_route_table()["equipo-norte"] == frozenset({"María Calle", "Juan Pérez"})
    assert config.get_fuzzy_min_token_matches() == 3
    assert config.get_route_header() == "X-Team"
    assert config.get_primary_label() == "crm"


def test_secondary_sources_need_dsn(config_file, monkeypatch):
    monkeypatch.setenv("LEGACY_DATABASE_URL", "postgresql://legacy/db")
    monkeypatch.setenv("SECONDARY_DATABASE_URL", "postgresql://secondary/db")
    assert config.get_secondary_dsns() == [
        ("secondary", "postgresql://secondary/db"),
        ("legacy", "postgresql://legacy/db"),
    ]


def test_missing_file_means_no_restrictions(tmp_path, monkeypatch):
    monkeypatch.setenv("EVALBOARD_CONFIG", str(tmp_path / "missing.json"))
    config.reset_config_cache()
    try:
        assert dict(config.get_seller_aliases()) == {}
        assert dict(config.get_route_table()) == {}
        assert config.get_fuzzy_min_token_matches() == config.DEFAULT_FUZZY_MIN_TOKEN_MATCHES
        assert config.get_route_header() == config.DEFAULT_ROUTE_HEADER
    finally:
        config.reset_config_cache()


def test_unreadable_file_ignored(tmp_path, monkeypatch):
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    monkeypatch.setenv("EVALBOARD_CONFIG", str(bad))
    config.reset_config_cache()
    try:
        assert dict(config.get_route_table()) == {}
    finally:
        config.reset_config_cache()


def test_pool_bounds(monkeypatch):
    monkeypatch.setenv("DB_POOL_MIN", "3")
    monkeypatch.setenv("DB_POOL_MAX", "1")
    assert config.get_pool_bounds() == (3, 3)
    monkeypatch.setenv("DB_POOL_MAX", "many")
    assert config.get_pool_bounds() == (3, config.DEFAULT_POOL_MAX)


def test_service_from_config(config_file):
    service = EvaluationService.from_config(reader=lambda sql, params=None: None)
    assert service.identity.canonicalize("María Isabel Calle") == "María Calle"
    assert service.visibility.min_token_matches == 3


class _Request:
    def __init__(self, headers=None, query_params=None):
        self.headers = headers or {}
        self.query_params = query_params or {}


def test_resolve_route_scope_from_header(config_file):
    scope = route_scope.resolve_route_scope(_Request(headers={"X-Team": "equipo-norte"}))
    assert scope.route_name == "equipo-norte"
    assert "María Calle" in scope.allowed_seller_names


def test_resolve_route_scope_from_query(config_file):
    scope = route_scope.resolve_route_scope(_Request(query_params={"route": "equipo-norte"}))
    assert scope.route_name == "equipo-norte"


def test_resolve_route_scope_absent(config_file):
    assert route_scope.resolve_route_scope(_Request()) is None
    assert route_scope.resolve_route_scope(_Request(headers={"X-Team": "otro"})) is None
