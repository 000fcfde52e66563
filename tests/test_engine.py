"""Tests for papergraph.graph.engine and its settings-derived limits."""

import json
from concurrent.futures import ThreadPoolExecutor

import pytest
from pydantic import ValidationError as SettingsError

from papergraph.config.settings import Settings
from papergraph.graph.engine import NO_ENTITIES_MESSAGE, NO_PATH_MESSAGE, EngineLimits, GraphQueryEngine
from papergraph.graph.errors import EntityNotFound, StoreUnavailable, ValidationError

from tests.sample_graph import CountingStore, build_p53_store


@pytest.fixture
def engine():
    return GraphQueryEngine.from_store(build_p53_store(), limits=EngineLimits())


@pytest.fixture
def counting():
    return CountingStore(build_p53_store())


@pytest.fixture
def counting_engine(counting):
    store = counting._inner
    return GraphQueryEngine(counting, counting, store.papers, limits=EngineLimits())


class _DownRelationshipStore:
    def fetch_by_endpoints(self, ids, match=None):
        raise StoreUnavailable("relationships", "connection refused")

    def count_all(self):
        raise StoreUnavailable("relationships", "connection refused")


class TestOverview:
    def test_limit_and_totals(self, engine):
        data = engine.get_graph(limit=3)
        assert [n["id"] for n in data["nodes"]] == ["brca1", "cancer", "tp53"]
        assert data["stats"] == {"totalEntities": 8, "totalRelationships": 8, "totalPapers": 5}

    def test_ceiling_applies(self):
        engine = GraphQueryEngine.from_store(
            build_p53_store(), limits=EngineLimits(graph_limit_default=2, graph_limit_max=4),
        )
        assert len(engine.get_graph()["nodes"]) == 2
        assert len(engine.get_graph(1000)["nodes"]) == 4

    @pytest.mark.parametrize("limit", [0, -5, "ten", True])
    def test_bad_limit(self, engine, limit):
        with pytest.raises(ValidationError):
            engine.get_graph(limit)


class TestSearch:
    def test_search_neighborhood(self, engine):
        data = engine.search_graph("p53", ["protein"], 1)
        assert data["seeds"] == ["tp53"]
        assert {n["id"] for n in data["nodes"]} == {"tp53", "apoptosis", "cancer", "brca1"}
        assert data["truncated"] is False
        assert "truncationReason" not in data

    def test_single_type_string(self, engine):
        assert engine.search_graph("p53", "protein", 0)["seeds"] == ["tp53"]

    def test_no_match(self, engine):
        assert engine.search_graph("hemoglobin") == {
            "nodes": [], "links": [], "message": NO_ENTITIES_MESSAGE,
        }

    def test_empty_query_touches_no_store(self, counting, counting_engine):
        with pytest.raises(ValidationError):
            counting_engine.search_graph("", [], 2)
        assert counting.calls == []

    @pytest.mark.parametrize("kwargs", [
        {"entity_types": ["enzyme"]},
        {"max_distance": -1},
        {"max_distance": 1.5},
    ])
    def test_bad_parameters_touch_no_store(self, counting, counting_engine, kwargs):
        with pytest.raises(ValidationError):
            counting_engine.search_graph("p53", **kwargs)
        assert counting.calls == []

    def test_truncation_reported(self):
        engine = GraphQueryEngine.from_store(
            build_p53_store(), limits=EngineLimits(visited_node_cap=2),
        )
        data = engine.search_graph("nutlin", max_distance=4)
        assert data["truncated"] is True
        assert data["truncationReason"] == "node_cap"
        assert len(data["nodes"]) == 2

    def test_expired_deadline(self, engine):
        data = engine.search_graph("p53", max_distance=2, deadline=0.0)
        assert data["truncated"] is True
        assert data["truncationReason"] == "deadline"


class TestShortestPath:
    def test_path(self, engine):
        data = engine.find_shortest_path("nutlin", "cancer")
        assert data["length"] == 3
        assert data["path"][0]["id"] == "nutlin"
        assert data["path"][-1]["id"] == "cancer"
        assert data["nodesVisited"] >= 4

    def test_no_path(self, engine):
        data = engine.find_shortest_path("cancer", "nutlin")
        assert data["message"] == NO_PATH_MESSAGE
        assert data["truncated"] is False
        assert data["reason"] == "exhausted"
        assert data["maxHops"] == 5

    def test_missing_entity(self, engine):
        with pytest.raises(EntityNotFound):
            engine.find_shortest_path("tp53", "missing-id")

    def test_store_failure_propagates(self):
        store = build_p53_store()
        engine = GraphQueryEngine(store, _DownRelationshipStore(), store.papers, limits=EngineLimits())
        with pytest.raises(StoreUnavailable):
            engine.find_shortest_path("nutlin", "cancer")


class TestExpand:
    def test_expand(self, engine):
        data = engine.expand(["tp53"], 1)
        assert data["distances"] == {"apoptosis": 1, "brca1": 1, "cancer": 1, "tp53": 0}
        assert sorted(link["id"] for link in data["links"]) == ["r3", "r4", "r5", "r7"]

    def test_zero_distance(self, engine):
        data = engine.expand(["tp53", "mdm2"], 0)
        assert [link["id"] for link in data["links"]] == ["r1"]

    def test_requires_seeds(self, engine):
        with pytest.raises(ValidationError):
            engine.expand([])

    def test_all_seeds_missing(self, engine):
        assert engine.expand(["not-ingested", "also-missing"], 1) == {
            "nodes": [], "links": [], "message": NO_ENTITIES_MESSAGE,
        }

    def test_seed_limit(self):
        engine = GraphQueryEngine.from_store(build_p53_store(), limits=EngineLimits(max_seeds=2))
        with pytest.raises(ValidationError):
            engine.expand(["tp53", "mdm2", "brca1"])


class TestListEntities:
    def test_pagination(self, engine):
        data = engine.list_entities(limit=3)
        assert [e["id"] for e in data["entities"]] == ["tp53", "cancer", "brca1"]
        assert data["pagination"] == {"current": 1, "pages": 3, "total": 8}

        last = engine.list_entities(page=3, limit=3)
        assert len(last["entities"]) == 2

    def test_filters(self, engine):
        assert engine.list_entities(type_filter="DRUG")["pagination"]["total"] == 2
        assert engine.list_entities(search_filter="p53")["pagination"]["total"] == 1

    @pytest.mark.parametrize("kwargs", [{"page": 0}, {"limit": 0}, {"limit": 101}])
    def test_bad_paging(self, engine, kwargs):
        with pytest.raises(ValidationError):
            engine.list_entities(**kwargs)


class TestDeterminismAndConcurrency:
    def test_repeated_queries_identical(self, engine):
        def run():
            return json.dumps([
                engine.get_graph(5),
                engine.search_graph("cancer", max_distance=2),
                engine.find_shortest_path("olaparib", "apoptosis"),
            ])

        assert len({run() for _ in range(5)}) == 1

    def test_concurrent_queries_match_sequential(self, engine):
        calls = [
            lambda: engine.get_graph(4),
            lambda: engine.search_graph("p53", max_distance=1),
            lambda: engine.find_shortest_path("nutlin", "cancer"),
            lambda: engine.find_shortest_path("cancer", "nutlin"),
            lambda: engine.expand(["olaparib"], 3),
        ] * 8
        expected = [json.dumps(call()) for call in calls]

        with ThreadPoolExecutor(max_workers=8) as pool:
            actual = list(pool.map(lambda call: json.dumps(call()), calls))

        assert actual == expected


class TestLimitsFromSettings:
    def test_from_settings(self):
        limits = EngineLimits.from_settings(Settings(MAX_SEEDS=10, MAX_HOPS_CEILING=6))
        assert limits.max_seeds == 10
        assert limits.max_hops_ceiling == 6

    def test_inconsistent_settings_rejected(self):
        with pytest.raises(SettingsError):
            Settings(GRAPH_LIMIT_DEFAULT=2000, GRAPH_LIMIT_MAX=1000)

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("PAPERGRAPH_VISITED_NODE_CAP", "42")
        assert Settings().VISITED_NODE_CAP == 42
