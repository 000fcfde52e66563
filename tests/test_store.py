"""Tests for papergraph.graph.models and papergraph.graph.store."""

import json

import pytest

from papergraph.graph.errors import StoreUnavailable
from papergraph.graph.models import (
    Direction,
    Entity,
    EntityType,
    PaperMention,
    Predicate,
    Relationship,
)
from papergraph.graph.store import EndpointMatch, InMemoryGraphStore

from tests.sample_graph import build_p53_store, entity, p53_snapshot, rel


class TestVocabularies:
    def test_parse_case_insensitive(self):
        assert EntityType.parse("CELL_TYPE") is EntityType.CELL_TYPE
        assert Predicate.parse("Inhibits") is Predicate.INHIBITS
        assert Direction.parse("BIDIRECTIONAL") is Direction.BIDIRECTIONAL

    def test_parse_passthrough(self):
        assert EntityType.parse(EntityType.GENE) is EntityType.GENE

    def test_parse_unknown_lists_allowed(self):
        with pytest.raises(ValueError, match="protein"):
            EntityType.parse("enzyme")


class TestEntity:
    def test_confidence_clamped(self):
        assert entity("a", "A", "gene", confidence=1.5).confidence == 1.0
        assert entity("b", "B", "gene", confidence=-0.2).confidence == 0.0

    def test_paper_count_is_distinct_papers(self):
        e = Entity(
            id="e1", name="TP53", type="protein",
            papers=(PaperMention("p1", 3), PaperMention("p1", 2), PaperMention("p2", 1)),
        )
        assert e.paper_count == 2
        assert e.mention_total == 6

    def test_matches_name_and_alias(self):
        e = entity("tp53", "TP53", "protein", aliases=["Tumor protein p53"])
        assert e.matches("tp5")
        assert e.matches("TUMOR")
        assert not e.matches("mdm2")

    def test_from_dict_document_style(self):
        e = Entity.from_dict({
            "_id": "e1",
            "name": "TP53",
            "type": "PROTEIN",
            "aliases": ["p53"],
            "papers": [{"paperId": "p1", "mentionCount": 3, "contexts": ["..."]}],
            "isVerified": True,
            "externalIds": {"uniprot": "P04637", "ncbi": None},
        })
        assert e.id == "e1"
        assert e.type is EntityType.PROTEIN
        assert e.paper_count == 1
        assert e.mention_total == 3
        assert e.verified is True
        assert e.external_ids == {"uniprot": "P04637"}

    def test_to_dict(self):
        data = entity("tp53", "TP53", "protein", {"p1": 2}, aliases=["p53"]).to_dict()
        assert data["type"] == "protein"
        assert data["aliases"] == ["p53"]
        assert data["paper_count"] == 1


class TestRelationship:
    def test_scores_clamped(self):
        r = Relationship(id="r", subject_id="a", predicate="causes", object_id="b",
                         confidence=1.4, strength=-1)
        assert r.confidence == 1.0
        assert r.strength == 0.0
        assert r.score == 0.0

    def test_defaults(self):
        r = Relationship(id="r", subject_id="a", predicate="causes", object_id="b", confidence=0.6)
        assert r.strength == 0.5
        assert r.direction is Direction.UNIDIRECTIONAL
        assert r.score == pytest.approx(0.3)

    def test_unknown_predicate_rejected(self):
        with pytest.raises(ValueError):
            Relationship(id="r", subject_id="a", predicate="eats", object_id="b", confidence=0.5)

    def test_from_dict_document_style(self):
        r = Relationship.from_dict({
            "_id": "r1",
            "subject": "a",
            "predicate": "INHIBITS",
            "object": "b",
            "confidence": 1.2,
            "direction": "BIDIRECTIONAL",
            "evidence": [{"paperId": "p1", "sentence": "A inhibits B.",
                          "position": {"start": 10, "end": 23}}],
        })
        assert r.triple == ("a", Predicate.INHIBITS, "b")
        assert r.confidence == 1.0
        assert r.is_bidirectional
        assert r.evidence[0].position == (10, 23)

    def test_other_end(self):
        r = rel("r", "a", "regulates", "b", 0.5)
        assert r.other_end("a") == "b"
        assert r.other_end("b") == "a"


class TestInMemoryGraphStore:
    def test_duplicate_name_rejected(self):
        store = InMemoryGraphStore()
        store.add_entity(entity("a", "TP53", "protein"))
        with pytest.raises(ValueError, match="Duplicate entity name"):
            store.add_entity(entity("b", "TP53", "gene"))

    def test_same_id_replaces(self):
        store = InMemoryGraphStore()
        store.add_entity(entity("a", "TP53", "protein"))
        store.add_entity(entity("a", "Tumor protein 53", "protein"))
        store.add_entity(entity("b", "TP53", "gene"))
        assert store.count_all() == 2

    def test_duplicate_triple_rejected(self):
        store = InMemoryGraphStore()
        store.add_relationship(rel("r1", "a", "inhibits", "b", 0.5))
        store.add_relationship(rel("r2", "a", "activates", "b", 0.5))
        with pytest.raises(ValueError, match="Duplicate relationship"):
            store.add_relationship(rel("r3", "a", "inhibits", "b", 0.9))

    def test_dangling_relationship_accepted(self):
        store = build_p53_store()
        assert store.relationships.count_all() == 8

    def test_fetch_by_ids_skips_missing(self):
        store = build_p53_store()
        assert [e.id for e in store.fetch_by_ids(["tp53", "nope", "brca1"])] == ["brca1", "tp53"]

    def test_fetch_by_endpoints_both(self):
        store = build_p53_store()
        both = store.fetch_by_endpoints({"tp53", "mdm2"}, EndpointMatch.BOTH)
        assert [r.id for r in both] == ["r1"]

    def test_fetch_by_endpoints_outgoing(self):
        store = build_p53_store()
        # nutlin -> mdm2 points in, so only mdm2's own r1 is walkable
        assert [r.id for r in store.fetch_by_endpoints({"mdm2"}, EndpointMatch.OUTGOING)] == ["r1"]
        # olaparib -> cancer points in; r4 and r5 are bidirectional
        assert [r.id for r in store.fetch_by_endpoints({"cancer"}, EndpointMatch.OUTGOING)] == [
            "r4", "r5",
        ]

    def test_top_by_connections(self):
        store = build_p53_store()
        assert [e.id for e in store.fetch_top_by_connections(4)] == [
            "tp53", "cancer", "brca1", "mdm2",
        ]

    def test_search_by_name_or_alias(self):
        store = build_p53_store()
        assert [e.id for e in store.search_by_name_or_alias("P53")] == ["tp53"]
        assert [e.id for e in store.search_by_name_or_alias("a", [EntityType.DRUG])] == [
            "olaparib",
        ]

    def test_list_page(self):
        store = build_p53_store()
        rows, total = store.list_page(None, None, 2, 2)
        assert total == 8
        assert [e.id for e in rows] == ["brca1", "mdm2"]

        rows, total = store.list_page(EntityType.DRUG, None, 0, 10)
        assert total == 2
        assert {e.id for e in rows} == {"nutlin", "olaparib"}

    def test_paper_count_falls_back_to_mentions(self):
        store = build_p53_store()
        assert store.papers.count_all() == 5
        store.add_paper("p-registered")
        assert store.papers.count_all() == 1

    def test_snapshot_roundtrip(self, tmp_path):
        path = tmp_path / "kg.json"
        path.write_text(json.dumps(p53_snapshot()), encoding="utf-8")

        store = InMemoryGraphStore.from_json_file(path)
        assert store.count_all() == 8
        assert store.relationships.count_all() == 8
        assert store.papers.count_all() == 5
        assert store.fetch_by_ids(["r4"]) == []
        assert store.fetch_by_endpoints({"tp53", "cancer"})[0].is_bidirectional

    def test_missing_snapshot_is_store_unavailable(self, tmp_path):
        with pytest.raises(StoreUnavailable):
            InMemoryGraphStore.from_json_file(tmp_path / "absent.json")

    def test_corrupt_snapshot_is_store_unavailable(self, tmp_path):
        path = tmp_path / "kg.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StoreUnavailable, match="invalid JSON"):
            InMemoryGraphStore.from_json_file(path)
