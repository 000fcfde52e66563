"""Synthetic knowledge graph snapshots for tests.

The "p53 network" dataset is a small oncology graph extracted from five
fictional papers (p1–p5):

    Nutlin-3 ──inhibits──▶ MDM2 ──inhibits──▶ TP53 ──regulates──▶ Apoptosis
                                                │  ╲
                                 associated_with│   ╲interacts_with (bi, weak)
                                      (bi)      │    ╲
                                          Breast cancer ── BRCA1 (bi, strong)
                                                ▲
                             Olaparib ──treats──┘

    TP53 ──binds_to──▶ ent-ghost   (entity never ingested)
    CRISPR screening               (isolated)

Arrows are unidirectional relationships; "bi" marks bidirectional ones.

Usage:
    from tests.sample_graph import build_p53_store, CountingStore
"""

from __future__ import annotations

from typing import Any, Iterable

from papergraph.graph.models import Entity, EntityType, PaperMention, Relationship
from papergraph.graph.store import EndpointMatch, InMemoryGraphStore


def entity(eid: str, name: str, etype: str, papers: dict[str, int] | None = None,
           aliases: Iterable[str] = (), confidence: float = 0.8) -> Entity:
    """Build an entity concisely; ``papers`` maps paper id → mention count."""
    return Entity(
        id=eid,
        name=name,
        type=etype,
        aliases=frozenset(aliases),
        confidence=confidence,
        papers=tuple(PaperMention(pid, n) for pid, n in (papers or {}).items()),
    )


def rel(rid: str, subject: str, predicate: str, obj: str, confidence: float,
        strength: float = 0.5, bidirectional: bool = False) -> Relationship:
    return Relationship(
        id=rid,
        subject_id=subject,
        predicate=predicate,
        object_id=obj,
        confidence=confidence,
        strength=strength,
        direction="bidirectional" if bidirectional else "unidirectional",
    )


def build_store(entities: Iterable[Entity], relationships: Iterable[Relationship]) -> InMemoryGraphStore:
    store = InMemoryGraphStore()
    for e in entities:
        store.add_entity(e)
    for r in relationships:
        store.add_relationship(r)
    return store


P53_ENTITIES = [
    entity("tp53", "TP53", "protein", {"p1": 5, "p2": 3, "p3": 2},
           aliases=["p53", "tumor protein p53"]),
    entity("mdm2", "MDM2", "protein", {"p1": 2, "p2": 2}),
    entity("nutlin", "Nutlin-3", "drug", {"p2": 1}, aliases=["nutlin"]),
    entity("cancer", "Breast cancer", "disease", {"p1": 1, "p3": 2, "p4": 4}),
    entity("brca1", "BRCA1", "gene", {"p3": 3, "p4": 3}),
    entity("olaparib", "Olaparib", "drug", {"p4": 2}),
    entity("apoptosis", "Apoptosis", "pathway", {"p1": 1}),
    entity("crispr", "CRISPR screening", "method", {"p5": 1}),
]

P53_RELATIONSHIPS = [
    rel("r1", "mdm2", "inhibits", "tp53", 0.9, 0.8),
    rel("r2", "nutlin", "inhibits", "mdm2", 0.85, 0.7),
    rel("r3", "tp53", "regulates", "apoptosis", 0.8, 0.6),
    rel("r4", "tp53", "associated_with", "cancer", 0.7, 0.5, bidirectional=True),
    rel("r5", "brca1", "associated_with", "cancer", 0.9, 0.9, bidirectional=True),
    rel("r6", "olaparib", "treats", "cancer", 0.75, 0.6),
    rel("r7", "brca1", "interacts_with", "tp53", 0.4, 0.5, bidirectional=True),
    rel("r8", "tp53", "binds_to", "ent-ghost", 0.5, 0.5),
]


def build_p53_store() -> InMemoryGraphStore:
    return build_store(P53_ENTITIES, P53_RELATIONSHIPS)


def p53_snapshot() -> dict[str, Any]:
    """The p53 network as a JSON-style snapshot document."""
    return {
        "entities": [e.to_dict() for e in P53_ENTITIES],
        "relationships": [r.to_dict() for r in P53_RELATIONSHIPS],
        "papers": [{"id": f"p{i}"} for i in range(1, 6)],
    }


class CountingStore:
    """Entity + relationship store wrapper that records every call."""

    def __init__(self, inner: InMemoryGraphStore) -> None:
        self._inner = inner
        self.calls: list[str] = []
        self.fetch_sizes: list[int] = []  # ids per fetch_by_ids call

    # EntityStore
    def fetch_by_ids(self, ids: Iterable[str]) -> list[Entity]:
        self.calls.append("fetch_by_ids")
        ids = list(ids)
        self.fetch_sizes.append(len(ids))
        return self._inner.fetch_by_ids(ids)

    def fetch_top_by_connections(self, limit: int) -> list[Entity]:
        self.calls.append("fetch_top_by_connections")
        return self._inner.fetch_top_by_connections(limit)

    def search_by_name_or_alias(self, query: str, types: Any = None, limit: int | None = None) -> list[Entity]:
        self.calls.append("search_by_name_or_alias")
        return self._inner.search_by_name_or_alias(query, types, limit)

    def count_all(self) -> int:
        self.calls.append("count_all")
        return self._inner.count_all()

    def list_page(self, type_filter: EntityType | None, search_filter: str | None,
                  offset: int, limit: int) -> tuple[list[Entity], int]:
        self.calls.append("list_page")
        return self._inner.list_page(type_filter, search_filter, offset, limit)

    # RelationshipStore
    def fetch_by_endpoints(self, ids: Iterable[str],
                           match: EndpointMatch = EndpointMatch.BOTH) -> list[Relationship]:
        self.calls.append(f"fetch_by_endpoints:{match.value}")
        return self._inner.fetch_by_endpoints(ids, match)


def build_star_store(n_out: int = 2000, n_in: int = 2000) -> InMemoryGraphStore:
    """A hub with ``n_out`` outgoing-only leaves and ``n_in`` incoming-only neighbors.

    Leaves are ``l0000``…; incoming neighbors are ``i0000``…, reachable
    from nowhere since their edges point into the hub.
    """
    entities = [entity("hub", "Hub", "protein")]
    entities += [entity(f"l{i:04d}", f"Leaf {i:04d}", "gene") for i in range(n_out)]
    entities += [entity(f"i{i:04d}", f"Inbound {i:04d}", "drug") for i in range(n_in)]
    rels = [rel(f"out{i:04d}", "hub", "regulates", f"l{i:04d}", 0.5) for i in range(n_out)]
    rels += [rel(f"in{i:04d}", f"i{i:04d}", "inhibits", "hub", 0.5) for i in range(n_in)]
    return build_store(entities, rels)
