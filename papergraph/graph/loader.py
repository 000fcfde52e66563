"""Store records → NetworkX working graph.

Every query gets its own ``MultiDiGraph`` built from store fetches and
thrown away afterwards. Nodes are keyed by entity id and carry the
``Entity``; edges are keyed by relationship id and carry the
``Relationship``.

Edges encode traversability, not just storage direction: a unidirectional
relationship becomes a single subject → object edge, while a bidirectional
one also gets a mirrored object → subject edge flagged ``reverse=True``.
The traversable neighbors of a node are therefore exactly its out-edges.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

import networkx as nx

from papergraph.graph.errors import ValidationError
from papergraph.graph.models import Entity, Relationship
from papergraph.graph.store import EndpointMatch, EntityStore, RelationshipStore

logger = logging.getLogger(__name__)


@dataclass
class LoadStats:
    """Statistics from building a working graph."""

    nodes_loaded: int = 0
    edges_loaded: int = 0
    relationships_loaded: int = 0
    missing_entities: int = 0
    dangling_relationships: int = 0
    store_calls: int = 0
    type_counts: dict[str, int] = field(default_factory=dict)
    predicate_counts: dict[str, int] = field(default_factory=dict)


def new_working_graph() -> nx.MultiDiGraph:
    graph = nx.MultiDiGraph()
    graph.graph["expanded"] = set()
    return graph


def traversable_edges(graph: nx.MultiDiGraph, node_id: str) -> list[tuple[str, Relationship, bool]]:
    """Out-edges of ``node_id`` in tie-break order.

    Returns ``(neighbor_id, relationship, reverse)`` triples sorted by
    confidence × strength descending, then neighbor id, then relationship id.
    """
    edges = [
        (v, data["relationship"], data["reverse"])
        for _, v, data in graph.out_edges(node_id, data=True)
    ]
    edges.sort(key=lambda e: (-e[1].score, e[0], e[1].id))
    return edges


def _walk_order(
    rels: Iterable[Relationship],
    frontier: list[str],
) -> list[tuple[str, str, Relationship]]:
    """``(node, neighbor, relationship)`` walks out of ``frontier``, in traversal order."""
    members = set(frontier)
    by_node: dict[str, list[tuple[str, Relationship]]] = {}
    for rel in rels:
        if rel.subject_id in members:
            by_node.setdefault(rel.subject_id, []).append((rel.other_end(rel.subject_id), rel))
        if rel.is_bidirectional and rel.object_id in members and rel.object_id != rel.subject_id:
            by_node.setdefault(rel.object_id, []).append((rel.other_end(rel.object_id), rel))

    walks = []
    for node in frontier:
        steps = sorted(by_node.get(node, []), key=lambda s: (-s[1].score, s[0], s[1].id))
        walks.extend((node, neighbor, rel) for neighbor, rel in steps)
    return walks


class GraphLoader:
    """Materialize bounded working graphs from the entity/relationship stores.

    Parameters
    ----------
    entities:
        Entity store handle.
    relationships:
        Relationship store handle.
    max_nodes:
        Hard ceiling on ``limit`` for overview loads, applied whatever the
        caller asks for.
    """

    def __init__(
        self,
        entities: EntityStore,
        relationships: RelationshipStore,
        max_nodes: int = 1000,
    ) -> None:
        self._entities = entities
        self._relationships = relationships
        self._max_nodes = max_nodes

    def load(
        self,
        entity_ids: Iterable[str] | None,
        limit: int,
    ) -> tuple[nx.MultiDiGraph, LoadStats]:
        """Build the graph induced by an id set, or by the top ``limit`` entities.

        Ids that the store does not know are skipped. Only relationships
        with both endpoints in the resolved set are loaded.
        """
        if limit < 1:
            raise ValidationError(f"limit must be positive, got {limit}", field="limit")

        graph = new_working_graph()
        stats = LoadStats()

        if entity_ids is None:
            limit = min(limit, self._max_nodes)
            entities = self._entities.fetch_top_by_connections(limit)
            stats.store_calls += 1
        else:
            requested = set(entity_ids)
            entities = self._entities.fetch_by_ids(requested) if requested else []
            stats.store_calls += 1 if requested else 0
            stats.missing_entities += len(requested - {e.id for e in entities})
            if len(entities) > limit:
                logger.warning(
                    "Id set of %d entities exceeds limit %d; keeping the first %d by id",
                    len(entities), limit, limit,
                )
                entities = sorted(entities, key=lambda e: e.id)[:limit]

        for entity in entities:
            self._add_node(graph, entity, stats)

        if graph.number_of_nodes():
            rels = self._relationships.fetch_by_endpoints(
                set(graph.nodes()), EndpointMatch.BOTH,
            )
            stats.store_calls += 1
            for rel in rels:
                self._add_relationship(graph, rel, stats)

        logger.debug(
            "Loaded working graph: %d nodes, %d relationships (%d missing ids)",
            stats.nodes_loaded, stats.relationships_loaded, stats.missing_entities,
        )
        return graph, stats

    def start(self, entities: Iterable[Entity]) -> tuple[nx.MultiDiGraph, LoadStats]:
        """A working graph holding only ``entities``, with no adjacency loaded yet."""
        graph = new_working_graph()
        stats = LoadStats()
        for entity in entities:
            self._add_node(graph, entity, stats)
        return graph, stats

    def expand_frontier(
        self,
        graph: nx.MultiDiGraph,
        frontier: Iterable[str],
        stats: LoadStats,
        budget: int | None = None,
    ) -> set[str]:
        """Load the traversable adjacency of ``frontier`` nodes into ``graph``.

        Fetches the relationships walkable from the frontier, then the
        entities on their far side, in the order a traversal meets them
        (frontier order, then tie-break order per node). At most ``budget``
        new entities are added; neighbors past the budget are left unfetched
        and their frontier nodes stay unexpanded. Relationships whose far
        entity is missing from the store are skipped. Returns the ids of
        nodes newly added.
        """
        expanded: set[str] = graph.graph.setdefault("expanded", set())
        pending = [n for n in dict.fromkeys(frontier) if n in graph and n not in expanded]
        if not pending:
            return set()

        rels = self._relationships.fetch_by_endpoints(pending, EndpointMatch.OUTGOING)
        stats.store_calls += 1

        walks = _walk_order(rels, pending)
        candidates = list(dict.fromkeys(
            neighbor for _, neighbor, _ in walks if neighbor not in graph
        ))
        added, deferred = self._fetch_neighbors(graph, candidates, budget, stats)

        for rel in rels:
            if rel.subject_id in deferred or rel.object_id in deferred:
                continue
            self._add_relationship(graph, rel, stats)

        if deferred:
            logger.debug(
                "Frontier of %d: fetched %d neighbors, deferred %d past budget %s",
                len(pending), len(added), len(deferred), budget,
            )
        short = {node for node, neighbor, _ in walks if neighbor in deferred}
        expanded.update(n for n in pending if n not in short)
        return added

    # -- Helpers -------------------------------------------------------------

    def _fetch_neighbors(
        self,
        graph: nx.MultiDiGraph,
        candidates: list[str],
        budget: int | None,
        stats: LoadStats,
    ) -> tuple[set[str], set[str]]:
        """Fetch ``candidates`` in order until ``budget`` of them are found.

        Ids missing from the store do not use up the budget, so a chunk that
        comes back short is followed by the next one. Returns the added ids
        and the ids never requested.
        """
        added: set[str] = set()
        remaining = len(candidates) if budget is None else max(0, budget)
        cursor = 0
        while remaining > 0 and cursor < len(candidates):
            chunk = candidates[cursor:cursor + remaining]
            cursor += len(chunk)
            fetched = self._entities.fetch_by_ids(chunk)
            stats.store_calls += 1
            stats.missing_entities += len(chunk) - len(fetched)
            for entity in fetched:
                self._add_node(graph, entity, stats)
                added.add(entity.id)
            remaining -= len(fetched)
        return added, set(candidates[cursor:])

    def _add_node(self, graph: nx.MultiDiGraph, entity: Entity, stats: LoadStats) -> None:
        if entity.id in graph:
            return
        graph.add_node(entity.id, entity=entity)
        stats.nodes_loaded += 1
        key = entity.type.value
        stats.type_counts[key] = stats.type_counts.get(key, 0) + 1

    def _add_relationship(
        self,
        graph: nx.MultiDiGraph,
        rel: Relationship,
        stats: LoadStats,
    ) -> None:
        if graph.has_edge(rel.subject_id, rel.object_id, key=rel.id):
            return
        if rel.subject_id not in graph or rel.object_id not in graph:
            stats.dangling_relationships += 1
            logger.debug(
                "Skipping relationship %s: endpoint not in store (%s → %s)",
                rel.id, rel.subject_id, rel.object_id,
            )
            return

        graph.add_edge(
            rel.subject_id, rel.object_id, key=rel.id,
            relationship=rel, score=rel.score, reverse=False,
        )
        stats.edges_loaded += 1
        if rel.is_bidirectional and rel.subject_id != rel.object_id:
            graph.add_edge(
                rel.object_id, rel.subject_id, key=rel.id,
                relationship=rel, score=rel.score, reverse=True,
            )
            stats.edges_loaded += 1

        stats.relationships_loaded += 1
        key = rel.predicate.value
        stats.predicate_counts[key] = stats.predicate_counts.get(key, 0) + 1
