"""Bounded traversals over the working graph.

Both algorithms are level-synchronous breadth-first searches that pull
adjacency from the stores one level at a time, so they only ever touch
the part of the graph they actually explore:

  - ``PathFinder``: minimum-hop path between two entities with a
    deterministic tie-break.
  - ``SubgraphExpander``: every entity within ``max_distance`` hops of the
    nearest seed.

Neither raises on running out of budget. Hitting the visited-node cap or
a caller deadline ends the search early and the result says so.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Iterable

import networkx as nx

from papergraph.graph.errors import EntityNotFound, ValidationError
from papergraph.graph.loader import GraphLoader, LoadStats, traversable_edges
from papergraph.graph.models import Entity, Relationship
from papergraph.graph.store import EntityStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass
class PathResult:
    """Shortest path between two entities."""
    source_id: str
    target_id: str
    length: int  # hop count == len(relationships)
    entities: list[Entity]
    relationships: list[Relationship]
    directions: list[str]  # "forward" or "reverse", per hop
    nodes_visited: int
    explanation: str

    def __bool__(self) -> bool:
        return True


@dataclass
class NoPath:
    """Target not reached. A normal outcome, not an error."""
    source_id: str
    target_id: str
    max_hops: int
    nodes_visited: int
    truncated: bool = False
    reason: str = "exhausted"  # exhausted, max_hops, node_cap, deadline

    def __bool__(self) -> bool:
        return False


@dataclass
class ExpansionResult:
    """Bounded neighborhood of a seed set."""
    graph: nx.MultiDiGraph
    distances: dict[str, int]
    seeds: list[str]
    max_distance: int
    truncated: bool = False
    truncation_reason: str = ""
    stats: LoadStats = field(default_factory=LoadStats)

    @property
    def node_count(self) -> int:
        return self.graph.number_of_nodes()

    @property
    def relationship_ids(self) -> set[str]:
        return {key for _, _, key in self.graph.edges(keys=True)}


def check_bound(value: int, name: str, minimum: int, ceiling: int) -> int:
    """Validate a caller-supplied hop bound and clamp it to ``ceiling``."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got {value!r}", field=name)
    if value < minimum:
        raise ValidationError(f"{name} must be >= {minimum}, got {value}", field=name)
    if value > ceiling:
        logger.debug("Clamping %s=%d to ceiling %d", name, value, ceiling)
        return ceiling
    return value


def _expired(deadline: float | None) -> bool:
    return deadline is not None and time.monotonic() >= deadline


# ---------------------------------------------------------------------------
# Shortest path
# ---------------------------------------------------------------------------


class PathFinder:
    """Minimum-hop path search between two entities.

    When several minimum-hop paths exist, the one returned prefers, hop by
    hop from the source, the edge with the highest confidence × strength,
    then the smallest neighbor id. Frontier nodes are processed in the
    order they were discovered and a node keeps the first parent that
    reached it, which makes the answer reproducible for a given snapshot.

    Parameters
    ----------
    loader:
        Working graph loader.
    entities:
        Entity store, used for the up-front endpoint existence check.
    max_hops_ceiling:
        Engine-wide maximum for ``max_hops``.
    visited_node_cap:
        Search stops with ``NoPath(truncated=True)`` past this many nodes.
    """

    def __init__(
        self,
        loader: GraphLoader,
        entities: EntityStore,
        max_hops_ceiling: int = 8,
        visited_node_cap: int = 5000,
    ) -> None:
        self._loader = loader
        self._entities = entities
        self._ceiling = max_hops_ceiling
        self._cap = visited_node_cap

    def find_path(
        self,
        source_id: str,
        target_id: str,
        max_hops: int = 5,
        deadline: float | None = None,
    ) -> PathResult | NoPath:
        max_hops = check_bound(max_hops, "maxHops", 1, self._ceiling)

        endpoints = self._entities.fetch_by_ids({source_id, target_id})
        found = {e.id: e for e in endpoints}
        missing = {source_id, target_id} - set(found)
        if missing:
            raise EntityNotFound(missing)

        if source_id == target_id:
            entity = found[source_id]
            return PathResult(
                source_id=source_id,
                target_id=target_id,
                length=0,
                entities=[entity],
                relationships=[],
                directions=[],
                nodes_visited=1,
                explanation=f"{entity.name} is both endpoints.",
            )

        graph, stats = self._loader.start(endpoints)
        parents: dict[str, tuple[str, Relationship, bool] | None] = {source_id: None}
        frontier = [source_id]
        depth = 0

        while frontier and depth < max_hops:
            if _expired(deadline):
                logger.warning("Path search %s → %s hit deadline at depth %d",
                               source_id, target_id, depth)
                return self._no_path(source_id, target_id, max_hops, parents, "deadline")

            self._loader.expand_frontier(
                graph, frontier, stats, budget=self._cap - len(parents) + 1,
            )
            next_frontier: list[str] = []
            for node in frontier:
                for neighbor, rel, reverse in traversable_edges(graph, node):
                    if neighbor in parents:
                        continue
                    parents[neighbor] = (node, rel, reverse)
                    if neighbor == target_id:
                        return self._build_path(graph, source_id, target_id, parents)
                    if len(parents) > self._cap:
                        logger.warning(
                            "Path search %s → %s truncated at %d visited nodes",
                            source_id, target_id, self._cap,
                        )
                        return self._no_path(source_id, target_id, max_hops, parents, "node_cap")
                    next_frontier.append(neighbor)
            frontier = next_frontier
            depth += 1

        reason = "max_hops" if frontier else "exhausted"
        return self._no_path(source_id, target_id, max_hops, parents, reason)

    def _no_path(
        self,
        source_id: str,
        target_id: str,
        max_hops: int,
        parents: dict,
        reason: str,
    ) -> NoPath:
        return NoPath(
            source_id=source_id,
            target_id=target_id,
            max_hops=max_hops,
            nodes_visited=len(parents),
            truncated=reason in ("node_cap", "deadline"),
            reason=reason,
        )

    def _build_path(
        self,
        graph: nx.MultiDiGraph,
        source_id: str,
        target_id: str,
        parents: dict[str, tuple[str, Relationship, bool] | None],
    ) -> PathResult:
        node_ids = [target_id]
        rels: list[Relationship] = []
        directions: list[str] = []
        step = parents[target_id]
        while step is not None:
            prev, rel, reverse = step
            node_ids.append(prev)
            rels.append(rel)
            directions.append("reverse" if reverse else "forward")
            step = parents[prev]
        node_ids.reverse()
        rels.reverse()
        directions.reverse()

        entities = [graph.nodes[n]["entity"] for n in node_ids]
        explanation = (
            f"Connection from {entities[0].name} to {entities[-1].name} "
            f"through {len(entities) - 2} intermediaries"
        )
        if len(entities) > 2:
            explanation += f": {' → '.join(e.name for e in entities[1:-1])}"
        explanation += "."

        return PathResult(
            source_id=source_id,
            target_id=target_id,
            length=len(rels),
            entities=entities,
            relationships=rels,
            directions=directions,
            nodes_visited=len(parents),
            explanation=explanation,
        )


# ---------------------------------------------------------------------------
# Bounded neighborhood
# ---------------------------------------------------------------------------


class SubgraphExpander:
    """Multi-source bounded-distance neighborhood.

    Each reachable entity's distance is its hop count to the nearest seed,
    with seeds at 0. The result holds every entity within ``max_distance``
    and every relationship whose two endpoints are both held, so growing
    ``max_distance`` can only add nodes and edges.
    """

    def __init__(
        self,
        loader: GraphLoader,
        entities: EntityStore,
        max_distance_ceiling: int = 4,
        visited_node_cap: int = 5000,
    ) -> None:
        self._loader = loader
        self._entities = entities
        self._ceiling = max_distance_ceiling
        self._cap = visited_node_cap

    def expand(
        self,
        seeds: Iterable[str],
        max_distance: int,
        deadline: float | None = None,
    ) -> ExpansionResult:
        max_distance = check_bound(max_distance, "maxDistance", 0, self._ceiling)
        requested = set(seeds)

        found = self._entities.fetch_by_ids(requested) if requested else []
        graph, stats = self._loader.start(found)
        stats.store_calls += 1 if requested else 0
        stats.missing_entities += len(requested - {e.id for e in found})

        frontier = sorted(e.id for e in found)
        distances: dict[str, int] = {seed: 0 for seed in frontier}
        truncated = False
        reason = ""
        depth = 0

        while frontier and depth < max_distance and not truncated:
            if _expired(deadline):
                truncated, reason = True, "deadline"
                break

            self._loader.expand_frontier(
                graph, frontier, stats, budget=self._cap - len(distances) + 1,
            )
            next_frontier: list[str] = []
            for node in frontier:
                for neighbor, _, _ in traversable_edges(graph, node):
                    if neighbor in distances:
                        continue
                    if len(distances) >= self._cap:
                        truncated, reason = True, "node_cap"
                        break
                    distances[neighbor] = depth + 1
                    next_frontier.append(neighbor)
                if truncated:
                    break
            frontier = next_frontier
            depth += 1

        if truncated:
            logger.warning(
                "Expansion from %d seeds truncated (%s) at depth %d with %d nodes",
                len(found), reason, depth, len(distances),
            )

        result_graph, result_stats = self._loader.load(set(distances), max(1, len(distances)))
        result_stats.store_calls += stats.store_calls
        result_stats.missing_entities += stats.missing_entities
        result_stats.dangling_relationships += stats.dangling_relationships

        return ExpansionResult(
            graph=result_graph,
            distances={n: d for n, d in distances.items() if n in result_graph},
            seeds=sorted(e.id for e in found),
            max_distance=max_distance,
            truncated=truncated,
            truncation_reason=reason,
            stats=result_stats,
        )
