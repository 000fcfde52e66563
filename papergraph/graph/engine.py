"""Graph query engine — high-level orchestrator.

Wires the loader, seeder, traversal algorithms and formatter into the
four queries the explorer needs. The engine holds only store handles and
limits; every call builds its own working graph, so one instance can
serve concurrent requests from many threads.

Usage::

    store = InMemoryGraphStore.from_json_file("snapshot.json")
    engine = GraphQueryEngine.from_store(store)

    overview = engine.get_graph(limit=200)
    hits = engine.search_graph("p53", entity_types=["protein"], max_distance=2)
    path = engine.find_shortest_path("ent-tp53", "ent-cisplatin", max_hops=4)
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Iterable

from papergraph.config.settings import Settings, settings as default_settings
from papergraph.graph.algorithms import PathFinder, SubgraphExpander, check_bound
from papergraph.graph.errors import ValidationError
from papergraph.graph.formatter import GraphStats, ResultFormatter
from papergraph.graph.loader import GraphLoader
from papergraph.graph.models import EntityType
from papergraph.graph.seeder import SearchSeeder, parse_types
from papergraph.graph.store import (
    EntityStore,
    InMemoryGraphStore,
    PaperStore,
    RelationshipStore,
)

logger = logging.getLogger(__name__)

NO_ENTITIES_MESSAGE = "no entities found"
NO_PATH_MESSAGE = "no path found"
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class EngineLimits:
    """Engine-wide ceilings applied to every caller-supplied bound."""

    graph_limit_default: int = 100
    graph_limit_max: int = 1000
    max_seeds: int = 50
    default_max_distance: int = 2
    max_distance_ceiling: int = 4
    default_max_hops: int = 5
    max_hops_ceiling: int = 8
    visited_node_cap: int = 5000
    query_timeout_seconds: float = 0.0

    @classmethod
    def from_settings(cls, cfg: Settings) -> EngineLimits:
        return cls(
            graph_limit_default=cfg.GRAPH_LIMIT_DEFAULT,
            graph_limit_max=cfg.GRAPH_LIMIT_MAX,
            max_seeds=cfg.MAX_SEEDS,
            default_max_distance=cfg.DEFAULT_MAX_DISTANCE,
            max_distance_ceiling=cfg.MAX_DISTANCE_CEILING,
            default_max_hops=cfg.DEFAULT_MAX_HOPS,
            max_hops_ceiling=cfg.MAX_HOPS_CEILING,
            visited_node_cap=cfg.VISITED_NODE_CAP,
            query_timeout_seconds=cfg.QUERY_TIMEOUT_SECONDS,
        )


class GraphQueryEngine:
    """Read-only queries over the paper knowledge graph.

    Parameters
    ----------
    entities, relationships, papers:
        Store handles. They must tolerate concurrent reads.
    limits:
        Ceilings and caps. Defaults to the values in ``Settings``.
    """

    def __init__(
        self,
        entities: EntityStore,
        relationships: RelationshipStore,
        papers: PaperStore,
        limits: EngineLimits | None = None,
    ) -> None:
        self._entities = entities
        self._relationships = relationships
        self._papers = papers
        self.limits = limits or EngineLimits.from_settings(default_settings)

        self._loader = GraphLoader(
            entities, relationships, max_nodes=self.limits.graph_limit_max,
        )
        self._seeder = SearchSeeder(entities, max_seeds=self.limits.max_seeds)
        self._path_finder = PathFinder(
            self._loader, entities,
            max_hops_ceiling=self.limits.max_hops_ceiling,
            visited_node_cap=self.limits.visited_node_cap,
        )
        self._expander = SubgraphExpander(
            self._loader, entities,
            max_distance_ceiling=self.limits.max_distance_ceiling,
            visited_node_cap=self.limits.visited_node_cap,
        )
        self._formatter = ResultFormatter()

    @classmethod
    def from_store(
        cls,
        store: InMemoryGraphStore,
        limits: EngineLimits | None = None,
    ) -> GraphQueryEngine:
        return cls(store, store.relationships, store.papers, limits=limits)

    # -- Overview ------------------------------------------------------------

    def get_graph(self, limit: int | None = None) -> dict[str, Any]:
        """The best-connected ``limit`` entities and the links among them."""
        if limit is None:
            limit = self.limits.graph_limit_default
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationError(f"limit must be a positive integer, got {limit!r}", field="limit")

        graph, _ = self._loader.load(None, limit)
        view = self._formatter.format(graph, self._totals())

        logger.info(
            "Overview: %d nodes, %d links (limit %d)",
            len(view.nodes), len(view.links), min(limit, self.limits.graph_limit_max),
        )
        return view.to_dict()

    # -- Search --------------------------------------------------------------

    def search_graph(
        self,
        query: str,
        entity_types: Iterable[EntityType | str] | None = None,
        max_distance: int | None = None,
        deadline: float | None = None,
    ) -> dict[str, Any]:
        """Neighborhood of the entities matching ``query``."""
        if max_distance is None:
            max_distance = self.limits.default_max_distance
        check_bound(max_distance, "maxDistance", 0, self.limits.max_distance_ceiling)
        parse_types(entity_types)

        seeds = self._seeder.seed(query, entity_types)
        if not seeds:
            logger.info("Search %r: no entities found", query)
            return {"nodes": [], "links": [], "message": NO_ENTITIES_MESSAGE}

        result = self._expander.expand(seeds, max_distance, self._deadline(deadline))
        view = self._formatter.format(result.graph, truncated=result.truncated)

        logger.info(
            "Search %r: %d seeds → %d nodes, %d links%s",
            query, len(result.seeds), len(view.nodes), len(view.links),
            " (truncated)" if result.truncated else "",
        )
        data = view.to_dict()
        data["seeds"] = result.seeds
        data["truncated"] = result.truncated
        if result.truncated:
            data["truncationReason"] = result.truncation_reason
        return data

    # -- Shortest path -------------------------------------------------------

    def find_shortest_path(
        self,
        from_id: str,
        to_id: str,
        max_hops: int | None = None,
        deadline: float | None = None,
    ) -> dict[str, Any]:
        """Minimum-hop path between two entities, or a no-path message."""
        if max_hops is None:
            max_hops = self.limits.default_max_hops

        result = self._path_finder.find_path(
            from_id, to_id, max_hops, self._deadline(deadline),
        )
        if not result:
            logger.info(
                "Path %s → %s: none within %d hops (%s, %d visited)",
                from_id, to_id, result.max_hops, result.reason, result.nodes_visited,
            )
            return {
                "message": NO_PATH_MESSAGE,
                "maxHops": result.max_hops,
                "nodesVisited": result.nodes_visited,
                "truncated": result.truncated,
                "reason": result.reason,
            }

        logger.info("Path %s → %s: %d hops", from_id, to_id, result.length)
        data = self._formatter.format_path(result)
        data["nodesVisited"] = result.nodes_visited
        return data

    # -- Expansion -----------------------------------------------------------

    def expand(
        self,
        seeds: Iterable[str],
        max_distance: int | None = None,
        deadline: float | None = None,
    ) -> dict[str, Any]:
        """Neighborhood of an explicit seed id list."""
        if max_distance is None:
            max_distance = self.limits.default_max_distance
        seed_ids = sorted({s for s in seeds if s})
        if not seed_ids:
            raise ValidationError("at least one seed id is required", field="seeds")
        if len(seed_ids) > self.limits.max_seeds:
            raise ValidationError(
                f"at most {self.limits.max_seeds} seeds allowed, got {len(seed_ids)}",
                field="seeds",
            )

        result = self._expander.expand(seed_ids, max_distance, self._deadline(deadline))
        if not result.seeds:
            logger.info("Expand %s: no seed is in the store", seed_ids)
            return {"nodes": [], "links": [], "message": NO_ENTITIES_MESSAGE}

        view = self._formatter.format(result.graph, truncated=result.truncated)
        logger.info(
            "Expand %d seeds → %d nodes, %d links%s",
            len(result.seeds), result.node_count, len(view.links),
            " (truncated)" if result.truncated else "",
        )

        data = view.to_dict()
        data["seeds"] = result.seeds
        data["distances"] = dict(sorted(result.distances.items()))
        data["truncated"] = result.truncated
        if result.truncated:
            data["truncationReason"] = result.truncation_reason
        return data

    # -- Entity listing ------------------------------------------------------

    def list_entities(
        self,
        type_filter: EntityType | str | None = None,
        search_filter: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict[str, Any]:
        """Paged entity listing, most-cited first."""
        if page < 1:
            raise ValidationError(f"page must be >= 1, got {page}", field="page")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(
                f"limit must be between 1 and {MAX_PAGE_SIZE}, got {limit}", field="limit",
            )
        etype = None
        if type_filter:
            etype = next(iter(parse_types([type_filter])))

        entities, total = self._entities.list_page(
            etype, (search_filter or "").strip() or None, (page - 1) * limit, limit,
        )
        return {
            "entities": [e.to_dict() for e in entities],
            "pagination": {
                "current": page,
                "pages": math.ceil(total / limit),
                "total": total,
            },
        }

    # -- Helpers -------------------------------------------------------------

    def _totals(self) -> GraphStats:
        return GraphStats(
            total_entities=self._entities.count_all(),
            total_relationships=self._relationships.count_all(),
            total_papers=self._papers.count_all(),
        )

    def _deadline(self, caller_deadline: float | None) -> float | None:
        """Earlier of the caller's deadline and the configured query timeout."""
        deadlines = []
        if caller_deadline is not None:
            deadlines.append(caller_deadline)
        if self.limits.query_timeout_seconds > 0:
            deadlines.append(time.monotonic() + self.limits.query_timeout_seconds)
        return min(deadlines) if deadlines else None
