"""Working graph → visualization view model.

Produces the ``{nodes, links, stats}`` shape the graph explorer renders
(a D3/force-graph style node-link document). Formatting is a pure
transform of what the query already loaded: it never touches a store, and
store-wide totals have to be handed in by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import networkx as nx

from papergraph.graph.algorithms import PathResult
from papergraph.graph.models import Entity, EntityType, Relationship

# Entity type → node color used by the graph explorer
TYPE_COLORS: dict[EntityType, str] = {
    EntityType.PROTEIN: "#00E5FF",
    EntityType.GENE: "#7C4DFF",
    EntityType.DISEASE: "#FF6B35",
    EntityType.DRUG: "#4CAF50",
    EntityType.ORGANISM: "#8D6E63",
    EntityType.CELL_TYPE: "#FF4081",
    EntityType.TISSUE: "#F06292",
    EntityType.PATHWAY: "#FFD700",
    EntityType.CONCEPT: "#26A69A",
    EntityType.METHOD: "#5C6BC0",
    EntityType.OTHER: "#9E9E9E",
}


@dataclass
class GraphStats:
    """Store-wide totals, independent of the subset being returned."""
    total_entities: int = 0
    total_relationships: int = 0
    total_papers: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "totalEntities": self.total_entities,
            "totalRelationships": self.total_relationships,
            "totalPapers": self.total_papers,
        }


@dataclass
class ViewGraph:
    """Node-link document ready for rendering."""
    nodes: list[dict[str, Any]] = field(default_factory=list)
    links: list[dict[str, Any]] = field(default_factory=list)
    stats: GraphStats | None = None
    truncated: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"nodes": self.nodes, "links": self.links}
        if self.stats is not None:
            data["stats"] = self.stats.to_dict()
        if self.truncated:
            data["truncated"] = True
        return data


def node_view(entity: Entity) -> dict[str, Any]:
    return {
        "id": entity.id,
        "name": entity.name,
        "type": entity.type.value,
        "size": entity.paper_count,
        "confidence": entity.confidence,
        "color": TYPE_COLORS[entity.type],
    }


def link_view(rel: Relationship) -> dict[str, Any]:
    return {
        "id": rel.id,
        "source": rel.subject_id,
        "target": rel.object_id,
        "predicate": rel.predicate.value,
        "confidence": rel.confidence,
        "strength": rel.strength,
        "direction": rel.direction.value,
    }


class ResultFormatter:
    """Shape working graphs and paths for the explorer."""

    def format(
        self,
        graph: nx.MultiDiGraph,
        stats: GraphStats | None = None,
        *,
        min_confidence: float = 0.0,
        truncated: bool = False,
    ) -> ViewGraph:
        nodes = [
            node_view(data["entity"])
            for _, data in sorted(graph.nodes(data=True), key=lambda n: n[0])
        ]

        # Mirrored edges of bidirectional relationships collapse to one link
        links = [
            link_view(data["relationship"])
            for _, _, data in graph.edges(data=True)
            if not data["reverse"] and data["relationship"].confidence >= min_confidence
        ]
        links.sort(key=lambda l: (l["source"], l["target"], l["predicate"], l["id"]))

        return ViewGraph(nodes=nodes, links=links, stats=stats, truncated=truncated)

    def format_path(self, result: PathResult) -> dict[str, Any]:
        """Alternating entity / relationship items, source first."""
        items: list[dict[str, Any]] = []
        for i, entity in enumerate(result.entities):
            items.append({"kind": "entity", **node_view(entity)})
            if i < result.length:
                items.append({
                    "kind": "relationship",
                    **link_view(result.relationships[i]),
                    "traversed": result.directions[i],
                })
        return {
            "path": items,
            "length": result.length,
            "explanation": result.explanation,
        }
