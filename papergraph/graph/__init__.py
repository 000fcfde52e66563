"""papergraph query engine.

Builds bounded NetworkX working graphs from the entity and relationship
stores and answers the explorer's queries: overviews, search seeded into
a bounded neighborhood, and deterministic shortest paths.

Usage::

    from papergraph.graph import GraphQueryEngine, InMemoryGraphStore

    store = InMemoryGraphStore.from_json_file("snapshot.json")
    engine = GraphQueryEngine.from_store(store)

    overview = engine.get_graph(limit=100)
    found = engine.search_graph("BRCA1", entity_types=["gene"])
    path = engine.find_shortest_path("ent-brca1", "ent-olaparib")
"""

from papergraph.graph.engine import EngineLimits, GraphQueryEngine
from papergraph.graph.algorithms import PathFinder, SubgraphExpander
from papergraph.graph.formatter import ResultFormatter
from papergraph.graph.loader import GraphLoader
from papergraph.graph.seeder import SearchSeeder
from papergraph.graph.store import InMemoryGraphStore

__all__ = [
    "EngineLimits",
    "GraphQueryEngine",
    "PathFinder",
    "SubgraphExpander",
    "ResultFormatter",
    "GraphLoader",
    "SearchSeeder",
    "InMemoryGraphStore",
]
