"""papergraph — query layer for a scientific paper knowledge graph."""

__version__ = "0.3.0"
