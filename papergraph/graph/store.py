"""Store contracts consumed by the query layer, plus an in-memory snapshot.

The production stores live with the ingestion pipeline. The engine only
needs the read operations declared by the protocols below, and it receives
store handles explicitly so tests can hand it isolated fakes.

``InMemoryGraphStore`` implements all three protocols over a snapshot held
in dicts. It backs the CLI, the default HTTP app and the test-suite. Once
populated it is only read, so concurrent queries need no locking.
"""

from __future__ import annotations

import enum
import json
import logging
from pathlib import Path
from typing import Any, Iterable, Protocol

from papergraph.graph.errors import StoreUnavailable
from papergraph.graph.models import Entity, EntityType, Predicate, Relationship

logger = logging.getLogger(__name__)


class EndpointMatch(str, enum.Enum):
    """How ``fetch_by_endpoints`` matches relationship endpoints."""
    BOTH = "both"           # subject and object both in the id set
    OUTGOING = "outgoing"   # walkable: subject in the id set, or bidirectional with object in it


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


class EntityStore(Protocol):
    def fetch_by_ids(self, ids: Iterable[str]) -> list[Entity]: ...

    def fetch_top_by_connections(self, limit: int) -> list[Entity]: ...

    def search_by_name_or_alias(
        self,
        query: str,
        types: Iterable[EntityType] | None = None,
        limit: int | None = None,
    ) -> list[Entity]: ...

    def count_all(self) -> int: ...

    def list_page(
        self,
        type_filter: EntityType | None,
        search_filter: str | None,
        offset: int,
        limit: int,
    ) -> tuple[list[Entity], int]: ...


class RelationshipStore(Protocol):
    def fetch_by_endpoints(
        self,
        ids: Iterable[str],
        match: EndpointMatch = EndpointMatch.BOTH,
    ) -> list[Relationship]: ...

    def count_all(self) -> int: ...


class PaperStore(Protocol):
    def count_all(self) -> int: ...


def connection_rank(entity: Entity) -> tuple[int, int, str]:
    """Sort key: most papers first, then most mentions, then id."""
    return (-entity.paper_count, -entity.mention_total, entity.id)


# ---------------------------------------------------------------------------
# In-memory snapshot
# ---------------------------------------------------------------------------


class InMemoryGraphStore:
    """Entity, relationship and paper store over an in-memory snapshot.

    Enforces the store invariants on insert: entity names and
    (subject, predicate, object) triples are unique. Relationship endpoints
    are not checked, because a snapshot taken mid-ingestion can legitimately
    reference entities that have not landed yet.
    """

    def __init__(self) -> None:
        self._entities: dict[str, Entity] = {}
        self._names: dict[str, str] = {}
        self._relationships: dict[str, Relationship] = {}
        self._triples: set[tuple[str, Predicate, str]] = set()
        self._by_endpoint: dict[str, set[str]] = {}
        self._paper_ids: set[str] = set()

    # -- Population ----------------------------------------------------------

    def add_entity(self, entity: Entity) -> None:
        if not entity.id:
            raise ValueError("Entity id is required")
        owner = self._names.get(entity.name)
        if owner is not None and owner != entity.id:
            raise ValueError(f"Duplicate entity name {entity.name!r}")
        previous = self._entities.get(entity.id)
        if previous is not None and previous.name != entity.name:
            self._names.pop(previous.name, None)
        self._entities[entity.id] = entity
        self._names[entity.name] = entity.id

    def add_relationship(self, relationship: Relationship) -> None:
        if not relationship.id:
            raise ValueError("Relationship id is required")
        triple = relationship.triple
        if triple in self._triples and relationship.id not in self._relationships:
            raise ValueError(f"Duplicate relationship {triple!r}")
        self._relationships[relationship.id] = relationship
        self._triples.add(triple)
        for endpoint in (relationship.subject_id, relationship.object_id):
            self._by_endpoint.setdefault(endpoint, set()).add(relationship.id)

    def add_paper(self, paper_id: str) -> None:
        self._paper_ids.add(paper_id)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InMemoryGraphStore:
        """Build a store from ``{entities, relationships, papers}`` records."""
        store = cls()
        for record in data.get("entities", []):
            store.add_entity(Entity.from_dict(record))
        for record in data.get("relationships", []):
            store.add_relationship(Relationship.from_dict(record))
        for record in data.get("papers", []):
            paper_id = record if isinstance(record, str) else record.get("id", record.get("_id"))
            if paper_id:
                store.add_paper(str(paper_id))
        logger.info(
            "Snapshot loaded: %d entities, %d relationships, %d papers",
            len(store._entities), len(store._relationships), store.paper_count(),
        )
        return store

    @classmethod
    def from_json_file(cls, path: str | Path) -> InMemoryGraphStore:
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except OSError as e:
            raise StoreUnavailable("snapshot", f"cannot read {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise StoreUnavailable("snapshot", f"invalid JSON in {path}: {e}") from e
        return cls.from_dict(data)

    # -- EntityStore ---------------------------------------------------------

    def fetch_by_ids(self, ids: Iterable[str]) -> list[Entity]:
        found = [self._entities[i] for i in set(ids) if i in self._entities]
        return sorted(found, key=lambda e: e.id)

    def fetch_top_by_connections(self, limit: int) -> list[Entity]:
        return sorted(self._entities.values(), key=connection_rank)[:max(0, limit)]

    def search_by_name_or_alias(
        self,
        query: str,
        types: Iterable[EntityType] | None = None,
        limit: int | None = None,
    ) -> list[Entity]:
        wanted = {EntityType.parse(t) for t in types} if types else None
        matches = [
            e for e in self._entities.values()
            if (wanted is None or e.type in wanted) and e.matches(query)
        ]
        matches.sort(key=connection_rank)
        return matches if limit is None else matches[:limit]

    def count_all(self) -> int:
        return len(self._entities)

    def list_page(
        self,
        type_filter: EntityType | None,
        search_filter: str | None,
        offset: int,
        limit: int,
    ) -> tuple[list[Entity], int]:
        rows = [
            e for e in self._entities.values()
            if (type_filter is None or e.type == type_filter)
            and (not search_filter or e.matches(search_filter))
        ]
        rows.sort(key=connection_rank)
        return rows[offset:offset + limit], len(rows)

    # -- RelationshipStore ---------------------------------------------------

    @property
    def relationships(self) -> RelationshipStore:
        return _RelationshipView(self)

    @property
    def papers(self) -> PaperStore:
        return _PaperView(self)

    def fetch_by_endpoints(
        self,
        ids: Iterable[str],
        match: EndpointMatch = EndpointMatch.BOTH,
    ) -> list[Relationship]:
        id_set = set(ids)
        rel_ids: set[str] = set()
        for entity_id in id_set:
            rel_ids |= self._by_endpoint.get(entity_id, set())
        found = []
        for rel_id in rel_ids:
            rel = self._relationships[rel_id]
            if match is EndpointMatch.BOTH and not (
                rel.subject_id in id_set and rel.object_id in id_set
            ):
                continue
            if match is EndpointMatch.OUTGOING and not (
                rel.subject_id in id_set
                or (rel.is_bidirectional and rel.object_id in id_set)
            ):
                continue
            found.append(rel)
        return sorted(found, key=lambda r: r.id)

    def relationship_count(self) -> int:
        return len(self._relationships)

    # -- PaperStore ----------------------------------------------------------

    def paper_count(self) -> int:
        """Registered papers, or distinct papers cited by entities if none."""
        if self._paper_ids:
            return len(self._paper_ids)
        return len({p.paper_id for e in self._entities.values() for p in e.papers})


class _RelationshipView:
    """``RelationshipStore`` facade over an ``InMemoryGraphStore``."""

    def __init__(self, store: InMemoryGraphStore) -> None:
        self._store = store

    def fetch_by_endpoints(
        self,
        ids: Iterable[str],
        match: EndpointMatch = EndpointMatch.BOTH,
    ) -> list[Relationship]:
        return self._store.fetch_by_endpoints(ids, match)

    def count_all(self) -> int:
        return self._store.relationship_count()


class _PaperView:
    def __init__(self, store: InMemoryGraphStore) -> None:
        self._store = store

    def count_all(self) -> int:
        return self._store.paper_count()
