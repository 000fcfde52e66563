"""Free-text query → ranked seed entity ids."""

from __future__ import annotations

import logging
from typing import Iterable

from papergraph.graph.errors import ValidationError
from papergraph.graph.models import Entity, EntityType
from papergraph.graph.store import EntityStore

logger = logging.getLogger(__name__)


def match_rank(entity: Entity, needle: str) -> int:
    """How well ``entity`` matches a lowercased query. Lower is better."""
    name = entity.name.lower()
    if name == needle:
        return 0
    if name.startswith(needle):
        return 1
    if needle in name:
        return 2
    aliases = [a.lower() for a in entity.aliases]
    if needle in aliases:
        return 3
    return 4


class SearchSeeder:
    """Resolve a query and optional type filter into seed entity ids.

    Matching is a case-insensitive substring test on name and aliases,
    delegated to the store's text index. Ranking favours exact name hits,
    then name prefixes, then other name hits, then alias hits; ties go to
    the entity cited by more papers, then to the smaller id.

    Parameters
    ----------
    entities:
        Entity store handle.
    max_seeds:
        Cap on the number of ids returned.
    candidate_factor:
        How many candidates per seed slot to pull from the store before
        ranking.
    """

    def __init__(
        self,
        entities: EntityStore,
        max_seeds: int = 50,
        candidate_factor: int = 10,
    ) -> None:
        self._entities = entities
        self._max_seeds = max_seeds
        self._candidate_factor = candidate_factor

    def seed(
        self,
        query: str,
        types: Iterable[EntityType | str] | None = None,
    ) -> list[str]:
        needle = normalize_query(query)
        wanted = parse_types(types)

        candidates = self._entities.search_by_name_or_alias(
            needle,
            wanted or None,
            limit=self._max_seeds * self._candidate_factor,
        )
        ranked = sorted(
            candidates,
            key=lambda e: (match_rank(e, needle), -e.paper_count, e.id),
        )
        seeds = [e.id for e in ranked[:self._max_seeds]]
        logger.debug("Query %r matched %d entities, seeding %d", needle, len(candidates), len(seeds))
        return seeds


def normalize_query(query: str | None) -> str:
    """Lowercase and trim a search string, rejecting empty ones."""
    if query is None or not str(query).strip():
        raise ValidationError("query is required", field="query")
    return str(query).strip().lower()


def parse_types(types: Iterable[EntityType | str] | None) -> set[EntityType]:
    if not types:
        return set()
    if isinstance(types, str):
        types = [types]
    try:
        return {EntityType.parse(t) for t in types}
    except ValueError as e:
        raise ValidationError(str(e), field="entityTypes") from e
