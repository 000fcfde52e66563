"""Entity and relationship records read from the paper stores.

Ingestion extracts these from papers and owns every write; the query layer
only ever sees them as frozen snapshot values. Relationships refer to
entities by id (an id-keyed entity table plus an edge list), so edges never
hold entity objects.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any


# ---------------------------------------------------------------------------
# Closed vocabularies
# ---------------------------------------------------------------------------


class _Vocabulary(str, enum.Enum):
    """String enum that parses case-insensitively ("PROTEIN" → protein)."""

    @classmethod
    def parse(cls, value: Any) -> Any:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise ValueError(
                f"Unknown {cls.__name__} {value!r} (expected one of: {allowed})"
            ) from None


class EntityType(_Vocabulary):
    PROTEIN = "protein"
    GENE = "gene"
    DISEASE = "disease"
    DRUG = "drug"
    ORGANISM = "organism"
    CELL_TYPE = "cell_type"
    TISSUE = "tissue"
    PATHWAY = "pathway"
    CONCEPT = "concept"
    METHOD = "method"
    OTHER = "other"


class Predicate(_Vocabulary):
    INTERACTS_WITH = "interacts_with"
    REGULATES = "regulates"
    INHIBITS = "inhibits"
    ACTIVATES = "activates"
    BINDS_TO = "binds_to"
    LOCATED_IN = "located_in"
    PART_OF = "part_of"
    CAUSES = "causes"
    TREATS = "treats"
    ASSOCIATED_WITH = "associated_with"
    SIMILAR_TO = "similar_to"
    EXPRESSED_IN = "expressed_in"
    METABOLIZES = "metabolizes"
    SYNTHESIZES = "synthesizes"


class Direction(_Vocabulary):
    BIDIRECTIONAL = "bidirectional"
    UNIDIRECTIONAL = "unidirectional"


def _clamp(value: Any, default: float) -> float:
    if value is None:
        return default
    return min(1.0, max(0.0, float(value)))


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PaperMention:
    """How often an entity is mentioned in one source paper."""
    paper_id: str
    mention_count: int = 1
    contexts: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PaperMention:
        return cls(
            paper_id=str(data.get("paper_id", data.get("paperId", ""))),
            mention_count=int(data.get("mention_count", data.get("mentionCount", 1))),
            contexts=tuple(data.get("contexts", ())),
        )


@dataclass(frozen=True)
class Evidence:
    """A sentence in a source paper supporting a relationship."""
    paper_id: str
    sentence: str = ""
    position: tuple[int, int] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Evidence:
        pos = data.get("position")
        position = None
        if isinstance(pos, dict) and "start" in pos and "end" in pos:
            position = (int(pos["start"]), int(pos["end"]))
        elif isinstance(pos, (list, tuple)) and len(pos) == 2:
            position = (int(pos[0]), int(pos[1]))
        return cls(
            paper_id=str(data.get("paper_id", data.get("paperId", ""))),
            sentence=data.get("sentence", ""),
            position=position,
        )


@dataclass(frozen=True)
class Entity:
    """A typed, named scientific concept.

    ``name`` is unique within a store. ``confidence`` is clamped to [0, 1].
    """

    id: str
    name: str
    type: EntityType = EntityType.OTHER
    aliases: frozenset[str] = frozenset()
    confidence: float = 0.5
    papers: tuple[PaperMention, ...] = ()
    verified: bool = False
    description: str = ""
    external_ids: dict[str, str] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", EntityType.parse(self.type))
        object.__setattr__(self, "aliases", frozenset(self.aliases))
        object.__setattr__(self, "confidence", _clamp(self.confidence, 0.5))
        object.__setattr__(self, "papers", tuple(self.papers))

    @property
    def paper_count(self) -> int:
        """Number of distinct papers mentioning this entity."""
        return len({p.paper_id for p in self.papers})

    @property
    def mention_total(self) -> int:
        return sum(p.mention_count for p in self.papers)

    def matches(self, needle: str) -> bool:
        """Case-insensitive substring match on name or any alias."""
        needle = needle.lower()
        if needle in self.name.lower():
            return True
        return any(needle in alias.lower() for alias in self.aliases)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Entity:
        return cls(
            id=str(data.get("id", data.get("_id", ""))),
            name=data["name"],
            type=data.get("type", EntityType.OTHER),
            aliases=frozenset(data.get("aliases", ())),
            confidence=data.get("confidence", 0.5),
            papers=tuple(PaperMention.from_dict(p) for p in data.get("papers", ())),
            verified=bool(data.get("verified", data.get("isVerified", False))),
            description=data.get("description", "") or "",
            external_ids={
                k: v for k, v in (data.get("external_ids") or data.get("externalIds") or {}).items()
                if v
            },
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "aliases": sorted(self.aliases),
            "confidence": self.confidence,
            "papers": [
                {"paper_id": p.paper_id, "mention_count": p.mention_count}
                for p in self.papers
            ],
            "paper_count": self.paper_count,
            "verified": self.verified,
            "description": self.description,
            "external_ids": dict(self.external_ids),
        }


@dataclass(frozen=True)
class Relationship:
    """A typed, confidence-scored edge between two entity ids.

    The (subject, predicate, object) triple is unique within a store.
    ``confidence`` and ``strength`` are clamped to [0, 1].
    """

    id: str
    subject_id: str
    predicate: Predicate
    object_id: str
    confidence: float
    strength: float = 0.5
    direction: Direction = Direction.UNIDIRECTIONAL
    evidence: tuple[Evidence, ...] = ()
    verified: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "predicate", Predicate.parse(self.predicate))
        object.__setattr__(self, "direction", Direction.parse(self.direction))
        object.__setattr__(self, "confidence", _clamp(self.confidence, 0.0))
        object.__setattr__(self, "strength", _clamp(self.strength, 0.5))
        object.__setattr__(self, "evidence", tuple(self.evidence))

    @property
    def score(self) -> float:
        """Traversal preference: confidence × strength."""
        return self.confidence * self.strength

    @property
    def triple(self) -> tuple[str, Predicate, str]:
        return (self.subject_id, self.predicate, self.object_id)

    @property
    def is_bidirectional(self) -> bool:
        return self.direction is Direction.BIDIRECTIONAL

    def other_end(self, entity_id: str) -> str:
        return self.object_id if entity_id == self.subject_id else self.subject_id

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Relationship:
        return cls(
            id=str(data.get("id", data.get("_id", ""))),
            subject_id=str(data.get("subject_id", data.get("subject", ""))),
            predicate=data["predicate"],
            object_id=str(data.get("object_id", data.get("object", ""))),
            confidence=data.get("confidence", 0.0),
            strength=data.get("strength", 0.5),
            direction=data.get("direction", Direction.UNIDIRECTIONAL),
            evidence=tuple(Evidence.from_dict(e) for e in data.get("evidence", ())),
            verified=bool(data.get("verified", data.get("isVerified", False))),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "subject_id": self.subject_id,
            "predicate": self.predicate.value,
            "object_id": self.object_id,
            "confidence": self.confidence,
            "strength": self.strength,
            "direction": self.direction.value,
            "evidence": [
                {"paper_id": e.paper_id, "sentence": e.sentence}
                for e in self.evidence
            ],
            "verified": self.verified,
        }
