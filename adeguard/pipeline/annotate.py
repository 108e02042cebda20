import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Pattern

from adeguard.models import Entity, EntityType, SeverityLevel


@dataclass(frozen=True)
class Segment:
    text: str
    entity: Optional[Entity] = None

    @property
    def matched(self) -> bool:
        return self.entity is not None


def _split(text: str, pattern: Pattern, entity: Entity) -> List[Segment]:
    pieces: List[Segment] = []
    cursor = 0

    for match in pattern.finditer(text):
        start, end = match.span()
        if start > cursor:
            pieces.append(Segment(text[cursor:start]))
        # keep the narrative's casing, not the entity's
        pieces.append(Segment(text[start:end], entity))
        cursor = end

    if cursor < len(text):
        pieces.append(Segment(text[cursor:]))

    return pieces


def annotate(narrative: str, entities: Iterable[Entity]) -> List[Segment]:
    """
    Split a narrative into plain and entity-tagged segments.

    Entities are applied longest literal first, so "dry cough" claims its
    span before "cough" gets a chance to. Matching is case-insensitive on
    the escaped literal. A segment tagged by an earlier entity is never
    re-scanned, which means a literal shared by two entities only ever
    belongs to the first one processed.
    """
    entities = list(entities)
    if not narrative or not entities:
        return [Segment(narrative)]

    # sorted() is stable: equal lengths keep encounter order
    ordered = sorted(entities, key=lambda e: len(e.text), reverse=True)

    segments = [Segment(narrative)]
    for entity in ordered:
        if not entity.text:
            continue

        pattern = re.compile(re.escape(entity.text), re.IGNORECASE)
        spliced: List[Segment] = []
        for segment in segments:
            if segment.matched:
                spliced.append(segment)
            else:
                spliced.extend(_split(segment.text, pattern, entity))
        segments = spliced

    return segments


# --------------------
# RENDERING
# --------------------

_TYPE_CLASSES = {
    EntityType.DRUG: "entity-drug",
    EntityType.MODIFIER: "entity-modifier",
    EntityType.INDICATION: "entity-indication",
}


def css_class_for(entity: Entity) -> str:
    if entity.type == EntityType.ADE:
        if entity.severity == SeverityLevel.SEVERE:
            return "entity-ade-severe"
        if entity.severity == SeverityLevel.MODERATE:
            return "entity-ade-moderate"
        return "entity-ade"
    return _TYPE_CLASSES.get(entity.type, "entity")


def segments_to_wire(segments: List[Segment]) -> List[Dict]:
    out = []
    for segment in segments:
        if segment.entity is None:
            out.append({"text": segment.text})
            continue
        out.append({
            "text": segment.text,
            "entity": segment.entity.model_dump(mode="json", by_alias=True, exclude_none=True),
            "cssClass": css_class_for(segment.entity),
        })
    return out
