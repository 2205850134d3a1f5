"""Pydantic models for the read-only ontology snapshot and structured chunks.

Hierarchy:
  OntologyEntity:    a named entity with its annotations and relationships.
  OntologySnapshot:  the enumerable set of entities of one ontology.
  Axiom:             a single logical statement rendered in functional syntax.
  OWLChunk:          a group of axioms produced by a structured chunker.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


def short_form(iri: str) -> str:
    """Return the fragment or last path segment of an IRI."""
    for sep in ("#", "/", ":"):
        if sep in iri:
            tail = iri.rsplit(sep, 1)[1]
            if tail:
                return tail
    return iri


def namespace_of(iri: str) -> str:
    """Return the IRI up to and including its last '#' or '/'."""
    for sep in ("#", "/"):
        if sep in iri:
            return iri.rsplit(sep, 1)[0] + sep
    return ""


class EntityKind(str, Enum):
    CLASS = "Class"
    OBJECT_PROPERTY = "ObjectProperty"
    DATA_PROPERTY = "DataProperty"
    INDIVIDUAL = "Individual"


class Annotation(BaseModel):
    property: str
    value: str


class PropertyAssertion(BaseModel):
    """A data or object property value attached to an individual.

    For object properties ``value`` holds the IRI of the target individual.
    """

    property: str
    value: str


class OntologyEntity(BaseModel):
    """A named ontology entity.

    Only the fields that make sense for ``kind`` are populated: super_classes
    for classes, domains/ranges for properties, types and assertions for
    individuals.
    """

    iri: str
    kind: EntityKind
    annotations: list[Annotation] = Field(default_factory=list)
    super_classes: list[str] = Field(default_factory=list)
    domains: list[str] = Field(default_factory=list)
    ranges: list[str] = Field(default_factory=list)
    types: list[str] = Field(default_factory=list)
    data_assertions: list[PropertyAssertion] = Field(default_factory=list)
    object_assertions: list[PropertyAssertion] = Field(default_factory=list)

    @property
    def short_form(self) -> str:
        return short_form(self.iri)

    @property
    def namespace(self) -> str:
        return namespace_of(self.iri)

    def label(self) -> str:
        """Return the first rdfs:label literal, else the IRI short form."""
        for annotation in self.annotations:
            if short_form(annotation.property) == "label":
                return annotation.value
        return self.short_form


class OntologySnapshot(BaseModel):
    """Read-only view of an ontology: every named entity with its axioms."""

    iri: str = ""
    entities: list[OntologyEntity] = Field(default_factory=list)

    _by_iri: dict[str, OntologyEntity] | None = PrivateAttr(default=None)

    def get(self, iri: str) -> OntologyEntity | None:
        if self._by_iri is None:
            self._by_iri = {entity.iri: entity for entity in self.entities}
        return self._by_iri.get(iri)

    def label_of(self, iri: str) -> str:
        entity = self.get(iri)
        return entity.label() if entity else short_form(iri)

    def entities_of(self, kind: EntityKind) -> list[OntologyEntity]:
        return [entity for entity in self.entities if entity.kind == kind]


class Axiom(BaseModel):
    """A single axiom.

    Attributes:
        kind:       Functional-syntax axiom type (e.g. "SubClassOf").
        subject:    IRI of the entity the axiom is about.
        references: Other entity IRIs the axiom mentions.
        text:       Functional-syntax rendering.
    """

    model_config = ConfigDict(frozen=True)

    kind: str
    subject: str
    references: tuple[str, ...] = ()
    text: str


class OWLChunk(BaseModel):
    """A group of axioms produced by a structured chunker.

    Attributes:
        id:       Stable identifier derived from the grouping key.
        strategy: Label of the grouping that produced the chunk.
        axioms:   The grouped axioms in ontology order.
        metadata: Grouping details (root class, namespace, depth, ...).
    """

    id: str
    strategy: str
    axioms: list[Axiom] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def axiom_count(self) -> int:
        return len(self.axioms)

    def to_owl_string(self) -> str:
        return "\n".join(axiom.text for axiom in self.axioms)

    def rendered_text(self) -> str:
        """Render the chunk for embedding.

        The leading block (id, strategy, axiom count, metadata) is separated
        from the axioms by a blank line, so it can be carried over when a large
        chunk is split.
        """
        header = [
            f"Chunk ID: {self.id}",
            f"Strategy: {self.strategy}",
            f"Axiom Count: {self.axiom_count}",
        ]
        header.extend(f"{key}: {value}" for key, value in self.metadata.items())
        body = self.to_owl_string()
        return "\n".join(header) + "\n\n" + body + "\n"
