"""Turns an ontology snapshot into embeddable text and into axioms.

render_entity_texts() produces one description per named entity for the text
chunking strategies. extract_axioms() flattens the snapshot into functional
syntax axioms for the structured chunkers.
"""

import json

from shared.models.ontology import (
    Axiom,
    EntityKind,
    OntologyEntity,
    OntologySnapshot,
    short_form,
)

# order in which entity descriptions are emitted
_RENDER_ORDER = (
    EntityKind.CLASS,
    EntityKind.OBJECT_PROPERTY,
    EntityKind.DATA_PROPERTY,
    EntityKind.INDIVIDUAL,
)


##########################################
############ ENTITY TEXTS ################
##########################################

def _annotation_lines(entity: OntologyEntity) -> list[str]:
    return [f"{short_form(a.property)}: {a.value}" for a in entity.annotations]


def render_entity_text(snapshot: OntologySnapshot, entity: OntologyEntity) -> str:
    """Render a single entity as a human-readable block of "key: value" lines.

    Args:
        snapshot (OntologySnapshot): Used to resolve labels of referenced entities.
        entity (OntologyEntity): The entity to describe.

    Returns:
        str: The description, one fact per line.
    """
    lines = [f"{entity.kind.value}: {entity.label()}", f"IRI: {entity.iri}"]
    lines.extend(_annotation_lines(entity))

    if entity.kind == EntityKind.CLASS:
        lines.extend(f"SuperClass: {snapshot.label_of(iri)}" for iri in entity.super_classes)
    elif entity.kind in (EntityKind.OBJECT_PROPERTY, EntityKind.DATA_PROPERTY):
        lines.extend(f"Domain: {snapshot.label_of(iri)}" for iri in entity.domains)
        lines.extend(f"Range: {snapshot.label_of(iri)}" for iri in entity.ranges)
    else:
        lines.extend(f"Type: {snapshot.label_of(iri)}" for iri in entity.types)
        lines.extend(
            f"{snapshot.label_of(a.property)}: {a.value}" for a in entity.data_assertions
        )
        lines.extend(
            f"{snapshot.label_of(a.property)}: {snapshot.label_of(a.value)}"
            for a in entity.object_assertions
        )
    return "\n".join(lines) + "\n"


def render_entity_texts(snapshot: OntologySnapshot) -> list[str]:
    """Render every named entity: classes, object properties, data properties, individuals."""
    texts: list[str] = []
    for kind in _RENDER_ORDER:
        texts.extend(render_entity_text(snapshot, entity) for entity in snapshot.entities_of(kind))
    return texts


##########################################
################ AXIOMS ##################
##########################################

def _iri(value: str) -> str:
    return f"<{value}>"


def _literal(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _entity_axioms(entity: OntologyEntity) -> list[Axiom]:
    subject = entity.iri
    axioms = [Axiom(kind="Declaration", subject=subject, text=f"Declaration({entity.kind.value}({_iri(subject)}))")]

    for annotation in entity.annotations:
        axioms.append(Axiom(
            kind="AnnotationAssertion",
            subject=subject,
            text=f"AnnotationAssertion({_iri(annotation.property)} {_iri(subject)} {_literal(annotation.value)})",
        ))

    if entity.kind == EntityKind.CLASS:
        for parent in entity.super_classes:
            axioms.append(Axiom(
                kind="SubClassOf", subject=subject, references=(parent,),
                text=f"SubClassOf({_iri(subject)} {_iri(parent)})",
            ))
    elif entity.kind in (EntityKind.OBJECT_PROPERTY, EntityKind.DATA_PROPERTY):
        prefix = "ObjectProperty" if entity.kind == EntityKind.OBJECT_PROPERTY else "DataProperty"
        for domain in entity.domains:
            axioms.append(Axiom(
                kind=f"{prefix}Domain", subject=subject, references=(domain,),
                text=f"{prefix}Domain({_iri(subject)} {_iri(domain)})",
            ))
        for range_ in entity.ranges:
            axioms.append(Axiom(
                kind=f"{prefix}Range", subject=subject, references=(range_,),
                text=f"{prefix}Range({_iri(subject)} {_iri(range_)})",
            ))
    else:
        for cls in entity.types:
            axioms.append(Axiom(
                kind="ClassAssertion", subject=subject, references=(cls,),
                text=f"ClassAssertion({_iri(cls)} {_iri(subject)})",
            ))
        for assertion in entity.data_assertions:
            axioms.append(Axiom(
                kind="DataPropertyAssertion", subject=subject, references=(assertion.property,),
                text=f"DataPropertyAssertion({_iri(assertion.property)} {_iri(subject)} {_literal(assertion.value)})",
            ))
        for assertion in entity.object_assertions:
            axioms.append(Axiom(
                kind="ObjectPropertyAssertion", subject=subject,
                references=(assertion.property, assertion.value),
                text=f"ObjectPropertyAssertion({_iri(assertion.property)} {_iri(subject)} {_iri(assertion.value)})",
            ))
    return axioms


def extract_axioms(snapshot: OntologySnapshot) -> list[Axiom]:
    """Flatten the snapshot into axioms, in entity order."""
    axioms: list[Axiom] = []
    for entity in snapshot.entities:
        axioms.extend(_entity_axioms(entity))
    return axioms
