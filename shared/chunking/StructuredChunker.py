"""Ontology-aware chunkers.

Each chunker groups the axioms of an OntologySnapshot into OWLChunk records.
Chunk ids are derived from the grouping key, so chunking the same snapshot
twice yields the same ids. Keys that are not plain slugs (IRIs in particular)
carry a short hash of the full key, so equal local names in different
namespaces never share an id.
"""

import hashlib
import logging
import re
from abc import ABC, abstractmethod
from collections import deque

from shared.models.chunking import ChunkingStrategy
from shared.models.ontology import (
    Axiom,
    EntityKind,
    OntologySnapshot,
    OWLChunk,
    namespace_of,
    short_form,
)
from shared.ontology.OntologyRenderer import extract_axioms

DEFAULT_MAX_AXIOMS = 50


def _slug(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9]+", "-", value).strip("-").lower() or "x"


def chunk_key(value: str) -> str:
    """Id fragment for a grouping key, e.g. "http://a.org/onto#Person" -> "person-3f2c9a1b".

    A key that already is its own slug ("misc", "rdfs", "2") is used as is.
    Any other key keeps the slug of its short form and gains the first eight
    hex digits of its sha1, which keeps the fragment unique per key.
    """
    if _slug(value) == value:
        return value
    digest = hashlib.sha1(value.encode("utf-8")).hexdigest()[:8]
    return f"{_slug(short_form(value))}-{digest}"


class _ClassHierarchy:
    """Parent/child view over the named classes of a snapshot."""

    def __init__(self, snapshot: OntologySnapshot):
        self.classes = [entity.iri for entity in snapshot.entities_of(EntityKind.CLASS)]
        class_set = set(self.classes)
        self.parents: dict[str, list[str]] = {}
        self.children: dict[str, list[str]] = {iri: [] for iri in self.classes}
        for entity in snapshot.entities_of(EntityKind.CLASS):
            parents = [p for p in entity.super_classes if p in class_set and p != entity.iri]
            self.parents[entity.iri] = parents
            for parent in parents:
                self.children[parent].append(entity.iri)

    def is_class(self, iri: str) -> bool:
        return iri in self.children

    def roots(self) -> list[str]:
        return [iri for iri in self.classes if not self.parents[iri]]

    def ancestors(self, iri: str) -> list[str]:
        seen: list[str] = []
        queue = deque(self.parents.get(iri, []))
        while queue:
            current = queue.popleft()
            if current in seen or current == iri:
                continue
            seen.append(current)
            queue.extend(self.parents.get(current, []))
        return seen

    def root_assignment(self) -> dict[str, str]:
        """Map every class to the root of the first hierarchy that reaches it."""
        assignment: dict[str, str] = {}
        for root in self.roots():
            queue = deque([root])
            while queue:
                current = queue.popleft()
                if current in assignment:
                    continue
                assignment[current] = root
                queue.extend(self.children[current])
        # classes caught in a cycle have no root; they form their own group
        for iri in self.classes:
            assignment.setdefault(iri, iri)
        return assignment

    def depths(self) -> dict[str, int]:
        depth: dict[str, int] = {}
        queue = deque((root, 0) for root in self.roots())
        while queue:
            current, d = queue.popleft()
            if current in depth:
                continue
            depth[current] = d
            queue.extend((child, d + 1) for child in self.children[current])
        for iri in self.classes:
            depth.setdefault(iri, 0)
        return depth

    def subject_anchors(self, axioms: list[Axiom]) -> dict[str, list[str]]:
        """Map every axiom subject to the classes its axioms belong to.

        A class belongs to itself. Any other entity belongs to the classes its
        axioms reference, in order of first reference; possibly none.
        """
        anchors: dict[str, list[str]] = {}
        for axiom in axioms:
            found = anchors.setdefault(axiom.subject, [])
            if self.is_class(axiom.subject):
                if not found:
                    found.append(axiom.subject)
                continue
            for reference in axiom.references:
                if self.is_class(reference) and reference not in found:
                    found.append(reference)
        return anchors


class StructuredChunkerInterface(ABC):
    """Groups ontology axioms into chunks."""

    def chunk(self, snapshot: OntologySnapshot) -> list[OWLChunk]:
        """Chunk the snapshot.

        Args:
            snapshot (OntologySnapshot): The ontology to chunk.

        Returns:
            list[OWLChunk]: Non-empty chunks in a deterministic order.
        """
        axioms = extract_axioms(snapshot)
        if not axioms:
            return []
        return [chunk for chunk in self._chunk(snapshot, axioms) if chunk.axioms]

    @abstractmethod
    def _chunk(self, snapshot: OntologySnapshot, axioms: list[Axiom]) -> list[OWLChunk]:
        pass

    @abstractmethod
    def get_strategy_label(self) -> str:
        """Returns the label stored with every chunk, e.g. "class-hierarchy"."""
        pass

    def _make_chunk(self, key: str, axioms: list[Axiom], **metadata) -> OWLChunk:
        return OWLChunk(
            id=f"{self.get_strategy_label()}-{chunk_key(key)}",
            strategy=self.get_strategy_label(),
            axioms=axioms,
            metadata=metadata,
        )


class ClassBasedChunker(StructuredChunkerInterface):
    """One chunk per root class hierarchy; unanchored axioms go to a "misc" chunk."""

    def get_strategy_label(self) -> str:
        return "class-hierarchy"

    def _chunk(self, snapshot, axioms):
        hierarchy = _ClassHierarchy(snapshot)
        assignment = hierarchy.root_assignment()
        anchors = hierarchy.subject_anchors(axioms)
        groups: dict[str, list[Axiom]] = {}
        misc: list[Axiom] = []
        for axiom in axioms:
            anchor = anchors[axiom.subject]
            if not anchor:
                misc.append(axiom)
            else:
                groups.setdefault(assignment[anchor[0]], []).append(axiom)

        chunks = [
            self._make_chunk(root, group, root_class=snapshot.label_of(root))
            for root, group in groups.items()
        ]
        if misc:
            chunks.append(self._make_chunk("misc", misc, root_class="none"))
        return chunks


class AnnotationBasedChunker(StructuredChunkerInterface):
    """Groups entities by the prefix of their first annotation property."""

    def get_strategy_label(self) -> str:
        return "annotation-prefix"

    @staticmethod
    def _prefix(annotation_property: str) -> str:
        if ":" in annotation_property and "://" not in annotation_property:
            return annotation_property.split(":", 1)[0]
        return namespace_of(annotation_property) or annotation_property

    def _chunk(self, snapshot, axioms):
        key_by_subject: dict[str, str] = {}
        for entity in snapshot.entities:
            key_by_subject[entity.iri] = (
                self._prefix(entity.annotations[0].property) if entity.annotations else "unannotated"
            )
        groups: dict[str, list[Axiom]] = {}
        for axiom in axioms:
            groups.setdefault(key_by_subject.get(axiom.subject, "unannotated"), []).append(axiom)
        return [
            self._make_chunk(key, group, annotation_prefix=key)
            for key, group in groups.items()
        ]


class NamespaceBasedChunker(StructuredChunkerInterface):
    """Groups axioms by the namespace of their subject IRI."""

    def get_strategy_label(self) -> str:
        return "namespace"

    def _chunk(self, snapshot, axioms):
        groups: dict[str, list[Axiom]] = {}
        for axiom in axioms:
            groups.setdefault(namespace_of(axiom.subject) or "default", []).append(axiom)
        return [
            self._make_chunk(str(index), group, namespace=namespace)
            for index, (namespace, group) in enumerate(groups.items(), start=1)
        ]


class DepthBasedChunker(StructuredChunkerInterface):
    """Groups axioms by the hierarchy depth of the class they belong to (roots are depth 0)."""

    def get_strategy_label(self) -> str:
        return "hierarchy-depth"

    def _chunk(self, snapshot, axioms):
        hierarchy = _ClassHierarchy(snapshot)
        depths = hierarchy.depths()
        anchors = hierarchy.subject_anchors(axioms)
        groups: dict[int, list[Axiom]] = {}
        for axiom in axioms:
            anchor = anchors[axiom.subject]
            groups.setdefault(depths[anchor[0]] if anchor else 0, []).append(axiom)
        return [
            self._make_chunk(str(depth), groups[depth], depth=depth)
            for depth in sorted(groups)
        ]


class ModuleExtractionChunker(StructuredChunkerInterface):
    """One self-contained module per class: the class, its ancestors and whatever references it.

    Axioms may appear in more than one module.
    """

    def get_strategy_label(self) -> str:
        return "module-extraction"

    def _chunk(self, snapshot, axioms):
        hierarchy = _ClassHierarchy(snapshot)
        anchors = hierarchy.subject_anchors(axioms)
        by_subject: dict[str, list[Axiom]] = {}
        referencing: dict[str, list[Axiom]] = {}
        unanchored: list[Axiom] = []
        for axiom in axioms:
            if hierarchy.is_class(axiom.subject):
                by_subject.setdefault(axiom.subject, []).append(axiom)
                continue
            for anchor in anchors[axiom.subject]:
                referencing.setdefault(anchor, []).append(axiom)
            if not anchors[axiom.subject]:
                unanchored.append(axiom)

        chunks = []
        for cls in hierarchy.classes:
            module: list[Axiom] = list(by_subject.get(cls, []))
            for ancestor in hierarchy.ancestors(cls):
                module.extend(by_subject.get(ancestor, []))
            module.extend(referencing.get(cls, []))
            chunks.append(self._make_chunk(
                cls, module,
                seed_class=snapshot.label_of(cls),
                ancestor_count=len(hierarchy.ancestors(cls)),
            ))
        if unanchored:
            chunks.append(self._make_chunk("misc", unanchored, seed_class="none"))
        return chunks


class SizeBasedChunker(StructuredChunkerInterface):
    """Consecutive groups of at most ``max_axioms`` axioms."""

    def __init__(self, max_axioms: int = DEFAULT_MAX_AXIOMS):
        if max_axioms < 1:
            raise ValueError("max_axioms must be positive")
        self.max_axioms = max_axioms

    def get_strategy_label(self) -> str:
        return "fixed-axiom-count"

    def _chunk(self, snapshot, axioms):
        return [
            self._make_chunk(str(index), axioms[start:start + self.max_axioms], max_axioms=self.max_axioms)
            for index, start in enumerate(range(0, len(axioms), self.max_axioms), start=1)
        ]


_CHUNKERS = {
    ChunkingStrategy.CLASS_BASED: ClassBasedChunker,
    ChunkingStrategy.ANNOTATION_BASED: AnnotationBasedChunker,
    ChunkingStrategy.NAMESPACE_BASED: NamespaceBasedChunker,
    ChunkingStrategy.DEPTH_BASED: DepthBasedChunker,
    ChunkingStrategy.MODULE_EXTRACTION: ModuleExtractionChunker,
    ChunkingStrategy.SIZE_BASED: SizeBasedChunker,
}


def select_structured_chunker(strategy: ChunkingStrategy, logger: logging.Logger | None = None) -> StructuredChunkerInterface:
    """Return the chunker for a structured strategy.

    Text strategies have no structured counterpart; they fall back to the
    class hierarchy chunker with a warning.
    """
    chunker_class = _CHUNKERS.get(strategy)
    if chunker_class is None:
        (logger or logging.getLogger(__name__)).warning(
            "Unknown OWL chunking strategy: %s, falling back to %s",
            getattr(strategy, "value", strategy), ChunkingStrategy.CLASS_BASED.value,
        )
        chunker_class = ClassBasedChunker
    return chunker_class()
