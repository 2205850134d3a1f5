"""Loads an ontology snapshot exported by the ontology editor."""

from pathlib import Path

from pydantic import ValidationError

from shared.models.ontology import OntologySnapshot


def load_ontology(path: str | Path) -> OntologySnapshot:
    """Read a JSON ontology snapshot from disk.

    Args:
        path (str | Path): Location of the snapshot file.

    Returns:
        OntologySnapshot: The validated snapshot.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not a valid snapshot.
    """
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"Ontology snapshot not found: {p}")
    try:
        return OntologySnapshot.model_validate_json(p.read_text(encoding="utf-8"))
    except ValidationError as e:
        raise ValueError(f"Invalid ontology snapshot '{p}': {e}") from e
