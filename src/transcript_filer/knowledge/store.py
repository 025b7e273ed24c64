"""Knowledge store readers.

A context directory holds one YAML file per entity, grouped by kind:

    <context>/
        projects/protokoll.yaml
        people/anil.yaml
        terms/kubernetes.yaml
        companies/acme.yaml

Each file carries at least ``id`` and ``name``; ``sounds_like``,
``trigger_phrases``, ``projects`` and ``active`` are optional.
Missing or unreadable directories contribute zero entities.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Protocol, Sequence

import yaml
from pydantic import ValidationError as PydanticValidationError

from transcript_filer.logging import get_logger
from transcript_filer.models.entity import Entity, EntityType

logger = get_logger(__name__)

# Subdirectory name -> entity type stored there
ENTITY_DIRECTORIES: dict[str, EntityType] = {
    "projects": EntityType.PROJECT,
    "people": EntityType.PERSON,
    "terms": EntityType.TERM,
    "companies": EntityType.COMPANY,
}

YAML_SUFFIXES = (".yaml", ".yml")


class KnowledgeStore(Protocol):
    """Anything that can produce entities for a list of context paths."""

    def load_entities(self, paths: Sequence[Path | str]) -> list[Entity]:
        ...


class YamlKnowledgeStore:
    """Reads entities from YAML context directories."""

    def load_entities(self, paths: Sequence[Path | str]) -> list[Entity]:
        """Load every entity found under ``paths``.

        Args:
            paths: Context directories, searched in order

        Returns:
            Entities in path order, then directory order, then filename order
        """
        entities: list[Entity] = []
        for path in paths:
            found = self._load_context_dir(Path(path).expanduser())
            logger.debug(
                f"Loaded {len(found)} entities from {path}",
                extra={"context_path": str(path), "entities": len(found)},
            )
            entities.extend(found)

        logger.info(f"Knowledge store loaded {len(entities)} entities")
        return entities

    def _load_context_dir(self, context_dir: Path) -> list[Entity]:
        try:
            is_dir = context_dir.is_dir()
        except OSError as e:
            logger.debug(f"Could not access {context_dir}: {e}")
            return []
        if not is_dir:
            logger.debug(f"No context directory at {context_dir}")
            return []

        entities: list[Entity] = []
        for dirname, entity_type in ENTITY_DIRECTORIES.items():
            for file_path in self._entity_files(context_dir / dirname):
                entity = self._load_entity_file(file_path, entity_type)
                if entity is not None:
                    entities.append(entity)
        return entities

    def _entity_files(self, directory: Path) -> Iterable[Path]:
        try:
            files = sorted(p for p in directory.iterdir() if p.suffix in YAML_SUFFIXES)
        except OSError as e:
            logger.debug(f"Could not read {directory}: {e}")
            return []
        return files

    def _load_entity_file(self, file_path: Path, entity_type: EntityType) -> Entity | None:
        try:
            with open(file_path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            logger.warning(
                f"Failed to read entity file {file_path.name}: {e}",
                extra={"entity_file": str(file_path)},
            )
            return None

        if not isinstance(data, dict):
            logger.debug(f"Skipping non-mapping entity file: {file_path.name}")
            return None

        data.setdefault("type", entity_type.value)
        try:
            return Entity.model_validate(data)
        except PydanticValidationError as e:
            logger.warning(
                f"Skipping invalid entity file {file_path.name}: {e.error_count()} errors",
                extra={"entity_file": str(file_path)},
            )
            return None


class StaticKnowledgeStore:
    """In-memory store, for callers that already hold their entities."""

    def __init__(self, entities: Iterable[Entity] = ()):
        self._entities = list(entities)

    def load_entities(self, paths: Sequence[Path | str]) -> list[Entity]:
        return list(self._entities)


def build_entity_index(entities: Iterable[Entity]) -> dict[EntityType, dict[str, Entity]]:
    """Index entities by type and id; later duplicates replace earlier ones."""
    index: dict[EntityType, dict[str, Entity]] = {t: {} for t in EntityType}
    for entity in entities:
        index[entity.type][entity.id] = entity
    return index
