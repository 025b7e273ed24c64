"""Knowledge store access.

Supplies the entities (projects, people, terms, companies) that drive
both phonetic correction and routing.
"""

from transcript_filer.knowledge.store import (
    ENTITY_DIRECTORIES,
    KnowledgeStore,
    StaticKnowledgeStore,
    YamlKnowledgeStore,
    build_entity_index,
)

__all__ = [
    "ENTITY_DIRECTORIES",
    "KnowledgeStore",
    "StaticKnowledgeStore",
    "YamlKnowledgeStore",
    "build_entity_index",
]
