import logging
import os
from typing import List

from ..domain import KnowledgeEntity, KnowledgeRelation, utc_now
from ..utils import save_json

logger = logging.getLogger("autotester.knowledge")


class KnowledgeStaging:
    """Entities and relations waiting to be exported to a knowledge store."""

    def __init__(self):
        self.entities: List[KnowledgeEntity] = []
        self.relations: List[KnowledgeRelation] = []

    def queue_entity(self, name: str, entity_type: str, observations: List[str]):
        self.entities.append(KnowledgeEntity(name, entity_type, list(observations)))

    def queue_relation(self, from_name: str, to_name: str, relation_type: str):
        self.relations.append(KnowledgeRelation(from_name, to_name, relation_type))

    def pending_entities(self) -> List[KnowledgeEntity]:
        return list(self.entities)

    def pending_relations(self) -> List[KnowledgeRelation]:
        return list(self.relations)

    def clear(self):
        self.entities = []
        self.relations = []

    def drain_to_file(self, directory: str, session_id: str) -> str:
        """
        Write everything staged to `knowledge_<session>.json` and clear the queues.

        The queues are left untouched when the write fails.
        """
        path = os.path.join(directory, f"knowledge_{session_id}.json")
        save_json(path, {
            "session_id": session_id,
            "exported_at": utc_now().isoformat(),
            "entities": [e.to_dict() for e in self.entities],
            "relations": [r.to_dict() for r in self.relations],
        })
        logger.info(f"Exported {len(self.entities)} entities and {len(self.relations)} relations to {path}")
        self.clear()
        return path
