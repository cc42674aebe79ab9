"""Workflow Repository - Data access for flows, steps, transitions and routes"""
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo import ASCENDING

from .mongo_client import get_collection
from .legacy_adapter import normalize_step_document
from ..domain.models import Flow, Route, Step, Transition, WorkflowDefinition
from ..engine.config_validator import WorkflowConfigValidator
from ..utils.logger import get_logger

logger = get_logger(__name__)


def _strip(doc: Dict[str, Any], *keys: str) -> Dict[str, Any]:
    doc = dict(doc)
    doc.pop("_id", None)
    for key in keys:
        doc.pop(key, None)
    return doc


class WorkflowRepository:
    """
    Repository for workflow configuration

    Definitions are validated on every save and every load, so the engine
    only ever navigates consistent configuration.
    """

    def __init__(self, validator: Optional[WorkflowConfigValidator] = None):
        self._flows: Collection = get_collection("flows")
        self._steps: Collection = get_collection("steps")
        self._transitions: Collection = get_collection("transitions")
        self._routes: Collection = get_collection("routes")
        self.validator = validator or WorkflowConfigValidator()

    # =========================================================================
    # Reads
    # =========================================================================

    def get_definition(self, flow_id: int) -> Optional[WorkflowDefinition]:
        """Get the validated definition of an active flow"""
        doc = self._flows.find_one({"id": flow_id, "active": True})
        if doc is None:
            return None
        return self._load(Flow.model_validate(_strip(doc)))

    def get_definition_for_subcategory(self, subcategory_id: int) -> Optional[WorkflowDefinition]:
        """Get the validated definition of the active flow of a subcategory"""
        doc = self._flows.find_one(
            {"subcategory_id": subcategory_id, "active": True},
            sort=[("id", ASCENDING)]
        )
        if doc is None:
            return None
        return self._load(Flow.model_validate(_strip(doc)))

    def list_flow_ids(self) -> List[int]:
        return [doc["id"] for doc in self._flows.find({}, {"id": 1}).sort("id", ASCENDING)]

    def _load(self, flow: Flow) -> WorkflowDefinition:
        steps = [
            Step.model_validate(normalize_step_document(_strip(doc)))
            for doc in self._steps.find({"flow_id": flow.id}).sort("order", ASCENDING)
        ]
        step_ids = [s.id for s in steps]
        transitions = [
            Transition.model_validate(_strip(doc, "position"))
            for doc in self._transitions.find({"origin_step_id": {"$in": step_ids}}).sort(
                [("position", ASCENDING), ("id", ASCENDING)]
            )
        ]
        routes = [
            Route.model_validate(_strip(doc))
            for doc in self._routes.find({"flow_id": flow.id}).sort("id", ASCENDING)
        ]
        definition = WorkflowDefinition(flow=flow, steps=steps, transitions=transitions, routes=routes)
        return self.validator.validate(definition)

    # =========================================================================
    # Writes
    # =========================================================================

    def save_definition(self, definition: WorkflowDefinition) -> WorkflowDefinition:
        """Validate and replace the stored configuration of a flow"""
        self.validator.validate(definition)
        flow_id = definition.flow.id

        old_step_ids = [doc["id"] for doc in self._steps.find({"flow_id": flow_id}, {"id": 1})]
        self._transitions.delete_many({"origin_step_id": {"$in": old_step_ids}})
        self._steps.delete_many({"flow_id": flow_id})
        self._routes.delete_many({"flow_id": flow_id})

        self._flows.replace_one(
            {"id": flow_id},
            {**definition.flow.model_dump(), "_id": flow_id},
            upsert=True
        )
        if definition.steps:
            self._steps.insert_many([{**s.model_dump(), "_id": s.id} for s in definition.steps])
        if definition.transitions:
            self._transitions.insert_many([
                {**t.model_dump(), "_id": t.id, "position": position}
                for position, t in enumerate(definition.transitions)
            ])
        if definition.routes:
            self._routes.insert_many([{**r.model_dump(), "_id": r.id} for r in definition.routes])

        logger.info(
            f"Saved workflow {flow_id}: {len(definition.steps)} steps, "
            f"{len(definition.transitions)} transitions",
            extra={"flow_id": flow_id}
        )
        return definition
