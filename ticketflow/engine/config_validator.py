"""Workflow Config Validator - Reject inconsistent workflow definitions"""
from typing import Any, Dict, List, Set

from ..domain.models import WorkflowDefinition
from ..domain.errors import InvalidWorkflowConfigurationError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class WorkflowConfigValidator:
    """
    Validate a workflow definition as a whole

    check() collects every problem (errors block the definition, warnings do
    not); validate() raises InvalidWorkflowConfigurationError listing all errors.
    """

    def validate(self, definition: WorkflowDefinition) -> WorkflowDefinition:
        result = self.check(definition)
        if not result["is_valid"]:
            logger.warning(
                f"Workflow {definition.flow.id} rejected with {len(result['errors'])} error(s)",
                extra={"flow_id": definition.flow.id, "details": result["errors"]}
            )
            raise InvalidWorkflowConfigurationError(
                f"Workflow {definition.flow.id} has an invalid configuration",
                details={"flow_id": definition.flow.id, "errors": result["errors"]}
            )
        return definition

    def check(self, definition: WorkflowDefinition) -> Dict[str, Any]:
        errors: List[Dict[str, Any]] = []
        warnings: List[Dict[str, Any]] = []
        flow_id = definition.flow.id

        # Steps
        step_ids: Set[int] = set()
        for i, step in enumerate(definition.steps):
            if step.id in step_ids:
                errors.append({
                    "type": "DUPLICATE_STEP_ID",
                    "message": f"Duplicate step id: {step.id}",
                    "path": f"steps[{i}].id"
                })
            step_ids.add(step.id)

            if step.flow_id != flow_id:
                errors.append({
                    "type": "FOREIGN_STEP",
                    "message": f"Step {step.id} belongs to flow {step.flow_id}",
                    "path": f"steps[{i}].flow_id"
                })

            if step.sla_hours < 0:
                errors.append({
                    "type": "NEGATIVE_SLA",
                    "message": f"Step {step.id} has a negative SLA",
                    "path": f"steps[{i}].sla_hours"
                })

            strategies = step.configured_strategies()
            if len(strategies) != 1:
                errors.append({
                    "type": "ASSIGNMENT_STRATEGY",
                    "message": (
                        f"Step {step.id} must configure exactly one assignment strategy, "
                        f"found {len(strategies)}"
                    ),
                    "path": f"steps[{i}]",
                    "strategies": [s.value for s in strategies]
                })

        if not any(s.active for s in definition.steps):
            errors.append({
                "type": "EMPTY_STEPS",
                "message": "Workflow must have at least one active step",
                "path": "steps"
            })

        steps_by_id = {s.id: s for s in definition.steps}

        # Routes
        route_ids: Set[int] = set()
        for i, route in enumerate(definition.routes):
            route_ids.add(route.id)
            if route.flow_id != flow_id:
                errors.append({
                    "type": "FOREIGN_ROUTE",
                    "message": f"Route {route.id} belongs to flow {route.flow_id}",
                    "path": f"routes[{i}].flow_id"
                })
            if not route.steps:
                errors.append({
                    "type": "EMPTY_ROUTE",
                    "message": f"Route {route.id} has no steps",
                    "path": f"routes[{i}].steps"
                })
            for j, route_step in enumerate(route.steps):
                if route_step.step_id not in steps_by_id:
                    errors.append({
                        "type": "DANGLING_ROUTE_STEP",
                        "message": f"Route {route.id} references unknown step {route_step.step_id}",
                        "path": f"routes[{i}].steps[{j}].step_id"
                    })

        # Transitions
        outgoing: Dict[int, List[int]] = {}
        for i, transition in enumerate(definition.transitions):
            path = f"transitions[{i}]"
            if transition.origin_step_id not in steps_by_id:
                errors.append({
                    "type": "DANGLING_ORIGIN",
                    "message": f"Transition {transition.id} starts at unknown step {transition.origin_step_id}",
                    "path": f"{path}.origin_step_id"
                })
                continue
            if not transition.active:
                continue
            outgoing.setdefault(transition.origin_step_id, []).append(i)

            targets = [
                transition.destination_step_id is not None,
                transition.destination_route_id is not None,
            ]
            if transition.closes_ticket:
                if any(targets):
                    errors.append({
                        "type": "CLOSING_WITH_DESTINATION",
                        "message": f"Closing transition {transition.id} must not have a destination",
                        "path": path
                    })
                if not steps_by_id[transition.origin_step_id].allows_closing:
                    errors.append({
                        "type": "CLOSING_NOT_ALLOWED",
                        "message": (
                            f"Transition {transition.id} closes the ticket but step "
                            f"{transition.origin_step_id} does not allow closing"
                        ),
                        "path": path
                    })
            elif sum(targets) != 1:
                errors.append({
                    "type": "DESTINATION",
                    "message": f"Transition {transition.id} must target exactly one step or route",
                    "path": path
                })

            if transition.destination_step_id is not None and transition.destination_step_id not in steps_by_id:
                errors.append({
                    "type": "DANGLING_DESTINATION_STEP",
                    "message": f"Transition {transition.id} targets unknown step {transition.destination_step_id}",
                    "path": f"{path}.destination_step_id"
                })
            if transition.destination_route_id is not None and transition.destination_route_id not in route_ids:
                errors.append({
                    "type": "DANGLING_DESTINATION_ROUTE",
                    "message": f"Transition {transition.id} targets unknown route {transition.destination_route_id}",
                    "path": f"{path}.destination_route_id"
                })

        for origin_id, indexes in outgoing.items():
            keys = [definition.transitions[i].decision_key for i in indexes]
            seen: Set[str] = set()
            for i, key in zip(indexes, keys):
                if not key:
                    if len(indexes) > 1:
                        errors.append({
                            "type": "MISSING_DECISION_KEY",
                            "message": (
                                f"Step {origin_id} has several transitions; "
                                f"transition {definition.transitions[i].id} needs a decision key"
                            ),
                            "path": f"transitions[{i}].decision_key"
                        })
                    continue
                if key in seen:
                    errors.append({
                        "type": "DUPLICATE_DECISION_KEY",
                        "message": f"Step {origin_id} offers decision '{key}' more than once",
                        "path": f"transitions[{i}].decision_key"
                    })
                seen.add(key)

        # Route steps followed by another route step are left through the route
        sequenced: Set[int] = set()
        for route in definition.routes:
            sequenced.update(rs.step_id for rs in route.ordered_steps()[:-1])

        # Entered directly, such a step has no route position to continue from
        for i, transition in enumerate(definition.transitions):
            if transition.active and transition.destination_step_id in sequenced:
                errors.append({
                    "type": "ROUTE_STEP_AS_DESTINATION",
                    "message": (
                        f"Transition {transition.id} enters step {transition.destination_step_id} "
                        "directly, but that step only leaves through its route"
                    ),
                    "path": f"transitions[{i}].destination_step_id"
                })

        for i, step in enumerate(definition.steps):
            if not step.active or step.id in outgoing or step.id in sequenced:
                continue
            if not step.allows_closing:
                errors.append({
                    "type": "DEAD_END",
                    "message": f"Step {step.id} has no outgoing transitions and does not allow closing",
                    "path": f"steps[{i}]"
                })

        # Reachability (warning only)
        active_steps = [s for s in definition.steps if s.active]
        if active_steps:
            start = min(active_steps, key=lambda s: s.order)
            reachable = self._reachable(start.id, definition)
            for step in active_steps:
                if step.id not in reachable:
                    warnings.append({
                        "type": "UNREACHABLE_STEP",
                        "message": f"Step {step.id} is not reachable from step {start.id}",
                        "path": None
                    })

        return {
            "is_valid": len(errors) == 0,
            "errors": errors,
            "warnings": warnings
        }

    def _reachable(self, start_id: int, definition: WorkflowDefinition) -> Set[int]:
        routes = {r.id: r for r in definition.routes}
        reachable = {start_id}
        queue = [start_id]
        while queue:
            current = queue.pop()
            for transition in definition.transitions:
                if not transition.active or transition.origin_step_id != current:
                    continue
                targets = []
                if transition.destination_step_id is not None:
                    targets.append(transition.destination_step_id)
                route = routes.get(transition.destination_route_id)
                if route is not None:
                    targets.extend(rs.step_id for rs in route.steps)
                for target in targets:
                    if target not in reachable:
                        reachable.add(target)
                        queue.append(target)
        return reachable
