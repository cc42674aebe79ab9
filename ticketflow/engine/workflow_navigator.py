"""Workflow Navigator - Resolve the next step from a decision"""
from typing import Dict, List, Optional

from ..domain.models import (
    NavigationResult, Route, RoutePosition, Step, Transition, TransitionOption,
    WorkflowDefinition,
)
from ..domain.errors import (
    DecisionRequiredError, InvalidWorkflowConfigurationError, UnknownDecisionError
)
from ..utils.logger import get_logger

logger = get_logger(__name__)


class WorkflowNavigator:
    """
    Navigate a workflow definition

    Given the current step, an optional decision key and the ticket's route
    position:
    1. Inside a route with a further route step and no key -> next route step
    2. Single outgoing transition and no key -> take it
    3. Several transitions and no key -> DecisionRequiredError
    4. Key given -> exact match or UnknownDecisionError
    5. Step with no transitions that allows closing -> ticket closes

    Only active steps and transitions take part. Pure: never touches storage.
    """

    def __init__(self, definition: WorkflowDefinition):
        self.definition = definition
        self._steps: Dict[int, Step] = {s.id: s for s in definition.steps if s.active}
        self._routes: Dict[int, Route] = {r.id: r for r in definition.routes}
        self._outgoing: Dict[int, List[Transition]] = {}
        for transition in definition.transitions:
            if transition.active:
                self._outgoing.setdefault(transition.origin_step_id, []).append(transition)

    def initial_step(self) -> Step:
        """First active step of the flow by order"""
        if not self._steps:
            raise InvalidWorkflowConfigurationError(
                f"Flow {self.definition.flow.id} has no active steps",
                details={"flow_id": self.definition.flow.id}
            )
        return min(self._steps.values(), key=lambda s: s.order)

    def get_step(self, step_id: int) -> Step:
        step = self._steps.get(step_id)
        if step is None:
            raise InvalidWorkflowConfigurationError(
                f"Step {step_id} is not an active step of flow {self.definition.flow.id}",
                details={"flow_id": self.definition.flow.id, "step_id": step_id}
            )
        return step

    def available_transitions(self, current_step_id: int) -> List[TransitionOption]:
        """Decisions offered on a step, in definition order"""
        self.get_step(current_step_id)
        return [
            TransitionOption(
                decision_key=t.decision_key,
                label=t.label,
                closes_ticket=t.closes_ticket
            )
            for t in self._outgoing.get(current_step_id, [])
        ]

    def next_step(
        self,
        current_step_id: int,
        decision_key: Optional[str] = None,
        route_position: Optional[RoutePosition] = None
    ) -> NavigationResult:
        """
        Resolve where a ticket goes from its current step

        Raises:
            DecisionRequiredError: Several transitions and no decision key
            UnknownDecisionError: Decision key not offered by the step
            InvalidWorkflowConfigurationError: Dangling or inconsistent configuration
        """
        current = self.get_step(current_step_id)
        transitions = self._outgoing.get(current.id, [])

        if route_position is not None:
            following = self._next_in_route(route_position)
            if following is not None:
                if not decision_key:
                    return following
                if not transitions:
                    raise UnknownDecisionError(
                        f"Step {current.id} continues along its route and offers no decision '{decision_key}'",
                        details={"step_id": current.id, "decision_key": decision_key, "available": []}
                    )

        if not transitions:
            if not current.allows_closing:
                raise InvalidWorkflowConfigurationError(
                    f"Step {current.id} has no outgoing transitions and cannot close",
                    details={"step_id": current.id}
                )
            if decision_key:
                raise UnknownDecisionError(
                    f"Step {current.id} is terminal and offers no decision '{decision_key}'",
                    details={"step_id": current.id, "decision_key": decision_key}
                )
            return NavigationResult(closes_ticket=True)

        if not decision_key:
            if len(transitions) > 1:
                raise DecisionRequiredError(
                    f"Step {current.id} requires a decision",
                    details={
                        "step_id": current.id,
                        "available": [t.decision_key for t in transitions]
                    }
                )
            transition = transitions[0]
        else:
            transition = next((t for t in transitions if t.decision_key == decision_key), None)
            if transition is None:
                raise UnknownDecisionError(
                    f"Decision '{decision_key}' is not available on step {current.id}",
                    details={
                        "step_id": current.id,
                        "decision_key": decision_key,
                        "available": [t.decision_key for t in transitions]
                    }
                )

        result = self._follow(transition)
        logger.debug(
            f"Navigated from step {current.id} via transition {transition.id}",
            extra={"step_id": current.id, "decision_key": decision_key}
        )
        return result

    # =========================================================================
    # Helpers
    # =========================================================================

    def _follow(self, transition: Transition) -> NavigationResult:
        if transition.closes_ticket:
            origin = self.get_step(transition.origin_step_id)
            if not origin.allows_closing:
                raise InvalidWorkflowConfigurationError(
                    f"Transition {transition.id} closes the ticket from step {origin.id} "
                    "which does not allow closing",
                    details={"transition_id": transition.id, "step_id": origin.id}
                )
            return NavigationResult(closes_ticket=True, transition=transition)

        if transition.destination_step_id is not None and transition.destination_route_id is None:
            return NavigationResult(
                step=self.get_step(transition.destination_step_id),
                transition=transition
            )

        if transition.destination_route_id is not None and transition.destination_step_id is None:
            route = self._get_route(transition.destination_route_id)
            first = route.ordered_steps()[0]
            return NavigationResult(
                step=self.get_step(first.step_id),
                transition=transition,
                route_position=RoutePosition(route_id=route.id, order=1)
            )

        raise InvalidWorkflowConfigurationError(
            f"Transition {transition.id} must target exactly one step or route",
            details={"transition_id": transition.id}
        )

    def _next_in_route(self, position: RoutePosition) -> Optional[NavigationResult]:
        route = self._get_route(position.route_id)
        ordered = route.ordered_steps()
        if position.order >= len(ordered):
            return None
        following = ordered[position.order]
        return NavigationResult(
            step=self.get_step(following.step_id),
            route_position=RoutePosition(route_id=route.id, order=position.order + 1)
        )

    def _get_route(self, route_id: int) -> Route:
        route = self._routes.get(route_id)
        if route is None or route.flow_id != self.definition.flow.id:
            raise InvalidWorkflowConfigurationError(
                f"Route {route_id} does not belong to flow {self.definition.flow.id}",
                details={"route_id": route_id, "flow_id": self.definition.flow.id}
            )
        if not route.steps:
            raise InvalidWorkflowConfigurationError(
                f"Route {route_id} has no steps",
                details={"route_id": route_id}
            )
        return route
