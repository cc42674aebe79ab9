"""Tests for WorkflowNavigator: decisions, routes and closing."""

import pytest

from ticketflow.domain.errors import (
    DecisionRequiredError, InvalidWorkflowConfigurationError, UnknownDecisionError
)
from ticketflow.domain.models import RoutePosition
from ticketflow.engine.workflow_navigator import WorkflowNavigator
from tests.conftest import ROUTE_ID, make_step, make_transition


@pytest.fixture
def navigator(definition) -> WorkflowNavigator:
    return WorkflowNavigator(definition)


class TestDecisions:
    def test_approve_and_reject(self, navigator):
        assert navigator.next_step(1, "APPROVE").step.id == 2
        assert navigator.next_step(1, "REJECT").step.id == 3

    def test_unknown_decision(self, navigator):
        with pytest.raises(UnknownDecisionError) as exc_info:
            navigator.next_step(1, "MAYBE")
        assert exc_info.value.details["available"] == ["APPROVE", "REJECT"]

    def test_several_transitions_need_a_decision(self, navigator):
        with pytest.raises(DecisionRequiredError):
            navigator.next_step(1)

    def test_single_transition_taken_without_decision(self, navigator):
        result = navigator.next_step(2)
        assert result.step.id == 4
        assert result.transition.id == 103
        assert result.route_position is None

    def test_available_transitions_in_definition_order(self, navigator):
        options = navigator.available_transitions(6)
        assert [o.decision_key for o in options] == ["CLOSE", "RETURN"]
        assert options[0].closes_ticket

    def test_initial_step_is_lowest_order(self, navigator):
        assert navigator.initial_step().id == 1

    def test_unknown_current_step(self, navigator):
        with pytest.raises(InvalidWorkflowConfigurationError):
            navigator.next_step(404)


class TestRoutes:
    def test_transition_into_route_starts_at_first_route_step(self, navigator):
        result = navigator.next_step(4, "SUBMIT")
        assert result.step.id == 5
        assert result.route_position == RoutePosition(route_id=ROUTE_ID, order=1)

    def test_route_sequencing_without_decision(self, navigator):
        result = navigator.next_step(5, route_position=RoutePosition(route_id=ROUTE_ID, order=1))
        assert result.step.id == 6
        assert result.transition is None
        assert result.route_position == RoutePosition(route_id=ROUTE_ID, order=2)

    def test_last_route_step_uses_its_transitions(self, navigator):
        result = navigator.next_step(
            6, "RETURN", route_position=RoutePosition(route_id=ROUTE_ID, order=2)
        )
        assert result.step.id == 1
        assert result.route_position is None

    def test_foreign_route_is_rejected(self, definition):
        definition.routes[0].flow_id = 2
        with pytest.raises(InvalidWorkflowConfigurationError):
            WorkflowNavigator(definition).next_step(4, "SUBMIT")

    def test_decision_on_step_left_through_its_route(self, navigator):
        with pytest.raises(UnknownDecisionError) as exc_info:
            navigator.next_step(5, "DONE", route_position=RoutePosition(route_id=ROUTE_ID, order=1))

        assert not isinstance(exc_info.value, InvalidWorkflowConfigurationError)
        assert exc_info.value.details["available"] == []

    def test_route_position_counts_steps_not_orders(self, definition):
        for route_step in definition.routes[0].steps:
            route_step.order *= 10
        navigator = WorkflowNavigator(definition)

        entered = navigator.next_step(4, "SUBMIT")
        following = navigator.next_step(5, route_position=entered.route_position)

        assert entered.route_position == RoutePosition(route_id=ROUTE_ID, order=1)
        assert following.step.id == 6
        assert following.route_position == RoutePosition(route_id=ROUTE_ID, order=2)


class TestClosing:
    def test_closing_transition(self, navigator):
        result = navigator.next_step(6, "CLOSE")
        assert result.closes_ticket
        assert result.step is None

    def test_terminal_step_that_allows_closing(self, navigator):
        result = navigator.next_step(3)
        assert result.closes_ticket
        assert result.transition is None

    def test_terminal_step_rejects_decisions(self, navigator):
        with pytest.raises(UnknownDecisionError):
            navigator.next_step(3, "APPROVE")

    def test_dead_end_is_a_configuration_error(self, definition):
        definition.steps.append(make_step(9, 9, assign_to_creator=True))
        with pytest.raises(InvalidWorkflowConfigurationError):
            WorkflowNavigator(definition).next_step(9)

    def test_closing_from_step_that_cannot_close(self, definition):
        definition.transitions.append(
            make_transition(200, 2, decision_key="X", closes_ticket=True)
        )
        definition.transitions[2].decision_key = "NEXT"
        with pytest.raises(InvalidWorkflowConfigurationError):
            WorkflowNavigator(definition).next_step(2, "X")

    def test_dangling_destination(self, definition):
        definition.transitions[2].destination_step_id = 404
        with pytest.raises(InvalidWorkflowConfigurationError):
            WorkflowNavigator(definition).next_step(2)

    def test_inactive_transitions_are_ignored(self, definition):
        definition.transitions[1].active = False
        assert WorkflowNavigator(definition).next_step(1).step.id == 2
