"""Tests for AssignmentResolver strategies."""

import pytest

from ticketflow.domain.enums import AssignmentStrategy
from ticketflow.domain.errors import (
    InvalidWorkflowConfigurationError, MissingBossReferenceError, NoEligibleAssigneeError,
    NoSuperiorDefinedError,
)
from ticketflow.domain.models import Ticket, UserProfile
from ticketflow.engine.assignment_resolver import AssignmentResolver, unique_ids
from tests.conftest import CREATOR_ID, SUBCATEGORY_ID, TICKET_ID, make_step

BOSS_FIELD = 55


@pytest.fixture
def resolver(directory) -> AssignmentResolver:
    return AssignmentResolver(directory=directory, org_chart=directory, field_values=directory)


@pytest.fixture
def requester(directory) -> UserProfile:
    return directory.get_user(CREATOR_ID)


@pytest.fixture
def ticket() -> Ticket:
    return Ticket(id=TICKET_ID, creator_id=CREATOR_ID, subcategory_id=SUBCATEGORY_ID)


def test_unique_ids_keeps_first_occurrence():
    assert unique_ids([3, 1, 3, 2, 1]) == [3, 1, 2]


class TestRoleBased:
    def test_same_region_or_national_active_holders(self, resolver, requester, ticket):
        result = resolver.resolve_assignees(make_step(2, 2, assigned_role_id=7), requester, ticket)

        assert result.strategy == AssignmentStrategy.ROLE_BASED
        assert result.user_ids == [30, 32]

    def test_national_task_ignores_region(self, resolver, requester, ticket):
        step = make_step(2, 2, assigned_role_id=7, is_national_task=True)
        assert resolver.resolve_assignees(step, requester, ticket).user_ids == [30, 31, 32]

    def test_no_holder_in_scope(self, resolver, requester, ticket):
        with pytest.raises(NoEligibleAssigneeError):
            resolver.resolve_assignees(make_step(2, 2, assigned_role_id=99), requester, ticket)


class TestHierarchical:
    def test_prefers_superior_in_requester_region(self, resolver, requester, ticket):
        result = resolver.resolve_assignees(
            make_step(6, 6, requires_boss_approval=True), requester, ticket
        )
        assert result.strategy == AssignmentStrategy.HIERARCHICAL
        assert result.user_ids == [11]

    def test_falls_back_to_any_region(self, directory, resolver, ticket):
        directory.add_user(UserProfile(id=70, role_id=1, region_id=8, position_id=100))
        result = resolver.resolve_assignees(
            make_step(6, 6, requires_boss_approval=True), directory.get_user(70), ticket
        )
        assert result.user_ids == [11, 12]

    def test_no_superior_defined(self, directory, resolver, ticket):
        directory.add_user(UserProfile(id=71, role_id=1, region_id=3, position_id=300))
        with pytest.raises(NoSuperiorDefinedError):
            resolver.resolve_assignees(
                make_step(6, 6, requires_boss_approval=True), directory.get_user(71), ticket
            )

    def test_requester_without_position(self, resolver, ticket):
        with pytest.raises(NoSuperiorDefinedError):
            resolver.resolve_assignees(
                make_step(6, 6, requires_boss_approval=True), UserProfile(id=72), ticket
            )


class TestBossReference:
    def test_reads_user_id_from_field(self, directory, resolver, requester, ticket):
        directory.set_field_value(TICKET_ID, BOSS_FIELD, " 88 ")
        result = resolver.resolve_assignees(
            make_step(7, 7, boss_reference_field_id=BOSS_FIELD), requester, ticket
        )
        assert result.strategy == AssignmentStrategy.BOSS_REFERENCE
        assert result.user_ids == [88]

    @pytest.mark.parametrize("value", [None, "", "   ", "not-a-user"])
    def test_missing_or_malformed_value(self, directory, resolver, requester, ticket, value):
        directory.set_field_value(TICKET_ID, BOSS_FIELD, value)
        with pytest.raises(MissingBossReferenceError):
            resolver.resolve_assignees(
                make_step(7, 7, boss_reference_field_id=BOSS_FIELD), requester, ticket
            )


class TestOtherStrategies:
    def test_explicit_keeps_active_users_in_step_order(self, resolver, requester, ticket):
        step = make_step(5, 5, explicit_user_ids=[21, 41, 20, 21])
        result = resolver.resolve_assignees(step, requester, ticket)

        assert result.strategy == AssignmentStrategy.EXPLICIT
        assert result.user_ids == [21, 20]

    def test_explicit_without_active_users(self, resolver, requester, ticket):
        with pytest.raises(NoEligibleAssigneeError):
            resolver.resolve_assignees(make_step(5, 5, explicit_user_ids=[41, 999]), requester, ticket)

    def test_creator(self, resolver, requester, ticket):
        result = resolver.resolve_assignees(make_step(1, 1, assign_to_creator=True), requester, ticket)
        assert result.user_ids == [CREATOR_ID]

    def test_manual_selection_returns_empty_marker(self, resolver, requester, ticket):
        result = resolver.resolve_assignees(
            make_step(4, 4, requires_manual_selection=True), requester, ticket
        )
        assert result.user_ids == []
        assert result.requires_manual_selection

    def test_step_with_two_strategies_is_rejected(self, resolver, requester, ticket):
        step = make_step(8, 8, assigned_role_id=7, assign_to_creator=True)
        with pytest.raises(InvalidWorkflowConfigurationError):
            resolver.resolve_assignees(step, requester, ticket)

    def test_step_without_strategy_is_rejected(self, resolver, requester, ticket):
        with pytest.raises(InvalidWorkflowConfigurationError):
            resolver.resolve_assignees(make_step(8, 8), requester, ticket)
