"""Workflow Engine - Navigation, assignment, deadlines and permissions

StepAdvancementOrchestrator lives in .orchestrator and is imported from
there; it wires the Mongo repositories, which themselves use this package.
"""
from .business_calendar import BusinessCalendar
from .permission_cache import PermissionCache
from .assignment_resolver import AssignmentResolver
from .workflow_navigator import WorkflowNavigator
from .parallel_coordinator import ParallelStepCoordinator
from .config_validator import WorkflowConfigValidator
from .history_writer import AssignmentHistoryWriter

__all__ = [
    "BusinessCalendar",
    "PermissionCache",
    "AssignmentResolver",
    "WorkflowNavigator",
    "ParallelStepCoordinator",
    "WorkflowConfigValidator",
    "AssignmentHistoryWriter",
]
