"""
Validate every stored workflow definition

Run: python -m scripts.validate_workflows [--flow-id N]
Exits with status 1 when any definition is invalid.
"""
import argparse
import sys

from ticketflow.repositories.workflow_repo import WorkflowRepository
from ticketflow.engine.config_validator import WorkflowConfigValidator


def main():
    parser = argparse.ArgumentParser(description="Validate stored workflow definitions")
    parser.add_argument("--flow-id", type=int, default=None, help="Validate a single flow")
    args = parser.parse_args()

    validator = WorkflowConfigValidator()
    # Load without validation so every problem can be reported
    repo = WorkflowRepository(validator=_PassThroughValidator())

    flow_ids = [args.flow_id] if args.flow_id is not None else repo.list_flow_ids()
    failures = 0
    for flow_id in flow_ids:
        definition = repo.get_definition(flow_id)
        if definition is None:
            print(f"- flow {flow_id}: not found or inactive")
            continue

        result = validator.check(definition)
        marker = "OK " if result["is_valid"] else "BAD"
        print(f"[{marker}] flow {flow_id} ({definition.flow.name}): "
              f"{len(definition.steps)} steps, {len(definition.transitions)} transitions")
        for error in result["errors"]:
            print(f"      error   {error['type']}: {error['message']}")
        for warning in result["warnings"]:
            print(f"      warning {warning['type']}: {warning['message']}")
        if not result["is_valid"]:
            failures += 1

    print(f"\n{len(flow_ids) - failures}/{len(flow_ids)} workflows valid")
    sys.exit(1 if failures else 0)


class _PassThroughValidator(WorkflowConfigValidator):
    def validate(self, definition):
        return definition


if __name__ == "__main__":
    main()
