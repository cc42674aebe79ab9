"""
Migrate legacy assignee columns

Converts the comma separated ``usu_asig`` column of stored tickets into the
``assignee_ids`` array the engine reads and writes.

Run: python -m scripts.migrate_legacy_assignees [--dry-run]
"""
import argparse

from ticketflow.repositories.mongo_client import get_collection
from ticketflow.repositories.legacy_adapter import LEGACY_ASSIGNEES_FIELD, parse_assignee_csv
from ticketflow.utils.logger import setup_logging, get_logger

logger = get_logger(__name__)


def migrate(dry_run: bool = False) -> int:
    tickets = get_collection("tickets")
    pending = list(tickets.find(
        {LEGACY_ASSIGNEES_FIELD: {"$exists": True}},
        {"id": 1, LEGACY_ASSIGNEES_FIELD: 1, "assignee_ids": 1}
    ))
    print(f"Found {len(pending)} tickets with a legacy assignee column")

    migrated = 0
    for doc in pending:
        assignee_ids = parse_assignee_csv(doc.get(LEGACY_ASSIGNEES_FIELD))
        if isinstance(doc.get("assignee_ids"), list):
            # Arrays written by the engine win over the legacy column
            assignee_ids = doc["assignee_ids"]
        print(f"  ticket {doc.get('id')}: {doc.get(LEGACY_ASSIGNEES_FIELD)!r} -> {assignee_ids}")
        if dry_run:
            continue
        result = tickets.update_one(
            {"_id": doc["_id"]},
            {"$set": {"assignee_ids": assignee_ids}, "$unset": {LEGACY_ASSIGNEES_FIELD: ""}}
        )
        migrated += result.modified_count

    logger.info(f"Legacy assignee migration finished: {migrated} tickets updated")
    print(f"\nTotal migrated: {migrated}{' (dry run)' if dry_run else ''}")
    return migrated


def main():
    parser = argparse.ArgumentParser(description="Convert legacy CSV assignees into arrays")
    parser.add_argument("--dry-run", action="store_true", help="Only print the conversions")
    args = parser.parse_args()

    setup_logging()
    migrate(dry_run=args.dry_run)


if __name__ == "__main__":
    main()
