"""Legacy storage adapters

The legacy help desk stored multiple assignees of a ticket as a comma
separated string column (``usu_asig``) and encoded "assign to the requester's
boss" as ``boss_reference_field_id == -1``. These helpers translate both at
the storage boundary so the domain only sees lists of ints and explicit flags.
"""
from typing import Any, Dict, Iterable, List, Optional

from ..utils.logger import get_logger

logger = get_logger(__name__)

LEGACY_ASSIGNEES_FIELD = "usu_asig"
BOSS_SENTINEL_FIELD_ID = -1


def parse_assignee_csv(value: Optional[Any]) -> List[int]:
    """
    Parse a legacy assignee column into ordered unique user ids

    Examples:
        >>> parse_assignee_csv("12, 15,12")
        [12, 15]
        >>> parse_assignee_csv(None)
        []
    """
    if value is None:
        return []
    if isinstance(value, int):
        return [value]

    result: List[int] = []
    for part in str(value).split(","):
        part = part.strip()
        if not part:
            continue
        try:
            user_id = int(part)
        except ValueError:
            logger.warning(f"Ignoring non-numeric legacy assignee '{part}'")
            continue
        if user_id not in result:
            result.append(user_id)
    return result


def format_assignee_csv(user_ids: Iterable[int]) -> str:
    """Render user ids as the legacy comma separated column"""
    return ",".join(str(user_id) for user_id in user_ids)


def assignees_from_document(doc: Dict[str, Any]) -> List[int]:
    """Assignee ids of a ticket document, falling back to the legacy column"""
    assignee_ids = doc.get("assignee_ids")
    if isinstance(assignee_ids, list):
        return [int(user_id) for user_id in assignee_ids]
    return parse_assignee_csv(doc.get(LEGACY_ASSIGNEES_FIELD))


def normalize_step_document(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Translate legacy step encodings into explicit step flags"""
    doc = dict(doc)
    if doc.get("boss_reference_field_id") == BOSS_SENTINEL_FIELD_ID:
        doc["boss_reference_field_id"] = None
        doc["requires_boss_approval"] = True
    return doc
