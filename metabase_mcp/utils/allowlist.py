# metabase_mcp/utils/allowlist.py
from typing import Any, Iterable


def is_database_allowed(database_id: Any, allowed: Iterable[str]) -> bool:
    """
    An empty allow-list means no restriction.
    Otherwise the id must match an entry exactly once turned into a string.
    """
    allowed = tuple(allowed)
    if not allowed:
        return True
    return str(database_id) in allowed
