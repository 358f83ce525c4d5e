from typing import Dict, List, Optional


def members_changed(
    stored: Optional[List[str]], observed: Optional[List[str]], ordered: bool = True
) -> bool:
    """True when the member list recorded on the status differs from the
    observed pod names.

    The comparison is order sensitive unless `ordered` is False, in which
    case both lists are sorted first.
    """
    stored = list(stored or [])
    observed = list(observed or [])
    if not ordered:
        return sorted(stored) != sorted(observed)
    return stored != observed


def addresses_changed(
    stored: Optional[Dict[str, str]], observed: Optional[Dict[str, str]]
) -> bool:
    """Mapping equality of external addresses; a missing map equals an empty one."""
    return dict(stored or {}) != dict(observed or {})
