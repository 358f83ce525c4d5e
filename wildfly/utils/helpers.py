from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def now() -> str:
    return datetime.now(timezone.utc).isoformat()


def upsert_condition(conds, newc):
    """In-memory merge by .type. Only bump lastTransitionTime when status flips."""
    conds = list(conds or [])
    for i, c in enumerate(conds):
        if c.get("type") == newc["type"]:
            ltt = c.get("lastTransitionTime") or now()
            if c.get("status") != newc["status"]:
                ltt = now()
            conds[i] = {**c, **newc, "lastTransitionTime": ltt}
            break
    else:
        conds.append({**newc, "lastTransitionTime": now()})
    return conds


def owner_references(body: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Owner references of a raw object body; empty when none are set."""
    return list((body.get("metadata") or {}).get("ownerReferences") or [])


def first_owner_of_kind(body: Dict[str, Any], kind: str) -> Optional[Dict[str, Any]]:
    for ref in owner_references(body):
        if ref.get("kind") == kind:
            return ref
    return None
