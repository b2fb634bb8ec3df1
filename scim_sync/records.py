"""Reads and writes JSON record files used by the command line.

Layout::

    {
      "groups": [{"id": "g1", "name": "Engineering", "attributes": {}}],
      "users": [{"id": "u1", "username": "jdoe", "groups": ["g1"], ...}]
    }

User ``groups`` entries reference top-level groups by id (or inline a group
object).  References resolve to the same ``LocalGroup`` instance so that an
external id stored while processing one user is seen by every other user and
written back once.
"""

import json
from typing import Any, Dict, List, Tuple

from .models import LocalGroup, LocalUser


def parse_records(data: Dict[str, Any]) -> Tuple[List[LocalUser], List[LocalGroup]]:
    if not isinstance(data, dict):
        raise ValueError("Record file must contain a JSON object")

    groups = [LocalGroup.from_dict(g) for g in data.get("groups", [])]
    by_id = {g.id: g for g in groups}

    users = []
    for raw in data.get("users", []):
        refs = raw.get("groups", [])
        user = LocalUser.from_dict(dict(raw, groups=[]))
        for ref in refs:
            group_id = str(ref["id"]) if isinstance(ref, dict) else str(ref)
            group = by_id.get(group_id)
            if group is None:
                if not isinstance(ref, dict):
                    raise ValueError(f"User {user.username} references unknown group {group_id!r}")
                group = LocalGroup.from_dict(ref)
                by_id[group.id] = group
                groups.append(group)
            user.groups.append(group)
        users.append(user)
    return users, groups


def load_records(path: str) -> Tuple[List[LocalUser], List[LocalGroup]]:
    with open(path, "r", encoding="utf-8") as f:
        return parse_records(json.load(f))


def records_to_dict(users: List[LocalUser], groups: List[LocalGroup]) -> Dict[str, Any]:
    return {
        "groups": [g.to_dict() for g in groups],
        "users": [u.to_dict() for u in users],
    }


def dump_records(path: str, users: List[LocalUser], groups: List[LocalGroup]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(records_to_dict(users, groups), f, indent=2)
        f.write("\n")
