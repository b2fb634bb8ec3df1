"""Local identity records handed to scim-sync by the host identity system.

Attributes are multi-valued (``name -> [values]``) the way identity stores
keep them.  Only the first value of an attribute is ever mapped to SCIM; the
correlation store writes single-valued attributes.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def _normalize_attributes(raw: Optional[Dict[str, Any]]) -> Dict[str, List[str]]:
    """Coerce ``{"k": "v"}`` / ``{"k": ["v", ...]}`` into ``{"k": ["v", ...]}``."""
    attributes: Dict[str, List[str]] = {}
    for key, value in (raw or {}).items():
        if value is None:
            continue
        if isinstance(value, list):
            attributes[key] = [str(v) for v in value if v is not None]
        else:
            attributes[key] = [str(value)]
    return attributes


class _AttributeHolder:
    """Mixin giving records the host platform's attribute accessors."""

    attributes: Dict[str, List[str]]

    def get_first_attribute(self, name: str) -> Optional[str]:
        values = self.attributes.get(name)
        if not values:
            return None
        return values[0]

    def set_single_attribute(self, name: str, value: str) -> None:
        self.attributes[name] = [value]

    def remove_attribute(self, name: str) -> None:
        self.attributes.pop(name, None)


@dataclass
class LocalRole:
    id: str
    name: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LocalRole":
        return cls(id=str(data["id"]), name=str(data.get("name") or data["id"]))

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass
class LocalGroup(_AttributeHolder):
    id: str
    name: str
    attributes: Dict[str, List[str]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LocalGroup":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            attributes=_normalize_attributes(data.get("attributes")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "attributes": {k: list(v) for k, v in self.attributes.items()},
        }


@dataclass
class LocalUser(_AttributeHolder):
    """A user account in the local identity system.

    ``groups`` holds the groups the user is a direct member of, and ``roles``
    the roles mapped onto the user.  Both are mirrored into the SCIM User's
    ``groups`` and ``roles`` attributes.
    """

    id: str
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    enabled: bool = True
    attributes: Dict[str, List[str]] = field(default_factory=dict)
    groups: List[LocalGroup] = field(default_factory=list)
    roles: List[LocalRole] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LocalUser":
        """Build a user from its record-file form.

        ``groups`` entries must already be group dicts; resolving group
        references by id is done by ``records.load_records``.
        """
        return cls(
            id=str(data["id"]),
            username=str(data["username"]),
            first_name=data.get("firstName"),
            last_name=data.get("lastName"),
            email=data.get("email"),
            enabled=bool(data.get("enabled", True)),
            attributes=_normalize_attributes(data.get("attributes")),
            groups=[LocalGroup.from_dict(g) for g in data.get("groups", [])],
            roles=[LocalRole.from_dict(r) for r in data.get("roles", [])],
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "username": self.username,
            "enabled": self.enabled,
            "attributes": {k: list(v) for k, v in self.attributes.items()},
            "groups": [g.id for g in self.groups],
            "roles": [r.to_dict() for r in self.roles],
        }
        if self.first_name is not None:
            data["firstName"] = self.first_name
        if self.last_name is not None:
            data["lastName"] = self.last_name
        if self.email is not None:
            data["email"] = self.email
        return data
