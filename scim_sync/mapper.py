"""Translates local user and group records into SCIM 2.0 resource documents.

The mapper is pure: it never talks to the network and never touches the
correlation attributes.  Callers that update an existing remote resource
pass the document they read back as ``existing`` so that provider-managed
attributes and extensions survive the PUT.

Extension objects live under their schema URN as a top-level key and the
same URN MUST be listed in ``schemas`` (RFC 7643 Section 3.3).  Documents
read back from a server may carry ``schemas`` as any JSON array, so the
mapper always rebuilds it as a fresh list before attaching extensions.
"""

import copy
import json
import logging
from typing import Any, Dict, List, Optional

from .models import LocalGroup, LocalUser
from .schemas import URN_ENTERPRISE_USER, URN_GROUP, URN_USER, is_known_schema

logger = logging.getLogger(__name__)

# Local attributes holding a JSON object for a single multi-valued entry.
ADDRESS_ATTRIBUTE = "addresses_primary"
PHONE_ATTRIBUTE = "phoneNumbers_primary"

# Multi-valued attributes the local store has no source for.
_ALWAYS_EMPTY = ("ims", "photos", "entitlements", "x509Certificates")


def _is_set(value: Optional[str]) -> bool:
    return not (value is None or value == "" or value == "null")


def _attr(record, name: str) -> Optional[str]:
    """Return the first value of attribute ``name`` if it is set, else None."""
    value = record.get_first_attribute(name)
    return value if _is_set(value) else None


def _base_document(existing: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Deep-copy ``existing`` without its read-only ``meta``, or start empty."""
    resource = copy.deepcopy(existing) if existing else {}
    resource.pop("meta", None)
    return resource


def _reset_schemas(resource: Dict[str, Any], core_urns: List[str]) -> None:
    """Replace ``schemas`` with a fresh list of ``core_urns`` plus carried extensions.

    Extensions are carried whether ``existing`` declared them in ``schemas``
    or only as a top-level object.  Other known schemas (another resource's
    core URN) are dropped.
    """
    declared = resource.get("schemas")
    if not isinstance(declared, (list, tuple)):
        declared = []
    schemas = list(core_urns)
    for urn in list(declared) + list(resource):
        if not isinstance(urn, str) or not urn.startswith("urn:") or urn in schemas:
            continue
        if is_known_schema(urn):
            continue
        schemas.append(urn)
    resource["schemas"] = schemas


def attach_extension(resource: Dict[str, Any], urn: str, values: Dict[str, Any]) -> None:
    """Attach an extension object under ``urn`` and declare it in ``schemas``."""
    resource[urn] = values
    schemas = resource.setdefault("schemas", [])
    if urn not in schemas:
        schemas.append(urn)


def _json_entry(user: LocalUser, attribute: str, label: str) -> List[Dict[str, Any]]:
    """Parse a single JSON-object attribute into a one-element multi-valued list."""
    raw = _attr(user, attribute)
    if raw is None:
        return []
    try:
        entry = json.loads(raw)
    except ValueError:
        logger.error("Error while adding user %s for %s: invalid JSON in %s",
                     label, user.username, attribute)
        return []
    if not isinstance(entry, dict):
        logger.error("Error while adding user %s for %s: %s is not a JSON object",
                     label, user.username, attribute)
        return []
    return [entry]


def _build_name(user: LocalUser, existing: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    name: Dict[str, Any] = dict(existing) if isinstance(existing, dict) else {}
    before = (name.get("givenName"), name.get("familyName"))
    name["givenName"] = user.first_name if user.first_name is not None else user.username
    if user.last_name is not None:
        name["familyName"] = user.last_name
    else:
        name.pop("familyName", None)
    # formatted only survives while the name parts are unchanged
    if (name.get("givenName"), name.get("familyName")) != before:
        name.pop("formatted", None)

    for part in ("honorificPrefix", "honorificSuffix"):
        value = _attr(user, part)
        if value is not None:
            name[part] = value
    return name


def build_scim_user(
    user: LocalUser,
    existing: Optional[Dict[str, Any]] = None,
    group_ids: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """Map a local user onto a SCIM User with the Enterprise User extension.

    Args:
        user:      The local user record.
        existing:  Remote representation to update in place (for PUT), if any.
        group_ids: Local group id -> remote group id, for correlated groups.
                   Uncorrelated groups are referenced by their local id.

    Returns:
        A new SCIM User document; ``existing`` is not mutated.
    """
    group_ids = group_ids or {}
    resource = _base_document(existing)
    _reset_schemas(resource, [URN_USER, URN_ENTERPRISE_USER])

    resource["userName"] = user.username
    name = _build_name(user, resource.get("name"))
    resource["name"] = name

    if user.email is not None:
        resource["emails"] = [{"type": "work", "primary": True, "value": user.email}]
    else:
        resource["emails"] = []

    enterprise = resource.get(URN_ENTERPRISE_USER)
    attach_extension(resource, URN_ENTERPRISE_USER,
                     dict(enterprise) if isinstance(enterprise, dict) else {})

    resource["externalId"] = user.id
    resource["active"] = user.enabled

    resource["groups"] = [
        {"display": g.name, "value": group_ids.get(g.id, g.id), "type": "direct"}
        for g in user.groups
    ]
    resource["roles"] = [
        {"display": r.name, "value": r.id, "type": "direct", "primary": False}
        for r in user.roles
    ]

    title = _attr(user, "title")
    if title is not None:
        resource["title"] = title

    display_name = _attr(user, "displayName")
    if display_name is None:
        given = name.get("givenName") or ""
        family = name.get("familyName") or ""
        display_name = f"{given} {family}".strip()
    resource["displayName"] = display_name

    nick_name = _attr(user, "nickName")
    if nick_name is not None:
        resource["nickName"] = nick_name

    resource["addresses"] = _json_entry(user, ADDRESS_ATTRIBUTE, "address")
    resource["phoneNumbers"] = _json_entry(user, PHONE_ATTRIBUTE, "phone number")

    for attribute in _ALWAYS_EMPTY:
        resource[attribute] = []

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("SCIM user: %s", json.dumps(resource, indent=2, sort_keys=True))
    return resource


def build_scim_group(
    group: LocalGroup, existing: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Map a local group onto a SCIM Group.

    Membership is not written here; it is carried by each user's ``groups``.
    """
    resource = _base_document(existing)
    _reset_schemas(resource, [URN_GROUP])
    resource["displayName"] = group.name
    resource["externalId"] = group.id
    return resource
