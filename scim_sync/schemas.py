"""SCIM 2.0 URNs, attribute tables, and discovery documents (RFC 7643, 7644)."""

import copy
from typing import Any, Dict, List, Optional

URN_USER = "urn:ietf:params:scim:schemas:core:2.0:User"
URN_GROUP = "urn:ietf:params:scim:schemas:core:2.0:Group"
URN_ENTERPRISE_USER = "urn:ietf:params:scim:schemas:extension:enterprise:2.0:User"
URN_RESOURCE_TYPE = "urn:ietf:params:scim:schemas:core:2.0:ResourceType"
URN_SCHEMA = "urn:ietf:params:scim:schemas:core:2.0:Schema"
URN_LIST_RESPONSE = "urn:ietf:params:scim:api:messages:2.0:ListResponse"
URN_ERROR = "urn:ietf:params:scim:api:messages:2.0:Error"

SCIM_BASE_PLACEHOLDER = "{SCIM_BASE}"

# Per-attribute flags used by the outgoing payload validator.
#   required:    MUST be present and non-empty on POST/PUT
#   multiValued: MUST be a JSON array of complex values
#   readOnly:    set by the service provider only
USER_ATTRIBUTES: Dict[str, Dict[str, bool]] = {
    "userName": {"required": True},
    "name": {},
    "displayName": {},
    "nickName": {},
    "title": {},
    "active": {},
    "externalId": {},
    "emails": {"multiValued": True},
    "phoneNumbers": {"multiValued": True},
    "ims": {"multiValued": True},
    "photos": {"multiValued": True},
    "addresses": {"multiValued": True},
    "groups": {"multiValued": True, "readOnly": True},
    "entitlements": {"multiValued": True},
    "roles": {"multiValued": True},
    "x509Certificates": {"multiValued": True},
    "id": {"readOnly": True},
    "meta": {"readOnly": True},
}

GROUP_ATTRIBUTES: Dict[str, Dict[str, bool]] = {
    "displayName": {"required": True},
    "members": {"multiValued": True},
    "externalId": {},
    "id": {"readOnly": True},
    "meta": {"readOnly": True},
}

ENTERPRISE_USER_ATTRIBUTES: Dict[str, Dict[str, bool]] = {
    "employeeNumber": {},
    "costCenter": {},
    "organization": {},
    "division": {},
    "department": {},
    "manager": {},
}

CORE_ATTRIBUTES = {
    URN_USER: USER_ATTRIBUTES,
    URN_GROUP: GROUP_ATTRIBUTES,
}

EXTENSION_ATTRIBUTES = {
    URN_ENTERPRISE_USER: ENTERPRISE_USER_ATTRIBUTES,
}

# Extensions each core resource may carry.
RESOURCE_EXTENSIONS = {
    URN_USER: [URN_ENTERPRISE_USER],
    URN_GROUP: [],
}

_RESOURCE_TYPES_TEMPLATE: List[Dict[str, Any]] = [
    {
        "schemas": [URN_RESOURCE_TYPE],
        "id": "User",
        "name": "User",
        "endpoint": "/Users",
        "description": "User Account",
        "schema": URN_USER,
        "schemaExtensions": [{"schema": URN_ENTERPRISE_USER, "required": True}],
        "meta": {
            "location": "{SCIM_BASE}/ResourceTypes/User",
            "resourceType": "ResourceType",
        },
    },
    {
        "schemas": [URN_RESOURCE_TYPE],
        "id": "Group",
        "name": "Group",
        "endpoint": "/Groups",
        "description": "Group",
        "schema": URN_GROUP,
        "schemaExtensions": [],
        "meta": {
            "location": "{SCIM_BASE}/ResourceTypes/Group",
            "resourceType": "ResourceType",
        },
    },
]


def _attribute_definitions(table: Dict[str, Dict[str, bool]]) -> List[Dict[str, Any]]:
    definitions = []
    for name, flags in table.items():
        definitions.append({
            "name": name,
            "type": "complex" if flags.get("multiValued") else "string",
            "multiValued": flags.get("multiValued", False),
            "required": flags.get("required", False),
            "mutability": "readOnly" if flags.get("readOnly") else "readWrite",
            "returned": "default",
        })
    return definitions


def _schema_template(urn: str, name: str, description: str,
                     table: Dict[str, Dict[str, bool]]) -> Dict[str, Any]:
    return {
        "schemas": [URN_SCHEMA],
        "id": urn,
        "name": name,
        "description": description,
        "attributes": _attribute_definitions(table),
        "meta": {
            "location": f"{{SCIM_BASE}}/Schemas/{urn}",
            "resourceType": "Schema",
        },
    }


_SCHEMAS_TEMPLATE: List[Dict[str, Any]] = [
    _schema_template(URN_USER, "User", "User Account", USER_ATTRIBUTES),
    _schema_template(URN_GROUP, "Group", "Group", GROUP_ATTRIBUTES),
    _schema_template(URN_ENTERPRISE_USER, "EnterpriseUser", "Enterprise User",
                     ENTERPRISE_USER_ATTRIBUTES),
]


def _substitute_base(value: Any, base_url: str) -> Any:
    """Recursively replace ``{SCIM_BASE}`` in every string of a JSON document."""
    if isinstance(value, str):
        return value.replace(SCIM_BASE_PLACEHOLDER, base_url)
    if isinstance(value, list):
        return [_substitute_base(v, base_url) for v in value]
    if isinstance(value, dict):
        return {k: _substitute_base(v, base_url) for k, v in value.items()}
    return value


def resource_types(base_url: str) -> List[Dict[str, Any]]:
    """Return the bundled ResourceType documents bound to ``base_url``."""
    return _substitute_base(copy.deepcopy(_RESOURCE_TYPES_TEMPLATE), base_url.rstrip("/"))


def schema_documents(base_url: str) -> List[Dict[str, Any]]:
    """Return the bundled Schema documents bound to ``base_url``."""
    return _substitute_base(copy.deepcopy(_SCHEMAS_TEMPLATE), base_url.rstrip("/"))


def endpoint_for(resource_type: str) -> str:
    """Map a resourceType name (``User``) to its endpoint path (``/Users``)."""
    for rt in _RESOURCE_TYPES_TEMPLATE:
        if rt["name"] == resource_type:
            return rt["endpoint"]
    raise KeyError(f"Unknown SCIM resource type: {resource_type}")


def is_known_schema(urn: str) -> bool:
    return urn in CORE_ATTRIBUTES or urn in EXTENSION_ATTRIBUTES


def core_schema_of(schemas: List[str]) -> Optional[str]:
    """Return the single core resource URN in ``schemas``, or None if absent or ambiguous."""
    cores = [s for s in schemas if s in CORE_ATTRIBUTES]
    if len(cores) != 1:
        return None
    return cores[0]
