"""Stores remote SCIM ids on local records.

The id the SCIM provider assigns to a resource is written back onto the
local user or group as a single-valued attribute named
``skss_id_<component_id>``.  Keying by component id lets one record be
mirrored into several provider components at once.
"""

from typing import Optional

from .errors import CorrelationError

ATTRIBUTE_PREFIX = "skss_id_"


def attribute_key(component_id: str) -> str:
    """Return the attribute name holding the external id for ``component_id``."""
    return f"{ATTRIBUTE_PREFIX}{component_id}"


def is_blank(value: Optional[str]) -> bool:
    """True for None, empty strings, and the literal ``"null"`` some stores write."""
    return value is None or value == "" or value == "null"


def get_external_id(record, component_id: str) -> Optional[str]:
    value = record.get_first_attribute(attribute_key(component_id))
    if is_blank(value):
        return None
    return value


def save_external_id(record, component_id: str, external_id: Optional[str]) -> None:
    if is_blank(external_id):
        raise CorrelationError(
            f"Refusing to store an empty external id for component {component_id!r}"
        )
    record.set_single_attribute(attribute_key(component_id), external_id)


def clear_external_id(record, component_id: str) -> None:
    record.remove_attribute(attribute_key(component_id))
