"""Checks outgoing SCIM User/Group documents before they are sent."""

from typing import Any, Dict, List

from .schemas import (
    CORE_ATTRIBUTES,
    RESOURCE_EXTENSIONS,
    core_schema_of,
    is_known_schema,
)


class ValidationError:
    """Represents a validation error with location and message."""

    def __init__(self, message: str, path: str = ""):
        self.message = message
        self.path = path

    def __str__(self):
        loc = f" at {self.path}" if self.path else ""
        return f"{self.message}{loc}"

    def __repr__(self):
        return f"ValidationError({self.message!r}, path={self.path!r})"


def validate_resource(payload: Dict[str, Any]) -> List[ValidationError]:
    """Validate a full SCIM resource (POST/PUT body).

    Returns a list of findings; an empty list means the document is valid.
    """
    errors: List[ValidationError] = []

    schemas = payload.get("schemas")
    if not isinstance(schemas, list) or not schemas:
        errors.append(ValidationError("'schemas' must be a non-empty array", "schemas"))
        return errors

    core = core_schema_of(schemas)
    if core is None:
        errors.append(ValidationError(
            "'schemas' must contain exactly one core resource URN", "schemas"
        ))
        return errors

    for urn in schemas:
        if urn == core:
            continue
        # Provider-specific extensions read back from the server are passed through.
        if is_known_schema(urn) and urn not in RESOURCE_EXTENSIONS.get(core, []):
            errors.append(ValidationError(
                f"Schema {urn} is not an extension of {core}", "schemas"
            ))

    # An extension object present in the body but missing from 'schemas'
    # is silently dropped by most providers.
    for key in payload:
        if key.startswith("urn:") and key not in schemas:
            errors.append(ValidationError(
                f"Extension {key} is present but not declared in 'schemas'", key
            ))

    attributes = CORE_ATTRIBUTES[core]
    for name, flags in attributes.items():
        value = payload.get(name)
        if flags.get("required") and (not isinstance(value, str) or not value.strip()):
            errors.append(ValidationError(f"Missing required attribute: '{name}'", name))
        if flags.get("multiValued") and value is not None:
            errors.extend(_check_multi_valued(name, value))

    return errors


def _check_multi_valued(name: str, value: Any) -> List[ValidationError]:
    if not isinstance(value, list):
        return [ValidationError(f"'{name}' must be an array", name)]

    errors: List[ValidationError] = []
    primaries = 0
    for i, item in enumerate(value):
        if not isinstance(item, dict):
            errors.append(ValidationError(f"'{name}' entries must be objects", f"{name}[{i}]"))
            continue
        if item.get("primary") is True:
            primaries += 1
    if primaries > 1:
        errors.append(ValidationError(
            f"At most one '{name}' entry may have primary=true", name
        ))
    return errors
