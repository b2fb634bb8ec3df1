"""Tests for outgoing SCIM document validation."""

from scim_sync.schemas import URN_ENTERPRISE_USER, URN_GROUP, URN_USER
from scim_sync.validator import ValidationError, validate_resource


def _messages(errors):
    return [str(e) for e in errors]


def test_valid_minimal_user():
    assert validate_resource({"schemas": [URN_USER], "userName": "jdoe"}) == []


def test_valid_user_with_enterprise_extension():
    data = {
        "schemas": [URN_USER, URN_ENTERPRISE_USER],
        "userName": "jdoe",
        URN_ENTERPRISE_USER: {"employeeNumber": "42"},
        "emails": [{"value": "j@example.com", "primary": True}],
    }
    assert validate_resource(data) == []


def test_valid_group_with_members():
    data = {
        "schemas": [URN_GROUP],
        "displayName": "Developers",
        "members": [{"value": "user-id-1"}, {"value": "user-id-2"}],
    }
    assert validate_resource(data) == []


def test_missing_schemas():
    errors = validate_resource({"userName": "jdoe"})
    assert len(errors) == 1
    assert errors[0].path == "schemas"


def test_no_core_schema():
    errors = validate_resource({"schemas": [URN_ENTERPRISE_USER], "userName": "jdoe"})
    assert "exactly one core resource URN" in _messages(errors)[0]


def test_two_core_schemas():
    errors = validate_resource({"schemas": [URN_USER, URN_GROUP], "userName": "x"})
    assert len(errors) == 1


def test_undeclared_extension_object():
    data = {"schemas": [URN_USER], "userName": "jdoe", URN_ENTERPRISE_USER: {}}
    errors = validate_resource(data)
    assert len(errors) == 1
    assert errors[0].path == URN_ENTERPRISE_USER


def test_extension_on_wrong_resource():
    data = {"schemas": [URN_GROUP, URN_ENTERPRISE_USER], "displayName": "Eng",
            URN_ENTERPRISE_USER: {}}
    errors = validate_resource(data)
    assert any("not an extension" in m for m in _messages(errors))


def test_unknown_provider_extension_passes_through():
    urn = "urn:example:params:scim:schemas:extension:acme:2.0:User"
    data = {"schemas": [URN_USER, urn], "userName": "jdoe", urn: {"badge": "7"}}
    assert validate_resource(data) == []


def test_required_attribute_must_be_non_empty():
    assert len(validate_resource({"schemas": [URN_USER], "userName": "  "})) == 1
    assert len(validate_resource({"schemas": [URN_GROUP]})) == 1


def test_multi_valued_must_be_array_of_objects():
    errors = validate_resource({"schemas": [URN_USER], "userName": "x", "emails": "a@b.c"})
    assert _messages(errors) == ["'emails' must be an array at emails"]

    errors = validate_resource({"schemas": [URN_USER], "userName": "x", "roles": ["admin"]})
    assert errors[0].path == "roles[0]"


def test_single_primary():
    data = {
        "schemas": [URN_USER],
        "userName": "x",
        "emails": [{"value": "a@b.c", "primary": True}, {"value": "d@e.f", "primary": True}],
    }
    errors = validate_resource(data)
    assert len(errors) == 1
    assert "primary" in errors[0].message


def test_error_str():
    assert str(ValidationError("Bad", "name")) == "Bad at name"
    assert str(ValidationError("Bad")) == "Bad"
