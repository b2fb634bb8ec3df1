"""Tests for local record -> SCIM document mapping."""

import logging

import pytest
from scim_sync.mapper import attach_extension, build_scim_group, build_scim_user
from scim_sync.models import LocalGroup, LocalRole, LocalUser
from scim_sync.schemas import URN_ENTERPRISE_USER, URN_GROUP, URN_USER
from scim_sync.validator import validate_resource


@pytest.fixture
def user():
    return LocalUser(
        id="local-1",
        username="jdoe",
        first_name="John",
        last_name="Doe",
        email="jdoe@example.com",
        enabled=True,
        groups=[LocalGroup("g-1", "Engineering")],
        roles=[LocalRole("r-1", "admin")],
    )


def test_core_fields(user):
    doc = build_scim_user(user)
    assert doc["userName"] == "jdoe"
    assert doc["externalId"] == "local-1"
    assert doc["active"] is True
    assert doc["name"] == {"givenName": "John", "familyName": "Doe"}
    assert doc["displayName"] == "John Doe"
    assert doc["emails"] == [{"type": "work", "primary": True, "value": "jdoe@example.com"}]


def test_schemas_include_enterprise_extension(user):
    doc = build_scim_user(user)
    assert doc["schemas"] == [URN_USER, URN_ENTERPRISE_USER]
    assert doc[URN_ENTERPRISE_USER] == {}
    assert validate_resource(doc) == []


def test_given_name_falls_back_to_username():
    doc = build_scim_user(LocalUser(id="1", username="svc-bot"))
    assert doc["name"] == {"givenName": "svc-bot"}
    assert doc["displayName"] == "svc-bot"
    assert doc["emails"] == []


def test_disabled_user_is_inactive(user):
    user.enabled = False
    assert build_scim_user(user)["active"] is False


def test_groups_and_roles(user):
    doc = build_scim_user(user)
    assert doc["groups"] == [{"display": "Engineering", "value": "g-1", "type": "direct"}]
    assert doc["roles"] == [
        {"display": "admin", "value": "r-1", "type": "direct", "primary": False}
    ]


def test_groups_use_remote_id_when_correlated(user):
    doc = build_scim_user(user, group_ids={"g-1": "remote-g"})
    assert doc["groups"][0]["value"] == "remote-g"


def test_optional_attributes(user):
    user.attributes = {
        "title": ["Engineer"],
        "nickName": ["JD"],
        "displayName": ["Johnny"],
        "honorificPrefix": ["Dr."],
        "honorificSuffix": ["PhD"],
    }
    doc = build_scim_user(user)
    assert doc["title"] == "Engineer"
    assert doc["nickName"] == "JD"
    assert doc["displayName"] == "Johnny"
    assert doc["name"]["honorificPrefix"] == "Dr."
    assert doc["name"]["honorificSuffix"] == "PhD"


@pytest.mark.parametrize("value", ["", "null"])
def test_blank_attributes_are_ignored(user, value):
    user.attributes = {"title": [value], "displayName": [value], "nickName": [value]}
    doc = build_scim_user(user)
    assert "title" not in doc
    assert "nickName" not in doc
    assert doc["displayName"] == "John Doe"


def test_address_and_phone_from_json(user):
    user.attributes = {
        "addresses_primary": ['{"streetAddress": "1 Main St", "locality": "Springfield", "primary": true}'],
        "phoneNumbers_primary": ['{"value": "+1 555 0100", "type": "work"}'],
    }
    doc = build_scim_user(user)
    assert doc["addresses"] == [
        {"streetAddress": "1 Main St", "locality": "Springfield", "primary": True}
    ]
    assert doc["phoneNumbers"] == [{"value": "+1 555 0100", "type": "work"}]


def test_invalid_address_json_is_logged_and_dropped(user, caplog):
    user.attributes = {"addresses_primary": ["{not json"], "phoneNumbers_primary": ['"+1 555"']}
    with caplog.at_level(logging.ERROR, logger="scim_sync.mapper"):
        doc = build_scim_user(user)
    assert doc["addresses"] == []
    assert doc["phoneNumbers"] == []
    assert "address" in caplog.text
    assert "phone number" in caplog.text


def test_unsourced_multi_valued_attributes_are_empty(user):
    doc = build_scim_user(user)
    for attribute in ("ims", "photos", "entitlements", "x509Certificates"):
        assert doc[attribute] == []


def test_update_keeps_remote_fields_and_extensions(user):
    existing = {
        "schemas": (URN_USER,),
        "id": "remote-1",
        "userName": "old",
        "name": {"givenName": "Old", "middleName": "Q"},
        "meta": {"resourceType": "User"},
        "preferredLanguage": "en",
        URN_ENTERPRISE_USER: {"employeeNumber": "42"},
        "urn:example:params:scim:schemas:extension:acme:2.0:User": {"badge": "7"},
    }
    doc = build_scim_user(user, existing=existing)

    assert "meta" not in doc
    assert doc["id"] == "remote-1"
    assert doc["userName"] == "jdoe"
    assert doc["preferredLanguage"] == "en"
    assert doc["name"]["middleName"] == "Q"
    assert doc[URN_ENTERPRISE_USER] == {"employeeNumber": "42"}
    assert isinstance(doc["schemas"], list)
    assert "urn:example:params:scim:schemas:extension:acme:2.0:User" in doc["schemas"]
    assert doc["schemas"][:2] == [URN_USER, URN_ENTERPRISE_USER]
    assert validate_resource(doc) == []
    # existing must not be mutated
    assert existing["userName"] == "old"
    assert "meta" in existing


def test_update_drops_family_name_removed_locally(user):
    user.last_name = None
    doc = build_scim_user(user, existing={"name": {"givenName": "John", "familyName": "Doe"}})
    assert "familyName" not in doc["name"]
    assert doc["displayName"] == "John"


def test_update_keeps_extension_declared_only_in_schemas():
    existing = {
        "schemas": [URN_USER, "urn:acme:ext:1.0:User", URN_GROUP],
        "id": "remote-1",
        "userName": "jdoe",
    }
    doc = build_scim_user(LocalUser(id="l1", username="jdoe"), existing=existing)
    assert doc["schemas"] == [URN_USER, URN_ENTERPRISE_USER, "urn:acme:ext:1.0:User"]
    assert validate_resource(doc) == []


def test_update_drops_formatted_name_on_rename(user):
    existing = {"name": {"givenName": "Jon", "familyName": "Doe", "formatted": "Jon Doe"}}
    doc = build_scim_user(user, existing=existing)
    assert doc["name"] == {"givenName": "John", "familyName": "Doe"}


def test_update_keeps_formatted_name_when_unchanged(user):
    existing = {"name": {"givenName": "John", "familyName": "Doe", "formatted": "Mr. John Doe"}}
    doc = build_scim_user(user, existing=existing)
    assert doc["name"]["formatted"] == "Mr. John Doe"


def test_attach_extension_declares_schema():
    resource = {"schemas": [URN_USER], "userName": "x"}
    attach_extension(resource, URN_ENTERPRISE_USER, {"department": "R&D"})
    attach_extension(resource, URN_ENTERPRISE_USER, {"department": "Ops"})
    assert resource["schemas"] == [URN_USER, URN_ENTERPRISE_USER]
    assert resource[URN_ENTERPRISE_USER] == {"department": "Ops"}


def test_build_group():
    doc = build_scim_group(LocalGroup("g-1", "Engineering"))
    assert doc == {"schemas": [URN_GROUP], "displayName": "Engineering", "externalId": "g-1"}
    assert validate_resource(doc) == []


def test_build_group_from_existing_renames():
    existing = {
        "schemas": [URN_GROUP],
        "id": "remote-g",
        "displayName": "Old name",
        "members": [{"value": "u-1"}],
        "meta": {"resourceType": "Group"},
    }
    doc = build_scim_group(LocalGroup("g-1", "New name"), existing=existing)
    assert doc["displayName"] == "New name"
    assert doc["members"] == [{"value": "u-1"}]
    assert "meta" not in doc
