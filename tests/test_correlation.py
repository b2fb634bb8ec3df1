"""Tests for the external id correlation attributes and local record models."""

import pytest
from scim_sync.correlation import (
    attribute_key,
    clear_external_id,
    get_external_id,
    save_external_id,
)
from scim_sync.errors import CorrelationError
from scim_sync.models import LocalGroup, LocalUser


def test_attribute_key():
    assert attribute_key("acme") == "skss_id_acme"


def test_save_and_get_external_id():
    user = LocalUser(id="u-1", username="jdoe")
    assert get_external_id(user, "acme") is None

    save_external_id(user, "acme", "remote-1")
    assert get_external_id(user, "acme") == "remote-1"
    assert user.attributes["skss_id_acme"] == ["remote-1"]


def test_components_are_independent():
    group = LocalGroup(id="g-1", name="Engineering")
    save_external_id(group, "acme", "a")
    save_external_id(group, "globex", "b")
    assert get_external_id(group, "acme") == "a"
    assert get_external_id(group, "globex") == "b"

    clear_external_id(group, "acme")
    assert get_external_id(group, "acme") is None
    assert get_external_id(group, "globex") == "b"


def test_save_replaces_previous_value():
    user = LocalUser(id="u-1", username="jdoe", attributes={"skss_id_acme": ["old", "stale"]})
    save_external_id(user, "acme", "new")
    assert user.attributes["skss_id_acme"] == ["new"]


@pytest.mark.parametrize("stored", ["", "null"])
def test_blank_stored_values_count_as_absent(stored):
    user = LocalUser(id="u-1", username="jdoe", attributes={"skss_id_acme": [stored]})
    assert get_external_id(user, "acme") is None


@pytest.mark.parametrize("value", [None, ""])
def test_refuses_to_store_empty_id(value):
    user = LocalUser(id="u-1", username="jdoe")
    with pytest.raises(CorrelationError):
        save_external_id(user, "acme", value)
    assert "skss_id_acme" not in user.attributes


def test_clear_missing_is_noop():
    user = LocalUser(id="u-1", username="jdoe")
    clear_external_id(user, "acme")
    assert user.attributes == {}


def test_user_from_dict_normalizes_attributes():
    user = LocalUser.from_dict({
        "id": 7,
        "username": "jdoe",
        "firstName": "John",
        "attributes": {"title": "Engineer", "tags": ["a", None, "b"], "gone": None},
        "roles": [{"id": "r-1", "name": "admin"}],
    })
    assert user.id == "7"
    assert user.enabled is True
    assert user.attributes == {"title": ["Engineer"], "tags": ["a", "b"]}
    assert user.get_first_attribute("title") == "Engineer"
    assert user.get_first_attribute("missing") is None
    assert user.roles[0].name == "admin"


def test_user_to_dict_references_groups_by_id():
    user = LocalUser(id="u-1", username="jdoe", email="j@example.com",
                     groups=[LocalGroup("g-1", "Eng")])
    data = user.to_dict()
    assert data["groups"] == ["g-1"]
    assert data["email"] == "j@example.com"
    assert "firstName" not in data
