"""Decides create vs. update vs. delete and drives the remote SCIM endpoint.

Every operation follows the same path: look up the correlation attribute on
the local record, map the record to a SCIM document, call the provider, and
write the id the provider returned back onto the record.

When the provider component is misconfigured the synchronizer still
constructs; the error is logged and kept, every operation becomes a no-op,
and ``validate()`` raises it.  The host can then keep processing events
while surfacing the configuration problem in its admin console.
"""

import logging
from typing import Any, Dict, Optional

from .config import ProviderConfig
from .correlation import clear_external_id, get_external_id, save_external_id
from .errors import ConfigurationError, CorrelationError, PayloadError, SCIMError
from .http_client import SCIMClient
from .mapper import build_scim_group, build_scim_user
from .models import LocalGroup, LocalUser
from .validator import validate_resource

logger = logging.getLogger(__name__)


class ScimSynchronizer:
    """Mirrors local user/group lifecycle changes into one SCIM provider.

    Args:
        config: Settings of the provider component.
        client: Pre-built client; when omitted one is built from ``config``.
    """

    def __init__(self, config: ProviderConfig, client: Optional[SCIMClient] = None):
        self.config = config
        self.component_id = config.component_id
        self.client: Optional[SCIMClient] = client
        self.build_error: Optional[ConfigurationError] = None

        logger.info("SCIM 2.0 endpoint: %s", config.endpoint)
        if self.client is None:
            try:
                self.client = config.build_client()
            except ConfigurationError as e:
                self.build_error = e
                logger.error("SCIM client setup failed for component %s: %s",
                             self.component_id, e)

    def validate(self) -> None:
        """Raise the stored setup error, or check that the endpoint answers."""
        if self.build_error is not None:
            raise self.build_error
        self.client.service_provider_config()

    # -- Users ---------------------------------------------------------------

    def create_user(self, user: LocalUser) -> Optional[Dict[str, Any]]:
        """Create ``user`` remotely unless it is already correlated.

        Returns the created resource, or None when nothing was sent.
        """
        if self.client is None:
            return None
        if get_external_id(user, self.component_id) is not None:
            logger.info("User already exists in the SCIM provider: %s", user.username)
            return None

        self._ensure_groups(user)
        payload = build_scim_user(user, group_ids=self._group_ids(user))
        self._check(payload, "User", user.username)
        created = self.client.create_user(payload)
        save_external_id(user, self.component_id, created.get("id"))
        logger.info("User %s synced to SCIM provider as %s", user.username, created.get("id"))
        return created

    def update_user(self, user: LocalUser) -> Optional[Dict[str, Any]]:
        """Replace the remote copy of ``user``; no-op when not correlated."""
        if self.client is None:
            return None
        external_id = get_external_id(user, self.component_id)
        if external_id is None:
            logger.info("User does not exist in the SCIM provider: %s", user.username)
            return None

        existing = self.client.read_user(external_id)
        self._ensure_groups(user)
        payload = build_scim_user(user, existing=existing, group_ids=self._group_ids(user))
        self._check(payload, "User", user.username)
        updated = self.client.replace_user(external_id, payload)
        save_external_id(user, self.component_id, updated.get("id") or external_id)
        logger.info("User %s updated in SCIM provider (%s)", user.username, external_id)
        return updated

    def get_user(self, user: LocalUser) -> Optional[Dict[str, Any]]:
        if self.client is None:
            return None
        external_id = get_external_id(user, self.component_id)
        if external_id is None:
            logger.info("User does not exist in the SCIM provider: %s", user.username)
            return None
        return self.client.read_user(external_id)

    def delete_user(self, external_id: Optional[str]) -> None:
        """Delete a remote user by its provider id.

        Used when the local record is already gone and only the stored id
        survives.
        """
        if self.client is None:
            return
        if external_id is not None:
            self.client.delete_user(external_id)
            logger.info("User %s deleted from SCIM provider", external_id)

    def remove_user(self, user: LocalUser) -> bool:
        """Delete the remote copy of ``user`` and drop its correlation.

        Returns True when a correlation existed.
        """
        if self.client is None:
            return False
        external_id = get_external_id(user, self.component_id)
        if external_id is None:
            logger.info("User does not exist in the SCIM provider: %s", user.username)
            return False
        try:
            self.delete_user(external_id)
        except SCIMError as e:
            if not e.not_found:
                raise
            logger.warning("User %s (%s) was already gone from the SCIM provider",
                           user.username, external_id)
        clear_external_id(user, self.component_id)
        return True

    def sync_user(self, user: LocalUser) -> Optional[Dict[str, Any]]:
        """Update ``user`` if correlated, otherwise create it.

        A correlation pointing at a resource the provider no longer has is
        dropped and the user is created again.
        """
        if self.client is None:
            return None
        external_id = get_external_id(user, self.component_id)
        if external_id is not None:
            try:
                return self.update_user(user)
            except SCIMError as e:
                if not e.not_found:
                    raise
                logger.warning("Remote user %s for %s is gone, recreating",
                               external_id, user.username)
                clear_external_id(user, self.component_id)
        return self.create_user(user)

    # -- Groups --------------------------------------------------------------

    def create_group(self, group: LocalGroup) -> Optional[Dict[str, Any]]:
        if self.client is None:
            return None
        if get_external_id(group, self.component_id) is not None:
            return None

        payload = build_scim_group(group)
        self._check(payload, "Group", group.name)
        created = self.client.create_group(payload)
        save_external_id(group, self.component_id, created.get("id"))
        logger.info("Group %s synced to SCIM provider as %s", group.name, created.get("id"))
        return created

    def update_group(self, group: LocalGroup) -> Optional[Dict[str, Any]]:
        """Replace the remote group with the current display name."""
        if self.client is None:
            return None
        external_id = get_external_id(group, self.component_id)
        if external_id is None:
            logger.info("Group does not exist in the SCIM provider: %s", group.name)
            return None

        existing = self.client.read_group(external_id)
        payload = build_scim_group(group, existing=existing)
        self._check(payload, "Group", group.name)
        updated = self.client.replace_group(external_id, payload)
        save_external_id(group, self.component_id, updated.get("id") or external_id)
        logger.info("Group %s updated in SCIM provider (%s)", group.name, external_id)
        return updated

    def delete_group(self, group: LocalGroup) -> bool:
        """Delete the remote group and drop its correlation.

        Returns True when a correlation existed.
        """
        if self.client is None:
            return False
        external_id = get_external_id(group, self.component_id)
        if external_id is None:
            return False
        try:
            self.client.delete_group(external_id)
            logger.info("Group %s deleted from SCIM provider (%s)", group.name, external_id)
        except SCIMError as e:
            if not e.not_found:
                raise
            logger.warning("Group %s (%s) was already gone from the SCIM provider",
                           group.name, external_id)
        clear_external_id(group, self.component_id)
        return True

    def sync_group(self, group: LocalGroup) -> Optional[Dict[str, Any]]:
        if self.client is None:
            return None
        external_id = get_external_id(group, self.component_id)
        if external_id is not None:
            try:
                return self.update_group(group)
            except SCIMError as e:
                if not e.not_found:
                    raise
                logger.warning("Remote group %s for %s is gone, recreating",
                               external_id, group.name)
                clear_external_id(group, self.component_id)
        return self.create_group(group)

    # -- Internals -----------------------------------------------------------

    def _ensure_groups(self, user: LocalUser) -> None:
        """Create the user's groups remotely first; failures do not block the user."""
        for group in user.groups:
            try:
                self.create_group(group)
            except (SCIMError, PayloadError, CorrelationError) as e:
                logger.error("Error while creating group %s: %s", group.name, e)

    def _group_ids(self, user: LocalUser) -> Dict[str, str]:
        ids = {}
        for group in user.groups:
            external_id = get_external_id(group, self.component_id)
            if external_id is not None:
                ids[group.id] = external_id
        return ids

    def _check(self, payload: Dict[str, Any], resource_type: str, label: str) -> None:
        errors = validate_resource(payload)
        if errors:
            raise PayloadError(f"Refusing to send invalid SCIM {resource_type} for {label}", errors)
