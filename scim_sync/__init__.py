"""scim-sync: mirror identity-provider users and groups into a SCIM 2.0 endpoint.

Maps local user and group records onto SCIM User/Group resources (RFC 7643),
decides create vs. update from the external ids stored on each record, and
pushes the result to a remote provisioning endpoint (RFC 7644).
"""

__version__ = "0.3.1"
