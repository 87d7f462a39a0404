# config/saml.py
"""
pysaml2 configuration for the service provider, assembled from environment variables.

The SAML handshake itself (metadata, signatures, assertions) is handled by
djangosaml2/pysaml2; this module only describes our side of the federation.
"""
import os
from pathlib import Path

import saml2
import saml2.saml
import saml2.xmldsig

# Attribute that identifies a user (EPPN). Its first value becomes User.uid
ID_ATTRIBUTE = os.environ.get("SAML_ID_ATTRIBUTE", "eduPersonPrincipalName")

REQUIRED_ATTRIBUTES = [
    "eduPersonPrincipalName",
    "displayName",
    "mail",
    "eduPersonAffiliation",
]


def _split(value):
    return [item.strip() for item in value.split(",") if item.strip()]


def build_saml_config(base_url: str, base_dir: Path) -> dict:
    """Return the SAML_CONFIG dict expected by djangosaml2."""
    base_url = base_url.rstrip("/")
    saml_dir = Path(os.environ.get("SAML_DIR", base_dir / "saml"))

    metadata = {}
    local_metadata = _split(os.environ.get("SAML_IDP_METADATA_FILES", ""))
    remote_metadata = _split(os.environ.get("SAML_IDP_METADATA_URLS", ""))
    if local_metadata:
        metadata["local"] = local_metadata
    if remote_metadata:
        metadata["remote"] = [{"url": url} for url in remote_metadata]

    sp = {
        "name": os.environ.get("SAML_SP_NAME", "Portal"),
        "name_id_format": saml2.saml.NAMEID_FORMAT_TRANSIENT,
        "endpoints": {
            "assertion_consumer_service": [
                (f"{base_url}/saml2/acs/", saml2.BINDING_HTTP_POST),
            ],
            "single_logout_service": [
                (f"{base_url}/saml2/ls/", saml2.BINDING_HTTP_REDIRECT),
                (f"{base_url}/saml2/ls/post/", saml2.BINDING_HTTP_POST),
            ],
        },
        "signing_algorithm": saml2.xmldsig.SIG_RSA_SHA256,
        "digest_algorithm": saml2.xmldsig.DIGEST_SHA256,
        "required_attributes": REQUIRED_ATTRIBUTES,
        "optional_attributes": [],
        "want_response_signed": False,
        "want_assertions_signed": True,
        "allow_unsolicited": False,
    }

    # A fixed IdP skips the discovery service
    idp = os.environ.get("SAML_IDP", "").strip()
    if idp:
        sp["idp"] = {idp: None}

    config = {
        "xmlsec_binary": os.environ.get("SAML_XMLSEC_BINARY", "/usr/bin/xmlsec1"),
        "entityid": os.environ.get("SAML_ENTITY_ID") or f"{base_url}/saml2/metadata/",
        "allow_unknown_attributes": True,
        "service": {"sp": sp},
        "metadata": metadata,
        "debug": 0,
        "key_file": str(saml_dir / "sp.key"),
        "cert_file": str(saml_dir / "sp.crt"),
        "encryption_keypairs": [
            {"key_file": str(saml_dir / "sp.key"), "cert_file": str(saml_dir / "sp.crt")},
        ],
        "organization": {
            "name": [(os.environ.get("SAML_ORGANIZATION_NAME", "Portal"), "en")],
            "display_name": [(os.environ.get("SAML_ORGANIZATION_NAME", "Portal"), "en")],
            "url": [(os.environ.get("SAML_ORGANIZATION_URL", base_url), "en")],
        },
        "contact_person": [
            {
                "contact_type": "support",
                "email_address": os.environ.get("SAML_SUPPORT_EMAIL", "support@example.org"),
                "given_name": os.environ.get("SAML_SUPPORT_NAME", "Support"),
            },
        ],
    }
    return config


def attribute_mapping() -> dict:
    # Only the identifier is mapped; the display name is handled by User.create_user/update_user
    return {ID_ATTRIBUTE: ("uid",)}
