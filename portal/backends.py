# portal/backends.py
import logging

from django.conf import settings
from djangosaml2.backends import Saml2Backend

from .auth import LoginState, identity_from_attributes, reject_assertion, resolve_user

logger = logging.getLogger(__name__)


class SamlUserBackend(Saml2Backend):
    """
    djangosaml2 backend provisioning portal Users from the asserted attributes.

    djangosaml2/pysaml2 verify the response; by the time `authenticate` runs the
    attributes in `session_info["ava"]` are trusted.
    """

    @property
    def id_attribute(self):
        return getattr(settings, "SAML_ID_ATTRIBUTE", "eduPersonPrincipalName")

    def authenticate(self, request, session_info=None, attribute_mapping=None,
                     create_unknown_user=True, assertion_info=None, **kwargs):
        if session_info is None or attribute_mapping is None:
            return None
        ava = session_info.get("ava") or {}
        logger.debug("%s from %s", LoginState.ASSERTION_RECEIVED.value, session_info.get("issuer"))
        if identity_from_attributes(ava, self.id_attribute) is None:
            reject_assertion(request, self.id_attribute)
            return None
        return super().authenticate(
            request,
            session_info=session_info,
            attribute_mapping=attribute_mapping,
            create_unknown_user=create_unknown_user,
            assertion_info=assertion_info,
            **kwargs,
        )

    def get_or_create_user(self, user_lookup_key, user_lookup_value, create_unknown_user,
                           idp_entityid, attributes, attribute_mapping, request):
        outcome = resolve_user(request, user_lookup_value, attributes, create=create_unknown_user)
        logger.debug("SAML login of '%s' from %s: %s", user_lookup_value, idp_entityid, outcome.state.value)
        return outcome.user, outcome.created
