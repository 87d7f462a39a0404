# portal/signals.py
import logging

from django.contrib.auth.signals import user_logged_in
from django.dispatch import receiver

from .auth import SESSION_UID_KEY

logger = logging.getLogger(__name__)


@receiver(user_logged_in)
def store_session_uid(sender, user, request, **kwargs):
    """
    On login, keep the user's stable identifier in the session.
    Replaces an INVALID_USER marker left by an earlier failed attempt.
    """
    if request is None or not hasattr(user, "get_user_id"):
        return
    request.session[SESSION_UID_KEY] = user.get_user_id()
    logger.info("Session established for '%s'", user.get_user_id())
