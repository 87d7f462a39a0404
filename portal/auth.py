# portal/auth.py
"""
Hand-off from a verified SAML assertion to a local User.

    UNAUTHENTICATED -> ASSERTION_RECEIVED -> USER_FOUND | USER_CREATED | USER_CREATION_FAILED
                    -> SESSION_ESTABLISHED | LOGIN_ABORTED

A failed user creation marks the session with INVALID_USER. Later assertions in the
same session are refused until the user logs out and starts over, so an identity
provider that keeps re-asserting an identity we cannot store does not loop forever.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional

from django.contrib import messages

from .l10n import MISSING_ATTRIBUTE, translate
from .models import Provisioning, ProvisionStatus, User

logger = logging.getLogger(__name__)

SESSION_UID_KEY = "uid"
INVALID_USER = "-1"


class LoginState(enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    ASSERTION_RECEIVED = "assertion_received"
    USER_FOUND = "user_found"
    USER_CREATED = "user_created"
    USER_CREATION_FAILED = "user_creation_failed"
    SESSION_ESTABLISHED = "session_established"
    LOGIN_ABORTED = "login_aborted"


@dataclass
class LoginOutcome:
    state: LoginState
    user: Optional[User] = None

    @property
    def created(self) -> bool:
        return self.state == LoginState.USER_CREATED


def identity_from_attributes(attributes, id_attribute) -> Optional[str]:
    """First asserted value of the identifying attribute, or None."""
    values = (attributes or {}).get(id_attribute)
    if isinstance(values, str):
        return values or None
    if values:
        return values[0] or None
    return None


def session_uid(request):
    session = getattr(request, "session", None)
    if session is None:
        return None
    return session.get(SESSION_UID_KEY)


def login_blocked(request) -> bool:
    return session_uid(request) == INVALID_USER


def mark_login_failed(request):
    if getattr(request, "session", None) is not None:
        request.session[SESSION_UID_KEY] = INVALID_USER


def reject_assertion(request, attribute):
    """The assertion lacks the identifying attribute: notify the user and stop."""
    message = translate(MISSING_ATTRIBUTE, attribute=attribute)
    logger.error("SAML assertion rejected: %s", message)
    mark_login_failed(request)
    if request is not None:
        messages.error(request, message)
    return LoginOutcome(LoginState.LOGIN_ABORTED)


def resolve_user(request, uid, attributes, create=True) -> LoginOutcome:
    """Find or create the local user for an asserted uid; with create=False unknown uids are refused."""
    if login_blocked(request):
        logger.warning("Login of '%s' refused: user creation already failed in this session", uid)
        return LoginOutcome(LoginState.LOGIN_ABORTED)

    if create:
        result = User.provision(uid, attributes, request)
    else:
        existing = User.find_user(uid)
        if existing is None:
            logger.warning("Login of unknown user '%s' refused: user creation is disabled", uid)
            return LoginOutcome(LoginState.LOGIN_ABORTED)
        result = Provisioning(ProvisionStatus.FOUND, existing)

    if result.status == ProvisionStatus.FOUND:
        user = result.user
        if session_uid(request) != user.get_user_id():
            if not user.update_user(attributes):
                mark_login_failed(request)
                return LoginOutcome(LoginState.LOGIN_ABORTED)
        return LoginOutcome(LoginState.USER_FOUND, user)

    if result.status == ProvisionStatus.CREATED:
        return LoginOutcome(LoginState.USER_CREATED, result.user)

    # Terminal for this request; the user has to start the login again
    mark_login_failed(request)
    return LoginOutcome(LoginState.USER_CREATION_FAILED)


def current_state(request) -> LoginState:
    user = getattr(request, "user", None)
    if user is not None and user.is_authenticated and session_uid(request) == user.get_user_id():
        return LoginState.SESSION_ESTABLISHED
    if login_blocked(request):
        return LoginState.LOGIN_ABORTED
    return LoginState.UNAUTHENTICATED
