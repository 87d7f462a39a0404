import pytest
from django.contrib.auth.models import AnonymousUser
from django.contrib.messages import get_messages
from django.contrib.messages.storage.fallback import FallbackStorage
from django.contrib.sessions.middleware import SessionMiddleware

from portal.models import User

ALICE = "alice@example.org"


@pytest.fixture
def saml_request(rf, db):
    """A request as seen by the assertion consumer: with a session and flash storage."""
    request = rf.post("/saml2/acs/")
    SessionMiddleware(lambda r: None).process_request(request)
    request.session.save()
    request._messages = FallbackStorage(request)
    request.user = AnonymousUser()
    return request


@pytest.fixture
def flashes():
    def _flashes(request):
        return [str(m) for m in get_messages(request)]
    return _flashes


@pytest.fixture
def alice(db):
    return User.objects.create_user(ALICE, name="Alice A.")
