from unittest import mock

import pytest
from django.db import DatabaseError, IntegrityError

from portal.models import Migration, ProvisionStatus, User

ALICE = "alice@example.org"


@pytest.mark.django_db
class TestCreateUser:
    def test_uses_display_name(self):
        user = User.create_user(ALICE, {"displayName": ["Alice A."]})

        assert user is not None
        assert user.get_user_id() == ALICE
        stored = User.objects.get(uid=ALICE)
        assert stored.name == "Alice A."
        assert stored.created_at is not None
        assert not stored.has_usable_password()

    def test_falls_back_to_uid(self):
        user = User.create_user("bob@example.org", {"mail": ["bob@example.org"]})
        assert user.name == "bob@example.org"

    def test_returns_existing_row(self, alice):
        user = User.create_user(ALICE, {"displayName": ["Someone Else"]})

        assert user.pk == alice.pk
        assert User.objects.filter(uid=ALICE).count() == 1

    def test_invalid_uid_is_not_stored(self, saml_request, flashes):
        assert User.create_user("not-an-eppn", {}, saml_request) is None
        assert not User.objects.filter(uid="not-an-eppn").exists()
        assert any("not-an-eppn" in text for text in flashes(saml_request))

    def test_storage_failure(self, saml_request, flashes, caplog):
        with mock.patch.object(User, "save", side_effect=DatabaseError("disk I/O error")):
            user = User.create_user(ALICE, {"displayName": ["Alice A."]}, saml_request)

        assert user is None
        assert not User.objects.filter(uid=ALICE).exists()
        assert flashes(saml_request) == [f"Login failed: user record cannot be created for {ALICE}"]
        assert "disk I/O error" in caplog.text
        assert ALICE in caplog.text

    def test_storage_failure_result_carries_fault(self):
        fault = DatabaseError("connection lost")
        with mock.patch.object(User, "save", side_effect=fault):
            result = User.provision(ALICE, {})

        assert result.status == ProvisionStatus.FAILED
        assert not result.ok
        assert result.fault is fault
        assert result.error == "connection lost"

    def test_lost_race_returns_winner(self, alice):
        # the first lookup misses, the insert then collides with the concurrent row
        with mock.patch.object(User, "find_user", side_effect=[None, alice]):
            result = User.provision(ALICE, {"displayName": ["Alice A."]})

        assert result.status == ProvisionStatus.FOUND
        assert result.user == alice
        assert User.objects.filter(uid=ALICE).count() == 1

    def test_lost_race_on_insert_returns_winner(self, alice):
        # the concurrent row shows up only when the UNIQUE constraint fires
        with mock.patch.object(User, "find_user", side_effect=[None, alice]), \
                mock.patch.object(User, "validate_unique"):
            result = User.provision(ALICE, {"displayName": ["Alice A."]})

        assert result.status == ProvisionStatus.FOUND
        assert result.user == alice
        assert User.objects.filter(uid=ALICE).count() == 1


@pytest.mark.django_db
def test_insert_constraint_violation(alice):
    user = User(uid=ALICE, name="Copy")
    user.set_unusable_password()

    with mock.patch.object(User, "validate_unique"):
        assert not user.save_validated()

    assert user.validation_errors == {}
    assert isinstance(user.last_fault, IntegrityError)
    assert "unique" in user.last_error.lower()
    assert user.is_conflict
    assert User.objects.filter(uid=ALICE).count() == 1


@pytest.mark.django_db
def test_find_user(alice):
    first = User.find_user(ALICE)
    second = User.find_user(ALICE)

    assert first == second == alice
    assert User.find_user("nobody@example.org") is None


@pytest.mark.django_db
def test_find_user_storage_fault_propagates():
    with mock.patch.object(User.objects, "filter", side_effect=DatabaseError("gone")):
        with pytest.raises(DatabaseError):
            User.find_user(ALICE)


def test_scope():
    assert User(uid="alice@example.org").get_scope() == "example.org"
    assert User(uid="a.b-c@sub.example.org").get_scope() == "sub.example.org"


def test_scope_without_at_sign():
    with pytest.raises(ValueError):
        User(uid="alice").get_scope()


@pytest.mark.django_db
class TestValidation:
    def test_messages_per_field(self):
        user = User(uid="bad uid", name="")
        user.set_unusable_password()

        assert not user.validate()
        assert user.validation_errors["uid"] == ["has invalid format"]
        assert user.validation_errors["name"] == ["is mandatory"]

    def test_max_length(self):
        user = User(uid=ALICE, name="x" * 256)
        user.set_unusable_password()

        assert not user.save_validated()
        assert user.validation_errors == {"name": ["must be at most 255 characters long"]}
        assert not User.objects.exists()

    def test_unique_uid(self, alice):
        user = User(uid=ALICE, name="Copy")
        user.set_unusable_password()

        assert not user.save_validated()
        assert user.validation_errors["uid"] == ["must be unique"]
        assert user.is_conflict

    def test_valid_user(self):
        user = User(uid=ALICE, name="Alice")
        user.set_unusable_password()

        assert user.save_validated()
        assert user.validation_errors == {}
        assert user.pk is not None

    def test_duplicate_migration_name(self):
        assert Migration(name="m230101_000000_init", applied=1).save_validated()

        again = Migration(name="m230101_000000_init", applied=2)
        assert not again.save_validated()
        assert again.is_conflict
        assert Migration.objects.get(pk="m230101_000000_init").applied == 1


@pytest.mark.django_db
class TestUpdateUser:
    def test_refreshes_name(self, alice):
        assert alice.update_user({"displayName": ["Alice Anderson"]}) == ALICE
        alice.refresh_from_db()
        assert alice.name == "Alice Anderson"

    def test_without_display_name_keeps_name(self, alice):
        assert alice.update_user({}) == ALICE
        alice.refresh_from_db()
        assert alice.name == "Alice A."

    def test_storage_failure(self, alice):
        with mock.patch.object(User, "save", side_effect=DatabaseError("read-only")):
            assert alice.update_user({"displayName": ["New"]}) is False
