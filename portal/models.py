import enum
import logging
from dataclasses import dataclass
from typing import Optional

from django.contrib import messages
from django.contrib.auth.base_user import AbstractBaseUser, BaseUserManager
from django.core.exceptions import ValidationError
from django.core.validators import RegexValidator
from django.db import DatabaseError, models, transaction

from .db_errors import describe_db_error, map_db_error
from .l10n import USER_NOT_CREATED, error_message, translate
from .schema import schema_for

logger = logging.getLogger(__name__)

UID_PATTERN = r"^[\w.-]+@[\w.-]+$"


class SchemaModel(models.Model):
    """
    Model base exposing the registered schema (keys, generated fields, rules, labels)
    and a save that reports failures per field instead of raising.
    """

    class Meta:
        abstract = True

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.validation_errors = {}
        self.validation_codes = {}
        self.last_error = None
        self.last_fault = None

    # ---------- schema ----------
    @classmethod
    def primary_key(cls):
        return list(schema_for(cls).primary_key)

    @classmethod
    def auto_increment(cls):
        return list(schema_for(cls).auto_increment)

    @classmethod
    def rules(cls):
        return {name: list(rules) for name, rules in schema_for(cls).rules.items()}

    @classmethod
    def attribute_labels(cls):
        return dict(schema_for(cls).labels)

    @classmethod
    def attribute_label(cls, name):
        labels = schema_for(cls).labels
        if name in labels:
            return labels[name]
        return name.replace("_", " ").capitalize()

    # ---------- validation / persistence ----------
    def add_error(self, field_name, message):
        self.validation_errors.setdefault(field_name, []).append(message)

    def validate(self) -> bool:
        """Run every field rule; errors are collected in `validation_errors`."""
        self.validation_errors = {}
        self.validation_codes = {}
        schema = schema_for(self)
        try:
            self.full_clean()
        except ValidationError as exc:
            for field_name, errors in exc.error_dict.items():
                for error in errors:
                    self.validation_codes.setdefault(field_name, []).append(error.code)
                    message = error_message(error.code, error.params, schema.field_type(field_name))
                    if message is None:
                        message = " ".join(error.messages)
                    self.add_error(field_name, message)
        return not self.validation_errors

    @property
    def is_conflict(self) -> bool:
        """True when the last save failed on a uniqueness rule or constraint."""
        if self.last_fault is not None:
            return map_db_error(self.last_fault) == "unique"
        return any("unique" in codes for codes in self.validation_codes.values())

    def save_validated(self, **kwargs) -> bool:
        """
        Validate, then write. Returns False on validation or storage failure.

        The write runs in its own savepoint, so a failed insert leaves no row behind.
        """
        self.last_error = None
        self.last_fault = None
        if not self.validate():
            self.last_error = "; ".join(
                f"{name}: {', '.join(errors)}" for name, errors in self.validation_errors.items()
            )
            return False
        try:
            with transaction.atomic():
                self.save(**kwargs)
        except DatabaseError as exc:
            self.last_fault = exc
            self.last_error = describe_db_error(exc)
            return False
        return True


class Migration(SchemaModel):
    """One applied SQL migration file."""

    class Meta:
        db_table = "migration"

    name = models.CharField(max_length=100, primary_key=True)
    applied = models.IntegerField()

    def __str__(self):
        return self.name


class ProvisionStatus(enum.Enum):
    FOUND = "found"
    CREATED = "created"
    FAILED = "failed"


@dataclass
class Provisioning:
    status: ProvisionStatus
    user: Optional["User"] = None
    error: Optional[str] = None
    fault: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.user is not None


class UserManager(BaseUserManager):
    def create_user(self, uid, name=None, **extra_fields):
        if not uid:
            raise ValueError("A uid is required")
        user = self.model(uid=uid, name=name or uid, **extra_fields)
        user.set_unusable_password()
        user.save(using=self._db)
        return user


class User(SchemaModel, AbstractBaseUser):
    """A principal authenticated by the identity provider, identified by EPPN."""

    class Meta:
        db_table = "user"

    id = models.BigAutoField(primary_key=True, verbose_name="ID")
    uid = models.CharField(
        max_length=128,
        unique=True,
        verbose_name="UID (EPPN)",
        validators=[RegexValidator(UID_PATTERN)],
    )
    name = models.CharField(max_length=255, verbose_name="name")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="created at")

    USERNAME_FIELD = "uid"
    REQUIRED_FIELDS = ["name"]

    objects = UserManager()

    def __str__(self):
        return self.uid

    def get_scope(self):
        """Domain part of the uid; a uid without '@' is a data error."""
        local, sep, scope = self.uid.partition("@")
        if not sep:
            raise ValueError(f"uid '{self.uid}' has no scope")
        return scope

    def get_user_id(self):
        return self.uid

    @staticmethod
    def display_name(attributes, default):
        values = attributes.get("displayName") if attributes else None
        if isinstance(values, str):
            return values or default
        if values:
            return values[0]
        return default

    @classmethod
    def find_user(cls, uid):
        return cls.objects.filter(uid=uid).first()

    @classmethod
    def provision(cls, uid, attributes, request=None) -> Provisioning:
        """Find the user by uid or create it from the asserted attributes."""
        existing = cls.find_user(uid)
        if existing is not None:
            return Provisioning(ProvisionStatus.FOUND, existing)

        user = cls(uid=uid, name=cls.display_name(attributes, uid))
        user.set_unusable_password()
        if user.save_validated():
            logger.info("User '%s' created on first login", uid)
            return Provisioning(ProvisionStatus.CREATED, user)

        if user.is_conflict:
            # Another request inserted the same uid in the meantime
            winner = cls.find_user(uid)
            if winner is not None:
                return Provisioning(ProvisionStatus.FOUND, winner)

        logger.error("Insert of user '%s' failed during login. %s", uid, user.last_error)
        if request is not None:
            messages.error(request, translate(USER_NOT_CREATED, uid=uid))
        return Provisioning(ProvisionStatus.FAILED, error=user.last_error, fault=user.last_fault)

    @classmethod
    def create_user(cls, uid, attributes, request=None):
        """Create (and save) the user; None when the record cannot be stored."""
        return cls.provision(uid, attributes, request).user

    def update_user(self, attributes):
        """Refresh the stored display name; returns the uid, or False if it cannot be saved."""
        name = self.display_name(attributes, self.name)
        if name == self.name:
            return self.uid
        self.name = name
        if not self.save_validated():
            logger.error("Update of user '%s' failed during login. %s", self.uid, self.last_error)
            return False
        return self.uid
