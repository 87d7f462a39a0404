# portal/l10n.py
"""
Message keys with `{name}` / `{$name}` placeholders, translated through Django's gettext.
"""
import re

from django.utils.translation import gettext, gettext_noop

_PLACEHOLDER = re.compile(r"\{\$?(\w+)\}")

# Validation messages attached to model fields, by Django error code
VALIDATION_MESSAGES = {
    "required": gettext_noop("is mandatory"),
    "blank": gettext_noop("is mandatory"),
    "null": gettext_noop("is mandatory"),
    "max_length": gettext_noop("must be at most {maxlen} characters long"),
    "min_length": gettext_noop("must be at least {minlen} characters long"),
    "invalid_integer": gettext_noop("is invalid integer"),
    "invalid": gettext_noop("has invalid format"),
    "invalid_date": gettext_noop("is invalid date"),
    "invalid_datetime": gettext_noop("is invalid date and time"),
    "unique": gettext_noop("must be unique"),
    "invalid_reference": gettext_noop("refers to a non-existing record"),
}

# Field-specific codes for Django's generic "invalid"
_INVALID_CODES = {
    "int": "invalid_integer",
    "date": "invalid_date",
    "datetime": "invalid_datetime",
    "fk": "invalid_reference",
}

# Django's params for the codes above, renamed to our placeholders
_PARAM_NAMES = {
    "max_length": {"limit_value": "maxlen"},
    "min_length": {"limit_value": "minlen"},
}

MISSING_ATTRIBUTE = gettext_noop("Required attribute {$attribute} is missing")
USER_NOT_CREATED = gettext_noop("Login failed: user record cannot be created for {uid}")


def interpolate(text, params=None):
    """Replace `{name}` and `{$name}` placeholders; unknown placeholders are left as they are."""
    if not params:
        return text

    def _sub(match):
        name = match.group(1)
        if name in params:
            return str(params[name])
        return match.group(0)

    return _PLACEHOLDER.sub(_sub, text)


def translate(message, params=None, **kwargs):
    """Translate a message key into the active language and fill in its placeholders."""
    values = dict(params or {})
    values.update(kwargs)
    return interpolate(gettext(message), values)


def error_message(code, params=None, field_type=None):
    """
    Localized text for a validation error code, or None when the code is not ours.

    `field_type` disambiguates Django's generic 'invalid' code for integer and date fields.
    """
    if code == "invalid" and field_type in _INVALID_CODES:
        code = _INVALID_CODES[field_type]
    key = VALIDATION_MESSAGES.get(code)
    if key is None:
        return None
    values = {}
    renames = _PARAM_NAMES.get(code, {})
    for name, value in (params or {}).items():
        values[renames.get(name, name)] = value
    return translate(key, values)
