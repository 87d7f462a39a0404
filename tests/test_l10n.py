import re
from pathlib import Path

import pytest

import portal
from portal.l10n import MISSING_ATTRIBUTE, USER_NOT_CREATED, VALIDATION_MESSAGES, error_message, interpolate, translate

HU_CATALOGUE = Path(portal.__file__).parent / "locale" / "hu" / "LC_MESSAGES" / "django.po"


def test_interpolate_both_placeholder_styles():
    assert interpolate("{a} and {$b}", {"a": 1, "b": "two"}) == "1 and two"


def test_interpolate_keeps_unknown_placeholders():
    assert interpolate("between {min} and {max}", {"min": 1}) == "between 1 and {max}"
    assert interpolate("{x}", None) == "{x}"


def test_translate_with_keywords():
    assert translate(MISSING_ATTRIBUTE, attribute="mail") == "Required attribute mail is missing"
    assert translate("must be at most {maxlen} characters long", {"maxlen": 10}) == (
        "must be at most 10 characters long"
    )


@pytest.mark.parametrize(
    "code, params, field_type, expected",
    [
        ("blank", None, None, "is mandatory"),
        ("max_length", {"limit_value": 5, "show_value": 7}, None, "must be at most 5 characters long"),
        ("min_length", {"limit_value": 2}, None, "must be at least 2 characters long"),
        ("invalid", None, None, "has invalid format"),
        ("invalid", {"value": "x"}, "int", "is invalid integer"),
        ("invalid", None, "datetime", "is invalid date and time"),
        ("invalid", None, "fk", "refers to a non-existing record"),
        ("unique", None, None, "must be unique"),
        ("max_digits", None, None, None),
    ],
)
def test_error_message(code, params, field_type, expected):
    assert error_message(code, params, field_type) == expected


def test_hungarian_catalogue_covers_every_message():
    entries = dict(re.findall(r'^msgid "(.+)"\nmsgstr "(.*)"$', HU_CATALOGUE.read_text(encoding="utf-8"), re.M))

    for key in {*VALIDATION_MESSAGES.values(), MISSING_ATTRIBUTE, USER_NOT_CREATED}:
        assert entries.get(key), key
