# portal/schema.py
"""
Per-model schema descriptors: key fields, generated fields, validation rules and labels.

Descriptors are built once from the Django field declarations when the app registry
is ready (see PortalConfig.ready) and looked up with `schema_for()` afterwards.
"""
from dataclasses import dataclass, field
from typing import Dict, Mapping, Tuple

from django.core import validators
from django.core.exceptions import ImproperlyConfigured
from django.db import models
from django.db.models.fields import AutoFieldMixin
from django.utils.text import capfirst


@dataclass(frozen=True)
class Rule:
    """A validation rule: either a bare name (`unique`) or a name with arguments (`pattern`, regex)."""

    name: str
    args: Tuple = ()

    @classmethod
    def named(cls, name):
        return cls(name)

    @classmethod
    def parameterized(cls, name, *args):
        return cls(name, tuple(args))

    @property
    def is_parameterized(self) -> bool:
        return bool(self.args)

    def __str__(self):
        if not self.args:
            return self.name
        return f"{self.name}({', '.join(repr(a) for a in self.args)})"


@dataclass(frozen=True)
class ModelSchema:
    table: str
    fields: Tuple[str, ...]
    primary_key: Tuple[str, ...]
    auto_increment: Tuple[str, ...]
    rules: Mapping[str, Tuple[Rule, ...]] = field(default_factory=dict)
    labels: Mapping[str, str] = field(default_factory=dict)

    def field_type(self, name):
        """Short type tag of a field ('int', 'date', 'datetime', 'fk') or None."""
        for rule in self.rules.get(name, ()):
            if rule.name in ("int", "date", "datetime", "fk"):
                return rule.name
        return None


_registry: Dict[type, ModelSchema] = {}


def _field_rules(f) -> Tuple[Rule, ...]:
    rules = []
    if not f.blank and not isinstance(f, AutoFieldMixin):
        rules.append(Rule.named("mandatory"))
    if f.unique and not f.primary_key:
        rules.append(Rule.named("unique"))
    if isinstance(f, models.ForeignKey):
        rules.append(Rule.named("fk"))
    elif isinstance(f, models.IntegerField) and not isinstance(f, AutoFieldMixin):
        rules.append(Rule.named("int"))
    elif isinstance(f, models.DateTimeField):
        rules.append(Rule.named("datetime"))
    elif isinstance(f, models.DateField):
        rules.append(Rule.named("date"))
    if getattr(f, "auto_now_add", False):
        rules.append(Rule.named("default_now"))
    if getattr(f, "max_length", None) and isinstance(f, models.CharField):
        rules.append(Rule.parameterized("length", 0, f.max_length))

    for v in f.validators:
        if isinstance(v, validators.EmailValidator):
            rules.append(Rule.named("email"))
        elif isinstance(v, validators.URLValidator):
            rules.append(Rule.named("url"))
        elif isinstance(v, validators.RegexValidator):
            rules.append(Rule.parameterized("pattern", v.regex.pattern))
    return tuple(rules)


def build_schema(model) -> ModelSchema:
    """Describe a concrete model from its field declarations."""
    opts = model._meta
    concrete = [f for f in opts.concrete_fields]
    primary_key = tuple(f.attname for f in concrete if f.primary_key)
    if not primary_key:
        raise ImproperlyConfigured(f"{opts.label} declares no primary key")
    auto_increment = tuple(f.attname for f in concrete if isinstance(f, AutoFieldMixin))
    if not set(auto_increment) <= set(primary_key):
        raise ImproperlyConfigured(
            f"{opts.label}: autoincrement fields {auto_increment} are not part of the primary key"
        )

    rules = {}
    for f in concrete:
        field_rules = _field_rules(f)
        if field_rules:
            rules[f.attname] = field_rules

    return ModelSchema(
        table=opts.db_table,
        fields=tuple(f.attname for f in concrete),
        primary_key=primary_key,
        auto_increment=auto_increment,
        rules=rules,
        labels={f.attname: capfirst(str(f.verbose_name)) for f in concrete},
    )


def register(model) -> ModelSchema:
    schema = build_schema(model)
    _registry[model] = schema
    return schema


def schema_for(model) -> ModelSchema:
    if not isinstance(model, type):
        model = type(model)
    try:
        return _registry[model]
    except KeyError:
        raise ImproperlyConfigured(f"No schema registered for {model.__name__}") from None
