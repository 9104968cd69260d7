"""Tests for repository config, collection schemas, aliases, and field rules."""

from datetime import date
from pathlib import Path

import pytest

from docvault.config.aliases import generate_alias, resolve_alias, validate_aliases
from docvault.config.fields import (
    coerce_field,
    normalize_date_input,
    normalize_datetime_input,
    validate_field_value,
)
from docvault.config.repo_config import (
    find_repository_root,
    parse_repo_config,
    serialize_repo_config,
)
from docvault.config.schema import (
    discover_collections,
    generate_default_slug,
    parse_collection_schema,
    serialize_collection_schema,
)
from docvault.errors import ConfigError, FieldValidationError, SchemaError
from docvault.ids import is_valid_id, new_id, utc_timestamp
from docvault.models import DEFAULT_IGNORE, FieldDefinition
from docvault.storage.fs import MemoryFileSystem

TODAY = date(2024, 3, 10)


# --- repo config -----------------------------------------------------------------


def test_parse_repo_config_defaults_and_extra_keys():
    config = parse_repo_config("repository_id: 01abc\naliases:\n  co: companies\ntheme: dark\n")
    assert config.repository_id == "01abc"
    assert config.aliases == {"co": "companies"}
    assert config.ignore == list(DEFAULT_IGNORE)
    assert config.extra == {"theme": "dark"}


def test_serialize_repo_config_round_trip():
    config = parse_repo_config("theme: dark\nignore:\n  - '*.tmp'\n")
    config.repository_id = "01abc"
    text = serialize_repo_config(config)
    assert text.startswith("# docvault repository configuration\n")
    again = parse_repo_config(text)
    assert again.extra == {"theme": "dark"}
    assert again.ignore == ["*.tmp"]
    assert again.repository_id == "01abc"


def test_default_ignore_is_not_written():
    assert "ignore" not in serialize_repo_config(parse_repo_config(""))


def test_invalid_config_yaml():
    with pytest.raises(ConfigError):
        parse_repo_config("aliases: [unclosed")


def test_find_repository_root(tmp_path: Path):
    (tmp_path / "docvault.yaml").write_text("", encoding="utf-8")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    assert find_repository_root(nested) == tmp_path.resolve()


def test_find_repository_root_missing(tmp_path: Path):
    with pytest.raises(ConfigError, match="not initialized"):
        find_repository_root(tmp_path)


# --- schemas ---------------------------------------------------------------------


def test_parse_collection_schema():
    schema = parse_collection_schema(
        """
slug: "{{date | year}}/{{title}}-{{short_id}}"
short_id_length: 8
title_field: title
fields:
  title: {type: string, required: true}
  status: {type: enum, enum_values: [open, closed], default: open}
  amount: {type: number, min: 0}
references:
  company_id: companies
"""
    )
    assert schema.short_id_length == 8
    assert schema.effective_short_id_length == 8
    assert schema.effective_index_file == "index.md"
    assert schema.fields["title"].required
    assert schema.fields["status"].default == "open"
    assert schema.fields["amount"].min == 0
    assert schema.references == {"company_id": "companies"}

    again = parse_collection_schema(serialize_collection_schema(schema))
    assert again == schema


@pytest.mark.parametrize(
    "text, message",
    [
        ("fields: {}\n", "slug"),
        ('slug: "x"\nshort_id_length: 3\n', "short_id_length"),
        ('slug: "x"\nshort_id_length: 17\n', "short_id_length"),
        ('slug: "x"\nfields:\n  n: {type: number, default: abc}\n', "default"),
        ('slug: "x"\nfields:\n  d: {type: date, default: "someday"}\n', "default"),
        ("- not a mapping\n", "mapping"),
    ],
)
def test_invalid_schemas(text, message):
    with pytest.raises(SchemaError, match=message):
        parse_collection_schema(text)


def test_date_shorthand_default_is_allowed():
    schema = parse_collection_schema('slug: "x"\nfields:\n  due: {type: date, default: "+7"}\n')
    assert schema.fields["due"].default == "+7"


def test_discover_collections_only_top_level_with_schema():
    fs = MemoryFileSystem()
    fs.mkdir_all("companies")
    fs.mkdir_all("loose")
    fs.mkdir_all("companies/nested")
    fs.write_file("companies/_schema.yaml", 'slug: "{{name}}"\n')
    fs.write_file("companies/nested/_schema.yaml", 'slug: "{{name}}"\n')
    assert list(discover_collections(fs)) == ["companies"]


def test_generate_default_slug():
    assert generate_default_slug({"title": FieldDefinition()}) == "{{short_id}}-{{title}}"
    assert generate_default_slug({}) == "{{short_id}}"


# --- aliases ---------------------------------------------------------------------


def test_generate_alias():
    assert generate_alias("templates") == "tpl"
    assert generate_alias("companies") == "cmp"
    assert generate_alias("aeiou") == "aei"


def test_resolve_alias():
    aliases = {"co": "companies"}
    assert resolve_alias("co", aliases, ["companies"]) == "companies"
    assert resolve_alias("companies", aliases, ["companies"]) == "companies"
    assert resolve_alias("unknown", aliases, ["companies"]) == "unknown"


def test_alias_shadowing_collection_is_rejected():
    validate_aliases({"co": "companies"}, ["companies"])
    with pytest.raises(ConfigError):
        validate_aliases({"notes": "companies"}, ["companies", "notes"])


# --- fields ------------------------------------------------------------------------


def test_date_shorthands():
    assert normalize_date_input("2024-01-02", TODAY) == "2024-01-02"
    assert normalize_date_input("today", TODAY) == "2024-03-10"
    assert normalize_date_input("Yesterday", TODAY) == "2024-03-09"
    assert normalize_date_input("tomorrow", TODAY) == "2024-03-11"
    assert normalize_date_input("+30", TODAY) == "2024-04-09"
    assert normalize_date_input("-10", TODAY) == "2024-02-29"
    with pytest.raises(FieldValidationError):
        normalize_date_input("next week", TODAY)


def test_datetime_from_date():
    assert normalize_datetime_input("2024-01-02", TODAY) == "2024-01-02T00:00:00Z"
    assert normalize_datetime_input("2024-01-02T03:04:05+01:00", TODAY) == "2024-01-02T03:04:05+01:00"


@pytest.mark.parametrize(
    "definition, value, ok",
    [
        (FieldDefinition(type="email"), "a@example.com", True),
        (FieldDefinition(type="email"), "not-an-email", False),
        (FieldDefinition(type="currency"), "EUR", True),
        (FieldDefinition(type="currency"), "eur", False),
        (FieldDefinition(type="country"), "DE", True),
        (FieldDefinition(type="country"), "DEU", False),
        (FieldDefinition(type="date"), "2024-01-02", True),
        (FieldDefinition(type="date"), "02/01/2024", False),
        (FieldDefinition(type="datetime"), "2024-01-02T03:04:05Z", True),
        (FieldDefinition(type="number", min=0, max=10), 5, True),
        (FieldDefinition(type="number", min=0, max=10), 11, False),
        (FieldDefinition(type="boolean"), True, True),
        (FieldDefinition(type="boolean"), "yes", False),
        (FieldDefinition(type="url"), "https://example.com/x", True),
        (FieldDefinition(type="url"), "ftp://example.com", False),
        (FieldDefinition(type="enum", enum_values=["open", "closed"]), "Open", True),
        (FieldDefinition(type="enum", enum_values=["open", "closed"]), "draft", False),
        (FieldDefinition(type="string", pattern=r"[A-Z]{2}-\d+"), "AB-12", True),
        (FieldDefinition(type="string", pattern=r"[A-Z]{2}-\d+"), "ab-12", False),
        (FieldDefinition(type="array"), ["a", 1], True),
        (FieldDefinition(type="array<date>"), ["2024-01-02", "bad"], False),
        (FieldDefinition(type="array"), "a,b", False),
    ],
)
def test_validate_field_value(definition, value, ok):
    assert (validate_field_value(definition, value) is None) == ok


def test_coerce_field():
    assert coerce_field("amount", FieldDefinition(type="number"), "12") == 12
    assert coerce_field("amount", FieldDefinition(type="number"), "12.5") == 12.5
    assert coerce_field("paid", FieldDefinition(type="boolean"), "yes") is True
    assert coerce_field("currency", FieldDefinition(type="currency"), " eur ") == "EUR"
    assert coerce_field("tags", FieldDefinition(type="array"), "a, b\nc") == ["a", "b", "c"]
    assert coerce_field("extra", None, "kept as is") == "kept as is"
    with pytest.raises(FieldValidationError):
        coerce_field("amount", FieldDefinition(type="number"), "twelve")
    with pytest.raises(FieldValidationError):
        coerce_field("email", FieldDefinition(type="email"), "nope")


# --- ids -------------------------------------------------------------------------


def test_new_id_is_lowercase_ulid():
    first, second = new_id(), new_id()
    assert is_valid_id(first)
    assert first == first.lower()
    assert first != second


def test_utc_timestamp_format():
    stamp = utc_timestamp()
    assert stamp.endswith("Z")
    assert "." not in stamp
    assert len(stamp) == len("2024-01-02T03:04:05Z")
