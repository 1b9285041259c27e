import pytest

from components.metadatastore.errors import ConfigurationError
from components.metadatastore.queries import (
    DEFAULT_TABLE_PREFIX,
    Query,
    build_statements,
    default_lock_hint,
    validate_prefix,
)


def test_default_prefix_substituted_everywhere():
    sql = build_statements()
    assert DEFAULT_TABLE_PREFIX == "INT_"
    for q in Query:
        assert "%PREFIX%" not in sql[q]
        assert "%LOCK%" not in sql[q]
        assert "INT_METADATA_STORE" in sql[q]


def test_conditional_insert_checks_own_table():
    sql = build_statements("APP_", "postgresql")[Query.PUT_IF_ABSENT_VALUE]
    assert sql.startswith("INSERT INTO APP_METADATA_STORE")
    assert "NOT EXISTS (SELECT 1 FROM APP_METADATA_STORE" in sql
    assert "FROM DUAL" not in sql


def test_dual_for_dialects_that_need_it():
    sql = build_statements("INT_", "oracle")[Query.PUT_IF_ABSENT_VALUE]
    assert "SELECT :key, :value, :region FROM DUAL WHERE NOT EXISTS" in sql


def test_lock_hint_per_dialect():
    assert build_statements("INT_", "postgresql")[Query.GET_VALUE_FOR_UPDATE].endswith(" FOR UPDATE")
    assert build_statements("INT_", "sqlite")[Query.GET_VALUE_FOR_UPDATE].endswith("REGION=:region")
    assert default_lock_hint("mysql") == "FOR UPDATE"

    custom = build_statements("INT_", "postgresql", "FOR UPDATE NOWAIT")[Query.GET_VALUE_FOR_UPDATE]
    assert custom.endswith(" FOR UPDATE NOWAIT")
    # explicit empty hint disables the clause
    assert build_statements("INT_", "postgresql", "")[Query.GET_VALUE_FOR_UPDATE].endswith("REGION=:region")


def test_statements_are_cached_and_read_only():
    a = build_statements("P1_", "sqlite")
    b = build_statements("P1_", "sqlite")
    assert a is b
    assert build_statements("P2_", "sqlite") is not a
    with pytest.raises(TypeError):
        a[Query.GET_VALUE] = "SELECT 1"


@pytest.mark.parametrize("prefix", ["", "INT_", "tenant1_", "myschema.INT_"])
def test_valid_prefixes(prefix):
    assert validate_prefix(prefix) == prefix


@pytest.mark.parametrize("prefix", [None, "a b", "x;--", "a.b.c_", "'"])
def test_invalid_prefixes(prefix):
    with pytest.raises(ConfigurationError):
        validate_prefix(prefix)
