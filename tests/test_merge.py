import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from aer.merge import env_equal, merge_env
from aer.models import EnvEntry

from conftest import entry, pairs


@pytest.mark.parametrize(
    "existing,overrides,expected",
    [
        # users can set environment values
        ([], [entry("NAME1", "VALUE1")], {("NAME1", "VALUE1")}),
        # without duplications
        ([], [entry("NAME1", "VALUE1"), entry("NAME1", "VALUE2")], {("NAME1", "VALUE2")}),
        # overwriting existing values
        (
            [entry("NAME1", "OVERWRITE"), entry("NAME3", "VALUE3")],
            [entry("NAME1", "VALUE1"), entry("NAME2", "VALUE2")],
            {("NAME1", "VALUE1"), ("NAME2", "VALUE2"), ("NAME3", "VALUE3")},
        ),
    ],
)
def test_merge_scenarios(existing, overrides, expected):
    out = merge_env(existing, overrides)
    assert pairs(out) == expected
    assert len(out) == len(expected)


def test_merge_without_overrides_keeps_existing():
    existing = [entry("A", "1"), entry("B", "2")]
    assert pairs(merge_env(existing, [])) == {("A", "1"), ("B", "2")}


def test_merge_collapses_duplicate_existing_names():
    out = merge_env([entry("A", "1"), entry("A", "2")], [])
    assert pairs(out) == {("A", "2")}


def test_merge_does_not_mutate_inputs():
    existing = [entry("A", "1")]
    overrides = [entry("A", "2")]
    merge_env(existing, overrides)
    assert existing == [entry("A", "1")]
    assert overrides == [entry("A", "2")]


def test_merge_keeps_value_from_entries():
    secret = EnvEntry(name="TOKEN", value_from={"secretKeyRef": {"name": "s", "key": "k"}})
    out = merge_env([secret], [entry("A", "1")])
    assert secret in out


def test_env_equal_ignores_order_but_not_duplicates():
    a = [entry("A", "1"), entry("B", "2")]
    assert env_equal(a, list(reversed(a)))
    assert not env_equal(a, [entry("A", "1"), entry("B", "3")])
    assert not env_equal([entry("A", "1"), entry("A", "1")], [entry("A", "1")])


# The autouse sqlite fixture is function scoped; merge tests never touch it.
PROPERTY_SETTINGS = settings(max_examples=200, suppress_health_check=[HealthCheck.function_scoped_fixture])

_names = st.sampled_from(["A", "B", "C", "D", "E"])
_entries = st.lists(st.builds(EnvEntry, name=_names, value=st.text(max_size=5)), max_size=8)


@PROPERTY_SETTINGS
@given(existing=_entries, overrides=_entries)
def test_merge_never_duplicates_names(existing, overrides):
    names = [e.name for e in merge_env(existing, overrides)]
    assert len(names) == len(set(names))


@PROPERTY_SETTINGS
@given(existing=_entries, overrides=_entries)
def test_last_override_wins(existing, overrides):
    out = {e.name: e.value for e in merge_env(existing, overrides)}
    last = {}
    for e in overrides:
        last[e.name] = e.value
    for name, value in last.items():
        assert out[name] == value


@PROPERTY_SETTINGS
@given(existing=_entries, overrides=_entries)
def test_untouched_existing_preserved(existing, overrides):
    out = {e.name: e.value for e in merge_env(existing, overrides)}
    overridden = {e.name for e in overrides}
    last_existing = {}
    for e in existing:
        last_existing[e.name] = e.value
    for name, value in last_existing.items():
        if name not in overridden:
            assert out[name] == value
    assert set(out) == set(last_existing) | overridden


@PROPERTY_SETTINGS
@given(existing=_entries, overrides=_entries)
def test_merge_is_idempotent(existing, overrides):
    once = merge_env(existing, overrides)
    twice = merge_env(once, overrides)
    assert pairs(twice) == pairs(once)
