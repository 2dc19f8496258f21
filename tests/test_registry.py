"""
Tests for the Rule Registry — registration, configuration and snapshots.
"""

import pytest

from patternguard.core.errors import DuplicateRuleId, UnknownRuleId
from patternguard.core.registry import BUILTIN_RULES, RuleRegistry, default_registry
from patternguard.core.rules.flag_argument import FlagArgument
from patternguard.core.rules.too_many_parameters import TooManyParameters
from patternguard.models.rule_models import RuleConfig, Severity


def test_default_registry_has_bundled_catalogue():
    registry = default_registry()
    assert len(registry) == len(BUILTIN_RULES) == 7
    assert registry.rule_ids == [
        "too-many-parameters",
        "flag-argument",
        "global-mutable-write",
        "negated-conditional-name",
        "deep-nesting",
        "duplicate-logic",
        "shared-collection-mutation",
    ]


def test_duplicate_rule_id_rejected():
    registry = RuleRegistry()
    registry.register(TooManyParameters)
    with pytest.raises(DuplicateRuleId) as exc:
        registry.register(TooManyParameters)
    assert exc.value.rule_id == "too-many-parameters"


def test_rule_without_id_rejected():
    registry = RuleRegistry()
    with pytest.raises(ValueError):
        registry.register(object)


def test_resolve_keeps_registration_order():
    registry = RuleRegistry()
    registry.register(FlagArgument)
    registry.register(TooManyParameters)
    assert registry.resolve().rule_ids == ("flag-argument", "too-many-parameters")


def test_resolve_skips_disabled_rules():
    registry = default_registry({"flag-argument": RuleConfig(enabled=False)})
    snapshot = registry.resolve()
    assert "flag-argument" not in snapshot.rule_ids
    assert "flag-argument" in registry


class ExtraFlagArgument(FlagArgument):
    id = "extra"


def test_copy_is_independent():
    registry = default_registry()
    clone = registry.copy()
    clone.configure("flag-argument", RuleConfig(enabled=False))
    clone.register(ExtraFlagArgument)

    assert registry.config("flag-argument").enabled
    assert "extra" not in registry
    assert "flag-argument" not in clone.resolve().rule_ids


def test_severity_override():
    registry = default_registry(
        {"too-many-parameters": RuleConfig(severity=Severity.ERROR)}
    )
    snapshot = registry.resolve()
    assert snapshot.severity_for("too-many-parameters") == Severity.ERROR
    assert snapshot.spec("too-many-parameters").default_severity == Severity.WARNING


def test_options_merged_with_defaults():
    registry = default_registry(
        {"too-many-parameters": RuleConfig(options={"max_parameters": 5})}
    )
    rule = registry.resolve().spec("too-many-parameters").instantiate()
    assert rule.options["max_parameters"] == 5
    assert rule.options["ignore_names"] == ["self", "cls"]


def test_configure_unknown_rule_rejected():
    registry = default_registry()
    with pytest.raises(UnknownRuleId):
        registry.configure("no-such-rule", RuleConfig())


def test_snapshot_lookup_of_disabled_rule_rejected():
    snapshot = default_registry({"deep-nesting": RuleConfig(enabled=False)}).resolve()
    with pytest.raises(UnknownRuleId):
        snapshot.spec("deep-nesting")


def test_snapshot_instantiates_fresh_rules():
    snapshot = default_registry().resolve()
    first = snapshot.instantiate()
    second = snapshot.instantiate()
    assert [r.id for r in first] == [r.id for r in second]
    assert all(a is not b for a, b in zip(first, second))


def test_snapshot_options_are_read_only():
    snapshot = default_registry().resolve()
    with pytest.raises(TypeError):
        snapshot.spec("flag-argument").options["boolean_types"] = []


def test_fingerprint_tracks_configuration():
    plain = default_registry().resolve().fingerprint()
    again = default_registry().resolve().fingerprint()
    tuned = default_registry(
        {"deep-nesting": RuleConfig(options={"max_depth": 5})}
    ).resolve().fingerprint()
    assert plain == again
    assert plain != tuned


def test_describe_lists_catalogue():
    rows = default_registry().describe()
    by_id = {row["rule_id"]: row for row in rows}
    assert by_id["global-mutable-write"]["severity"] == "error"
    assert by_id["negated-conditional-name"]["severity"] == "info"
    assert by_id["flag-argument"]["interested_kinds"] == ["function_def"]
