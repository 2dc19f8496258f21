"""
Rule Registry — Active rules plus their per-project configuration.

Registration fails fast on duplicate ids. resolve() freezes the effective
configuration into a RegistrySnapshot that concurrent passes share read-only;
each pass builds its own rule instances from it.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping

from patternguard.core.errors import DuplicateRuleId, UnknownRuleId
from patternguard.core.rules import (
    deep_nesting,
    duplicate_logic,
    flag_argument,
    global_mutable_write,
    negated_conditional_name,
    shared_collection_mutation,
    too_many_parameters,
)
from patternguard.core.rules.base import Rule
from patternguard.models.rule_models import RuleConfig, Severity

logger = logging.getLogger("patternguard.registry")

# A rule class, or any callable taking the options mapping and returning a Rule.
# It must expose `id` and `severity` without being instantiated.
RuleFactory = Callable[[Mapping[str, Any]], Rule]

# Bundled catalogue, in dispatch order
BUILTIN_RULES: tuple[RuleFactory, ...] = (
    too_many_parameters.TooManyParameters,
    flag_argument.FlagArgument,
    global_mutable_write.GlobalMutableWrite,
    negated_conditional_name.NegatedConditionalName,
    deep_nesting.DeepNesting,
    duplicate_logic.DuplicateLogic,
    shared_collection_mutation.SharedCollectionMutation,
)


@dataclass(frozen=True)
class RuleSpec:
    """One enabled rule with its effective configuration."""

    rule_id: str
    factory: RuleFactory
    severity: Severity
    default_severity: Severity
    options: Mapping[str, Any] = field(default_factory=dict)
    description: str = ""

    def instantiate(self) -> Rule:
        rule = self.factory(dict(self.options))
        if rule.id != self.rule_id:
            raise ValueError(
                f"Factory for '{self.rule_id}' produced a rule with id '{rule.id}'"
            )
        return rule


@dataclass(frozen=True)
class RegistrySnapshot:
    """Immutable, ordered view of the enabled rules for a pass."""

    specs: tuple[RuleSpec, ...] = ()

    @property
    def rule_ids(self) -> tuple[str, ...]:
        return tuple(s.rule_id for s in self.specs)

    def spec(self, rule_id: str) -> RuleSpec:
        for s in self.specs:
            if s.rule_id == rule_id:
                return s
        raise UnknownRuleId(rule_id, list(self.rule_ids))

    def severity_for(self, rule_id: str) -> Severity:
        return self.spec(rule_id).severity

    def instantiate(self) -> list[Rule]:
        """Fresh rule instances, in registration order."""
        return [s.instantiate() for s in self.specs]

    def fingerprint(self) -> str:
        """Stable hash of the effective configuration, for cache keys."""
        payload = [
            {
                "id": s.rule_id,
                "severity": s.severity.value,
                "options": dict(s.options),
            }
            for s in self.specs
        ]
        encoded = json.dumps(payload, sort_keys=True, default=str)
        return hashlib.sha256(encoded.encode("utf-8")).hexdigest()[:16]


class RuleRegistry:
    """Holds rule factories and their configuration until resolve() is called."""

    def __init__(self) -> None:
        self._factories: dict[str, RuleFactory] = {}
        self._configs: dict[str, RuleConfig] = {}

    def register(self, rule: RuleFactory, config: RuleConfig | None = None) -> None:
        """Add a rule. Raises DuplicateRuleId if its id is already taken."""
        rule_id = getattr(rule, "id", "")
        if not rule_id:
            raise ValueError(f"Rule {rule!r} does not declare an id")
        if rule_id in self._factories:
            raise DuplicateRuleId(rule_id)
        self._factories[rule_id] = rule
        self._configs[rule_id] = config or RuleConfig()
        logger.debug(f"Registered rule '{rule_id}'")

    def configure(self, rule_id: str, config: RuleConfig) -> None:
        """Replace the configuration of an already-registered rule."""
        if rule_id not in self._factories:
            raise UnknownRuleId(rule_id, list(self._factories))
        self._configs[rule_id] = config

    def apply(self, configs: Mapping[str, RuleConfig]) -> None:
        for rule_id, config in configs.items():
            self.configure(rule_id, config)

    def copy(self) -> RuleRegistry:
        """Independent registry with the same rules and configuration."""
        clone = RuleRegistry()
        clone._factories = dict(self._factories)
        clone._configs = dict(self._configs)
        return clone

    def config(self, rule_id: str) -> RuleConfig:
        if rule_id not in self._configs:
            raise UnknownRuleId(rule_id, list(self._factories))
        return self._configs[rule_id]

    @property
    def rule_ids(self) -> list[str]:
        return list(self._factories)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._factories

    def __len__(self) -> int:
        return len(self._factories)

    def resolve(self) -> RegistrySnapshot:
        """Effective ordered list of enabled rules with overrides applied."""
        specs: list[RuleSpec] = []
        for rule_id, factory in self._factories.items():
            config = self._configs[rule_id]
            if not config.enabled:
                continue
            default_severity = Severity(getattr(factory, "severity", Severity.WARNING))
            specs.append(
                RuleSpec(
                    rule_id=rule_id,
                    factory=factory,
                    severity=config.severity or default_severity,
                    default_severity=default_severity,
                    options=MappingProxyType(dict(config.options)),
                    description=getattr(factory, "description", ""),
                )
            )
        return RegistrySnapshot(specs=tuple(specs))

    def describe(self) -> list[dict[str, Any]]:
        """Catalogue listing for reporters and the HTTP surface."""
        rows: list[dict[str, Any]] = []
        for rule_id, factory in self._factories.items():
            config = self._configs[rule_id]
            default_severity = Severity(getattr(factory, "severity", Severity.WARNING))
            rows.append(
                {
                    "rule_id": rule_id,
                    "description": getattr(factory, "description", ""),
                    "enabled": config.enabled,
                    "severity": (config.severity or default_severity).value,
                    "interested_kinds": sorted(getattr(factory, "interested_kinds", ())),
                }
            )
        return rows


def default_registry(configs: Mapping[str, RuleConfig] | None = None) -> RuleRegistry:
    """Registry with the bundled catalogue and optional overrides."""
    registry = RuleRegistry()
    for factory in BUILTIN_RULES:
        registry.register(factory)
    if configs:
        registry.apply(configs)
    return registry
