# backend/topology/compliance/registry.py
"""
Rule Registry - Central store for the compliance rule taxonomy
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from topology.ir.base import NodeKind

logger = logging.getLogger(__name__)


class RuleCategory(Enum):
    """Areas a compliance rule inspects"""
    NETWORK = "network"
    COMPUTE = "compute"
    LOAD_BALANCING = "load_balancing"
    SECURITY = "security"


@dataclass(frozen=True)
class ComplianceRule:
    """
    A known compliance finding that a suppression record may waive.

    The registry only names and classifies rules; evaluating them is the
    job of the external compliance engine.
    """
    id: str
    name: str
    description: str
    category: RuleCategory
    applies_to: tuple = field(default_factory=tuple)  # NodeKind values
    tags: tuple = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "applies_to": [k.value for k in self.applies_to],
            "tags": list(self.tags),
        }


class RuleRegistry:
    """
    Central registry for compliance rules

    Provides lookup by id, category and node kind.
    """

    def __init__(self):
        self.rules: Dict[str, ComplianceRule] = {}
        self._category_index: Dict[RuleCategory, List[str]] = {cat: [] for cat in RuleCategory}
        self._kind_index: Dict[NodeKind, List[str]] = {}

    def register(self, rule: ComplianceRule) -> None:
        """Register a rule in the registry"""
        if rule.id in self.rules:
            logger.debug("rule '%s' re-registered, replacing previous entry", rule.id)
            self._category_index[self.rules[rule.id].category].remove(rule.id)
            for kind in self.rules[rule.id].applies_to:
                self._kind_index[kind].remove(rule.id)

        self.rules[rule.id] = rule
        self._category_index[rule.category].append(rule.id)
        for kind in rule.applies_to:
            self._kind_index.setdefault(kind, []).append(rule.id)

    def get(self, rule_id: str) -> Optional[ComplianceRule]:
        """Get a rule by ID"""
        return self.rules.get(rule_id)

    def is_known(self, rule_id: str) -> bool:
        return rule_id in self.rules

    def get_by_category(self, category: RuleCategory) -> List[ComplianceRule]:
        return [self.rules[rid] for rid in self._category_index.get(category, [])]

    def get_for_kind(self, kind: NodeKind) -> List[ComplianceRule]:
        """Get every rule that can be raised against a node of this kind"""
        return [self.rules[rid] for rid in self._kind_index.get(kind, [])]

    def list_all(self) -> List[ComplianceRule]:
        return sorted(self.rules.values(), key=lambda r: r.id)


# Global registry instance
_global_registry: Optional[RuleRegistry] = None


def get_rule_registry() -> RuleRegistry:
    """Get or create the global rule registry"""
    global _global_registry
    if _global_registry is None:
        _global_registry = RuleRegistry()
        from topology.compliance.catalog import register_all_rules
        register_all_rules(_global_registry)
        logger.debug("rule registry loaded with %d rules", len(_global_registry.rules))
    return _global_registry
