# backend/topology/compliance/__init__.py
"""
Compliance rule taxonomy

Suppression records name a rule from this catalog. Unknown rule ids are
tolerated by the annotation pass, since rule sets evolve on their own.
"""

from topology.compliance.registry import (
    ComplianceRule,
    RuleCategory,
    RuleRegistry,
    get_rule_registry,
)
from topology.compliance.catalog import (
    OPEN_INGRESS_RULE_ID,
    RULE_CATALOG,
    register_all_rules,
)

__all__ = [
    "ComplianceRule",
    "RuleCategory",
    "RuleRegistry",
    "get_rule_registry",
    "OPEN_INGRESS_RULE_ID",
    "RULE_CATALOG",
    "register_all_rules",
]
