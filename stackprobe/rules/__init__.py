"""Rule catalog: declarative technology detection rules."""

from .catalog import RuleCatalog
from .loader import BUILTIN_RULES_DIR, catalog_from_mappings, load_catalog, parse_rule
from .models import Category, ContentRule, Rule, RuleDependency

__all__ = [
    "BUILTIN_RULES_DIR",
    "Category",
    "ContentRule",
    "Rule",
    "RuleCatalog",
    "RuleDependency",
    "catalog_from_mappings",
    "load_catalog",
    "parse_rule",
]
