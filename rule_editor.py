from __future__ import annotations

import dataclasses
from typing import Any, Optional

from models import RULE_FIELDS, Rule


class RuleSetEditor:
    """Edits the ordered rule list. The list never becomes empty."""

    def __init__(self, store, catalog: Optional[Any] = None):
        self.store = store
        self.catalog = catalog

    @property
    def rules(self):
        return self.store.rules

    @property
    def active_rule_count(self) -> int:
        return sum(1 for rule in self.rules if rule.is_active)

    @property
    def can_remove(self) -> bool:
        return len(self.rules) > 1

    def update(self, index: int, field: str, value: Any):
        if field not in RULE_FIELDS:
            raise KeyError(field)
        rules = list(self.rules)
        if not 0 <= index < len(rules):
            raise IndexError(f"rule index {index} out of range")
        value = bool(value) if field == "enabled" else str(value)
        rules[index] = dataclasses.replace(rules[index], **{field: value})
        self.store.replace_rules(rules)

    def add(self):
        self.store.replace_rules(list(self.rules) + [Rule()])

    def remove(self, index: int) -> bool:
        rules = list(self.rules)
        if len(rules) <= 1 or not 0 <= index < len(rules):
            return False
        del rules[index]
        self.store.replace_rules(rules)
        return True

    def add_from_domain(self, domain: str):
        blank = next((i for i, rule in enumerate(self.rules) if rule.is_blank), None)
        if blank is not None:
            self.update(blank, "old_domain", domain)
        else:
            self.store.replace_rules(list(self.rules) + [Rule(old_domain=domain)])
        if self.catalog is not None:
            self.catalog.close_picker()
