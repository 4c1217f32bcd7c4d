# -*- coding: utf-8 -*-
"""
Rule engine: applies the cleaning rule set to raw newsletter HTML.

Order of operations within a round:
1. strip/rewrite rules in declaration order, each feeding the next
2. shrink pass removing empty containers until nothing changes
3. safety sweep re-running the script/handler/URL rules
4. normalize rules (leading CSS, whitespace)

Rounds repeat until the content stops changing (bounded by CLEAN_MAX_ROUNDS).
"""
import logging

from .config import settings
from .models import CleaningResult, RemovedItem
from .rules import DEFAULT_RULES, SAFETY_RULE_IDS, SHRINK_PATTERN, CleaningRule, RuleSet

logger = logging.getLogger(__name__)

SHRINK_RULE_ID = "shrink-empty-containers"


class RuleEngine:
    """
    Regex rule engine for newsletter HTML.

    Mandatory rules always run; other rules can be switched off through
    ``disabled_rules`` (defaults to ``settings.DISABLED_RULES``).
    """

    def __init__(self, rules: RuleSet = DEFAULT_RULES, disabled_rules: list[str] | None = None):
        self.rules = rules
        disabled = set(settings.DISABLED_RULES if disabled_rules is None else disabled_rules)

        ignored = sorted(item.id for item in rules if item.mandatory and item.id in disabled)
        if ignored:
            logger.warning(f"Ignoring mandatory rules in disabled list: {', '.join(ignored)}")

        unknown = sorted(rule_id for rule_id in disabled if rule_id not in rules)
        if unknown:
            logger.warning(f"Unknown rule ids in disabled list: {', '.join(unknown)}")

        self._active = [
            item for item in rules
            if item.enabled and (item.mandatory or item.id not in disabled)
        ]
        self._safety = [item for item in rules if item.id in SAFETY_RULE_IDS]

    @property
    def active_rule_ids(self) -> list[str]:
        return [item.id for item in self._active]

    def clean(self, content: str) -> CleaningResult:
        """
        Clean raw HTML.

        Returns:
            CleaningResult with the cleaned content and one RemovedItem per
            rule that changed something, in application order
        """
        if not content:
            return CleaningResult(cleaned_content="")

        if len(content) > settings.MAX_INPUT_LENGTH:
            logger.warning(
                f"Input truncated from {len(content)} to {settings.MAX_INPUT_LENGTH} chars"
            )
            content = content[:settings.MAX_INPUT_LENGTH]

        original_length = len(content)
        removed: list[RemovedItem] = []

        for _ in range(settings.CLEAN_MAX_ROUNDS):
            cleaned = self._clean_round(content, removed)
            if cleaned == content:
                break
            content = cleaned
        else:
            logger.warning(f"Content still changing after {settings.CLEAN_MAX_ROUNDS} cleaning rounds")

        logger.debug(
            f"Cleaned {original_length} -> {len(content)} chars, "
            f"{len(removed)} rules applied"
        )
        return CleaningResult(cleaned_content=content, removed_items=removed)

    def _clean_round(self, content: str, removed: list[RemovedItem]) -> str:
        """One pass of every phase; removals can expose new matches for the next round."""
        for item in self._active:
            if item.kind != "normalize":
                content = self._apply(item, content, removed)

        content = self._shrink(content, removed)

        for item in self._safety:
            content = self._apply(item, content, removed)

        for item in self._active:
            if item.kind == "normalize":
                content = self._apply(item, content, removed)
        return content

    def _apply(self, item: CleaningRule, content: str, removed: list[RemovedItem]) -> str:
        """Apply one rule and record it when it changed something."""
        total = 0
        passes = settings.RULE_MAX_PASSES if item.repeat else 1

        for _ in range(passes):
            content, changed = item.apply(content)
            total += changed
            if not changed:
                break
        else:
            if item.repeat:
                logger.warning(f"Rule {item.id} still changing content after {passes} passes")

        if total:
            self._record(removed, item.id, item.description, total)
        return content

    def _shrink(self, content: str, removed: list[RemovedItem]) -> str:
        """Remove empty containers until a pass no longer shortens the content."""
        total = 0
        for _ in range(settings.SHRINK_MAX_PASSES):
            shrunk, count = SHRINK_PATTERN.subn("", content)
            if len(shrunk) >= len(content):
                break
            content = shrunk
            total += count

        if total:
            self._record(removed, SHRINK_RULE_ID, "Remove empty containers", total)
        return content

    @staticmethod
    def _record(removed: list[RemovedItem], rule_id: str, description: str, matches: int):
        # The safety sweep and later rounds re-run rules already applied; merge their counts
        for index, item in enumerate(removed):
            if item.rule_id == rule_id:
                removed[index] = item.model_copy(update={"matches": item.matches + matches})
                return
        removed.append(RemovedItem(rule_id=rule_id, description=description, matches=matches))


# Global rule engine instance
rule_engine = RuleEngine()


def clean_content(html: str) -> CleaningResult:
    """Clean ``html`` with the default rule engine."""
    return rule_engine.clean(html)
