"""
Prompt-injection sanitization of retrieved chunks.

Retrieved document text is pasted into a generation prompt, so phrases that
look like instructions to the model are neutralized first. Matches are
replaced, never rejected: sanitization cannot fail a request.

The deny-list is data. Extra rules can be loaded from a JSON file shaped
like::

    [
        {"name": "reveal_prompt", "pattern": "reveal\\s+your\\s+prompt"},
        {"name": "shout", "pattern": "ATTENTION MODEL", "replacement": " ", "ignore_case": false}
    ]

This is a best-effort mitigation, not a security boundary.
"""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from loguru import logger

from ..errors import ConfigurationError


@dataclass(frozen=True)
class SanitizationRule:
    """One deny-list entry: a regex and what its matches become."""

    pattern: str
    replacement: str = " "
    flags: int = re.IGNORECASE
    name: str = ""
    compiled: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "compiled", re.compile(self.pattern, self.flags))
        if not self.name:
            object.__setattr__(self, "name", self.pattern)


DEFAULT_RULES: tuple[SanitizationRule, ...] = (
    SanitizationRule(r"ignore\s+(all\s+)?(previous|prior|above)\s+instructions?", name="ignore_instructions"),
    SanitizationRule(r"disregard\s+(all\s+)?(previous|prior|above)\s+instructions?", name="disregard_instructions"),
    SanitizationRule(r"forget\s+(everything|all)\s+(you|i)", name="forget_everything"),
    SanitizationRule(r"you\s+are\s+now\s+(a|an|the)\s+\w+", name="role_override"),
    SanitizationRule(r"act\s+as\s+(a|an|the)\s+\w+", name="act_as"),
    SanitizationRule(r"pretend\s+(you\s+are|to\s+be)\s+", name="pretend"),
    SanitizationRule(r"\bjailbreak\b", name="jailbreak"),
    SanitizationRule(r"\bDAN\s+mode\b", name="dan_mode"),
    SanitizationRule(r"system\s+prompt\s*:", name="system_prompt"),
    SanitizationRule(r"<\s*/?system\s*>", name="system_tag"),
    SanitizationRule(r"\[\s*/?INST\s*\]", name="inst_tag"),
    SanitizationRule(r"new\s+instructions?\s*:", name="new_instructions"),
    SanitizationRule(r"override\s+(your\s+)?(instructions?|rules?|guidelines?)", name="override_rules"),
)


@dataclass
class SanitizationResult:
    """Sanitized text plus the names of the rules that matched."""

    text: str
    matches: list[str] = field(default_factory=list)

    @property
    def modified(self) -> bool:
        return bool(self.matches)


class Sanitizer:
    """
    Applies an ordered list of SanitizationRule to text.

    Usage:
        sanitizer = Sanitizer()
        result = sanitizer.sanitize(chunk)
        if result.modified:
            ...
    """

    def __init__(self, rules: Iterable[SanitizationRule] | None = None):
        self.rules: tuple[SanitizationRule, ...] = (
            tuple(rules) if rules is not None else DEFAULT_RULES
        )

    def sanitize(self, text: str) -> SanitizationResult:
        matches: list[str] = []
        for rule in self.rules:
            text, count = rule.compiled.subn(rule.replacement, text)
            if count:
                matches.extend([rule.name] * count)
        return SanitizationResult(text=text, matches=matches)

    @classmethod
    def from_json(cls, path: str | Path, include_defaults: bool = True) -> "Sanitizer":
        """Build a sanitizer from a JSON rules file.

        Raises:
            ConfigurationError: If the file is unreadable or a rule is invalid
        """
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ConfigurationError(
                f"Cannot load sanitization rules from {path}", original_error=e
            ) from e

        if not isinstance(raw, list):
            raise ConfigurationError(
                f"Sanitization rules file {path} must contain a JSON list"
            )

        loaded = []
        for position, entry in enumerate(raw):
            try:
                loaded.append(
                    SanitizationRule(
                        pattern=entry["pattern"],
                        replacement=entry.get("replacement", " "),
                        flags=re.IGNORECASE if entry.get("ignore_case", True) else 0,
                        name=entry.get("name", ""),
                    )
                )
            except (KeyError, TypeError, AttributeError, re.error) as e:
                raise ConfigurationError(
                    f"Invalid sanitization rule at position {position} in {path}",
                    details={"rule": entry},
                    original_error=e,
                ) from e

        logger.info(f"Loaded {len(loaded)} sanitization rules from {path}")
        rules = (*DEFAULT_RULES, *loaded) if include_defaults else loaded
        return cls(rules)
