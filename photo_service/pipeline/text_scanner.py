"""
Text Scanner

Rule-based scan of voice prompt transcripts for policy violations.

Rules are plain data: an ordered tuple of PatternRule / BlocklistRule.
The scanner returns every tag that matched, in rule order, without
duplicates. An empty list means the text is clean.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PatternRule:
    """One regular expression producing one fixed tag."""
    tag: str
    pattern: str
    _compiled: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_compiled", re.compile(self.pattern, re.IGNORECASE))

    def scan(self, text: str) -> list[str]:
        return [self.tag] if self._compiled.search(text) else []


@dataclass(frozen=True)
class BlocklistRule:
    """Whole-word terms; each hit is tagged `<category>:<term>`."""
    category: str
    terms: tuple[str, ...]
    _compiled: tuple = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        compiled = tuple(
            (term, re.compile(r"\b" + re.escape(term) + r"\b", re.IGNORECASE))
            for term in self.terms
        )
        object.__setattr__(self, "_compiled", compiled)

    def scan(self, text: str) -> list[str]:
        return [f"{self.category}:{term}" for term, pattern in self._compiled if pattern.search(text)]


Rule = Union[PatternRule, BlocklistRule]


DEFAULT_RULES: tuple[Rule, ...] = (
    PatternRule("contact_info:phone_number", r"\+?\d[\d\s\-\.]{6,}\d"),
    PatternRule("contact_info:email", r"[\w.+-]+@[\w-]+\.[\w.]+"),
    PatternRule(
        "contact_info:social_media",
        r"\b(?:instagram|snapchat|snap|insta|tiktok|twitter|whatsapp|telegram)\b"
        r"|(?<![\w.+-])@\w{3,}",
    ),
    BlocklistRule("hate_speech", ("kill", "murder", "terrorist", "bomb", "shoot")),
    BlocklistRule("explicit_content", ("porn", "xxx", "nude", "naked")),
)


def scan_text(text: str | None, rules: Sequence[Rule] = DEFAULT_RULES) -> list[str]:
    """
    Scan text against a rule set.

    Args:
        text: Transcript to scan (None, empty or whitespace is clean)
        rules: Ordered rules to apply

    Returns:
        Matched violation tags in rule order, de-duplicated
    """
    if not text or not text.strip():
        return []

    violations: list[str] = []
    for rule in rules:
        for tag in rule.scan(text):
            if tag not in violations:
                violations.append(tag)
    return violations


def load_rule_set(path: str | Path) -> tuple[Rule, ...]:
    """
    Load rules from a JSON file.

    Format:
        {
          "patterns":   [{"tag": "contact_info:email", "pattern": "..."}],
          "blocklists": [{"category": "hate_speech", "terms": ["..."]}]
        }

    Pattern rules come before blocklists, each group in file order.

    Raises:
        ValueError: if the document is malformed or a pattern does not compile
    """
    try:
        document = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Rule file {path} is not valid JSON: {e}") from e

    if not isinstance(document, dict):
        raise ValueError(f"Rule file {path} must contain a JSON object")

    rules: list[Rule] = []
    try:
        for entry in document.get("patterns", []):
            rules.append(PatternRule(tag=entry["tag"], pattern=entry["pattern"]))
        for entry in document.get("blocklists", []):
            rules.append(BlocklistRule(category=entry["category"], terms=tuple(entry["terms"])))
    except (KeyError, TypeError, re.error) as e:
        raise ValueError(f"Invalid rule in {path}: {e}") from e

    logger.info(f"Loaded {len(rules)} moderation rules from {path}")
    return tuple(rules)
