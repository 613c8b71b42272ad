"""Denylist of URLs and anchors that are never the article link."""

import logging
import re
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

HTTP_SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)


@dataclass
class JunkRule:
    """A named pattern marking a URL or anchor text as junk."""

    name: str
    pattern: str
    applies_to: Literal["url", "text", "both"] = "url"


# Default denylist. Order only affects which rule name gets reported.
DEFAULT_JUNK_RULES = [
    JunkRule(
        name="unsubscribe",
        pattern=r"unsubscribe|opt[-_ ]?out|\bmanage[-_ ]?(your[-_ ]?)?(subscription|email)s?\b",
        applies_to="both",
    ),
    JunkRule(
        name="preferences",
        pattern=r"preferences|email[-_ ]?settings|notification[-_ ]?settings",
        applies_to="both",
    ),
    JunkRule(name="privacy", pattern=r"privacy", applies_to="both"),
    JunkRule(name="terms", pattern=r"\bterms\b|\btos\b", applies_to="both"),
    JunkRule(name="spam", pattern=r"\bspam\b|report[-_ ]?abuse", applies_to="both"),
    JunkRule(
        name="profile_update",
        pattern=r"update[-_ ]?(your[-_ ]?)?profile|profile[-_ ]?update|edit[-_ ]?profile",
        applies_to="both",
    ),
    JunkRule(name="xml_namespace", pattern=r"^https?://www\.w3\.org/(1999|2000)/"),
    JunkRule(name="open_pixel", pattern=r"eotrx\.substackcdn\.com/|/track/open|/open\.(gif|php|png)\b|/e/o/"),
    JunkRule(name="broken_click_tracker", pattern=r"^https?://email\.mg\d*\.[a-z0-9.\-]+/c/"),
    JunkRule(
        name="app_link",
        pattern=(
            r"/app-link/|apps\.apple\.com/|itunes\.apple\.com/|play\.google\.com/store"
            r"|open\.substack\.com/(pub|app)|substack\.com/app(/|\?|$)|[?&]redirect=app-store"
        ),
    ),
]


class JunkClassifier:
    """Flags URLs and anchors that must never be selected."""

    def __init__(self, rules: list[JunkRule] | None = None, extra_patterns: list[str] | None = None):
        """Initialize classifier.

        Args:
            rules: Junk rules. Defaults to the built-in denylist.
            extra_patterns: Additional regexes checked against URL and anchor text.
        """
        self.rules = list(rules if rules is not None else DEFAULT_JUNK_RULES)
        for i, pattern in enumerate(extra_patterns or []):
            self.rules.append(JunkRule(name=f"custom_{i}", pattern=pattern, applies_to="both"))

        self._compiled = [(rule, re.compile(rule.pattern, re.IGNORECASE)) for rule in self.rules]

    def match(self, url: str, anchor_text: str = "") -> str | None:
        """Find the reason a URL or anchor is junk.

        Args:
            url: Raw URL.
            anchor_text: Visible anchor text, if any.

        Returns:
            Name of the first matching rule, or None if the URL is usable.
        """
        url = url.strip()
        if url.lower().startswith("mailto:"):
            return "mailto"
        if not HTTP_SCHEME_PATTERN.match(url):
            return "scheme"

        for rule, pattern in self._compiled:
            if rule.applies_to in ("url", "both") and pattern.search(url):
                return rule.name
            if anchor_text and rule.applies_to in ("text", "both") and pattern.search(anchor_text):
                return rule.name

        return None

    def is_junk(self, url: str, anchor_text: str = "") -> bool:
        """Check whether a URL or anchor must never be selected."""
        reason = self.match(url, anchor_text)
        if reason:
            logger.debug(f"Junk ({reason}): {url[:120]}")
            return True
        return False
