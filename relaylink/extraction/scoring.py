"""Desirability scoring for anchor candidates."""

import logging
import re
from dataclasses import dataclass
from urllib.parse import urlsplit

from relaylink.extraction.junk import JunkClassifier
from relaylink.models import ScoredAnchor, ScoringWeights, SourceKind, URLCandidate

logger = logging.getLogger(__name__)

DISQUALIFIED = -(10**9)


@dataclass
class PostPathPattern:
    """Path shape of a long-form post on a known platform."""

    platform: str
    path_pattern: str
    host_pattern: str | None = None  # None = any host (custom domains)


DEFAULT_POST_PATHS = [
    PostPathPattern(platform="substack", path_pattern=r"^/p/[^/]+"),
    PostPathPattern(platform="beehiiv", path_pattern=r"^/p/[^/]+", host_pattern=r"(^|\.)beehiiv\.com$"),
    PostPathPattern(platform="medium", path_pattern=r"/[a-z0-9\-]+-[0-9a-f]{10,12}$", host_pattern=r"medium\.com$"),
    PostPathPattern(platform="ghost", path_pattern=r"^/\d{4}/\d{2}/[^/]+"),
    PostPathPattern(platform="buttondown", path_pattern=r"^/[^/]+/archive/[^/]+", host_pattern=r"buttondown\.(email|com)$"),
]

POST_TITLE_CLASS_PATTERN = re.compile(
    r"class\s*=\s*[\"']?[^\"'>]*\b(post-title-link|post-title|email-title-link)\b", re.IGNORECASE
)
APP_MARKER_PATTERN = re.compile(
    r"/app-link/|apps\.apple\.com|itunes\.apple\.com|play\.google\.com|app\.link/|[?&](utm_medium=app|redirect=app-store)",
    re.IGNORECASE,
)
VIEW_IN_BROWSER_PATTERN = re.compile(
    r"\bview\b.*\b(in (your |a |the )?browser|online|on the web)\b|\bread (it )?online\b|\bopen in browser\b",
    re.IGNORECASE,
)
READ_MORE_PATTERN = re.compile(r"\bread (more|the full|full)\b|\bcontinue reading\b|\bkeep reading\b", re.IGNORECASE)


def _collapse(text: str) -> str:
    return " ".join(text.split()).casefold()


class AnchorScorer:
    """Scores anchor candidates; higher means more likely the article link."""

    def __init__(
        self,
        weights: ScoringWeights | None = None,
        junk: JunkClassifier | None = None,
        post_paths: list[PostPathPattern] | None = None,
    ):
        """Initialize scorer with optional custom weights.

        Args:
            weights: Custom scoring weights. Uses defaults if None.
            junk: Classifier used as a safety net for disqualification.
            post_paths: Long-form post path shapes. Defaults to the built-in list.
        """
        self.weights = weights or ScoringWeights()
        self.junk = junk or JunkClassifier()
        self.post_paths = post_paths if post_paths is not None else DEFAULT_POST_PATHS
        self._compiled_paths = [
            (
                pp,
                re.compile(pp.path_pattern, re.IGNORECASE),
                re.compile(pp.host_pattern, re.IGNORECASE) if pp.host_pattern else None,
            )
            for pp in self.post_paths
        ]

    def score(self, candidate: URLCandidate, anchor_index: int, sender_domain: str, subject: str) -> ScoredAnchor:
        """Score a single anchor.

        Args:
            candidate: Anchor candidate.
            anchor_index: Zero-based position among the document's anchors.
            sender_domain: Domain of the newsletter sender.
            subject: Email subject line.

        Returns:
            ScoredAnchor; disqualified anchors carry the DISQUALIFIED score.
        """
        url = candidate.raw_url.strip()
        reason = self._disqualify_reason(candidate)
        if reason:
            return ScoredAnchor(candidate=candidate, score=DISQUALIFIED, matched_factors=["disqualified", reason])

        score = 0
        factors: list[str] = []

        try:
            split = urlsplit(url)
            host = (split.hostname or "").lower()
            path = split.path
        except ValueError:
            host, path = "", ""

        score, factors = self._score_markup(candidate, score, factors)
        score, factors = self._score_subject(candidate, subject, score, factors)
        score, factors = self._score_path(host, path, score, factors)
        score, factors = self._score_sender(host, sender_domain, score, factors)
        score, factors = self._score_phrasing(candidate, score, factors)

        position_bonus = max(0, self.weights.position_max - anchor_index)
        if position_bonus:
            score += position_bonus
            factors.append(f"position {anchor_index}")

        return ScoredAnchor(candidate=candidate, score=score, matched_factors=factors)

    def select(self, anchors: list[URLCandidate], sender_domain: str, subject: str) -> ScoredAnchor | None:
        """Pick the best anchor.

        The strictly highest score wins; ties go to the earliest anchor.

        Returns:
            Winning ScoredAnchor, or None if every anchor is disqualified.
        """
        best: ScoredAnchor | None = None
        for index, candidate in enumerate(a for a in anchors if a.source_kind == SourceKind.ANCHOR):
            scored = self.score(candidate, index, sender_domain, subject)
            logger.debug(f"Anchor {index} scored {scored.score} {scored.matched_factors}: {candidate.raw_url[:100]}")
            if scored.disqualified:
                continue
            if (
                best is None
                or scored.score > best.score
                or (
                    scored.score == best.score
                    and candidate.document_position < best.candidate.document_position
                )
            ):
                best = scored
        return best

    def _disqualify_reason(self, candidate: URLCandidate) -> str | None:
        url = candidate.raw_url.strip()
        if url.lower().startswith("mailto:"):
            return "mailto"
        if not re.match(r"^https?://", url, re.IGNORECASE):
            return "scheme"
        junk_reason = self.junk.match(url, candidate.anchor_text)
        if junk_reason:
            return junk_reason
        if APP_MARKER_PATTERN.search(url):
            return "app_link"
        return None

    def _score_markup(self, candidate: URLCandidate, score: int, factors: list[str]) -> tuple[int, list[str]]:
        """Score the post title class marker on the anchor tag."""
        if POST_TITLE_CLASS_PATTERN.search(candidate.markup_context):
            score += self.weights.post_title_class
            factors.append("post title link")
        return score, factors

    def _score_subject(
        self, candidate: URLCandidate, subject: str, score: int, factors: list[str]
    ) -> tuple[int, list[str]]:
        text = _collapse(candidate.anchor_text)
        if text and text == _collapse(subject or ""):
            score += self.weights.subject_match
            factors.append("subject match")
        return score, factors

    def _score_path(self, host: str, path: str, score: int, factors: list[str]) -> tuple[int, list[str]]:
        for post_path, path_re, host_re in self._compiled_paths:
            if host_re is not None and not host_re.search(host):
                continue
            if path_re.search(path):
                score += self.weights.post_path
                factors.append(f"{post_path.platform} post path")
                break
        return score, factors

    def _score_sender(self, host: str, sender_domain: str, score: int, factors: list[str]) -> tuple[int, list[str]]:
        domain = (sender_domain or "").lower().strip()
        if domain and host and domain in host:
            score += self.weights.sender_domain
            factors.append("sender domain")
        return score, factors

    def _score_phrasing(self, candidate: URLCandidate, score: int, factors: list[str]) -> tuple[int, list[str]]:
        text = candidate.anchor_text
        if not text:
            return score, factors

        if VIEW_IN_BROWSER_PATTERN.search(text):
            score += self.weights.view_in_browser
            factors.append("view in browser")
        if READ_MORE_PATTERN.search(text):
            score += self.weights.read_more
            factors.append("read more")
        return score, factors
