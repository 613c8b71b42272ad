"""Resolution of a newsletter email to its single article URL."""

import logging
from dataclasses import dataclass

from relaylink.config import RelayConfig
from relaylink.extraction import AnchorScorer, CandidateExtractor, JunkClassifier
from relaylink.models import Document, URLCandidate
from relaylink.urls import RedirectResolver, UrlNormalizer

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    """Resolved article URL and the candidate it came from."""

    url: str
    candidate: URLCandidate
    score: int | None = None


class UrlResolutionPipeline:
    """Walks the candidate precedence chain and returns one normalized URL.

    Stages, short-circuiting on the first success:
    header -> canonical/og/twitter meta -> best scored anchor -> first plain-text URL.
    Anchors are scored on their raw URLs; only the winner is normalized.
    """

    def __init__(
        self,
        extractor: CandidateExtractor | None = None,
        scorer: AnchorScorer | None = None,
        normalizer: UrlNormalizer | None = None,
    ):
        self.extractor = extractor or CandidateExtractor()
        self.scorer = scorer or AnchorScorer(junk=self.extractor.junk)
        self.normalizer = normalizer or UrlNormalizer()

    @classmethod
    def from_config(cls, config: RelayConfig) -> "UrlResolutionPipeline":
        """Build the pipeline and its components from configuration."""
        junk = JunkClassifier(extra_patterns=config.junk_patterns)
        resolver = RedirectResolver(redirect_param_names=config.redirect_param_names)
        return cls(
            extractor=CandidateExtractor(junk=junk),
            scorer=AnchorScorer(weights=config.scoring_weights, junk=junk),
            normalizer=UrlNormalizer(resolver=resolver, tracking_param_names=config.tracking_param_names),
        )

    def resolve(self, document: Document) -> str | None:
        """Resolve a document to its normalized article URL.

        Args:
            document: Newsletter email.

        Returns:
            Normalized URL, or None if the document has no article link.
        """
        resolution = self.resolve_candidate(document)
        return resolution.url if resolution else None

    def resolve_candidate(self, document: Document) -> Resolution | None:
        """Resolve a document, keeping track of the winning candidate."""
        for candidates in (
            self.extractor.header_candidates(document),
            self.extractor.meta_candidates(document),
        ):
            resolution = self._first_normalized(candidates)
            if resolution:
                return resolution

        anchors = self.extractor.anchor_candidates(document)
        best = self.scorer.select(anchors, document.sender_domain, document.subject)
        if best is not None:
            url = self.normalizer.try_normalize(best.candidate.raw_url)
            if url:
                logger.debug(f"Best anchor scored {best.score}: {', '.join(best.matched_factors)}")
                return Resolution(url=url, candidate=best.candidate, score=best.score)

        resolution = self._first_normalized(self.extractor.plain_text_candidates(document))
        if resolution:
            return resolution

        logger.info(f"No article link found in: {document.subject[:60]}")
        return None

    def _first_normalized(self, candidates: list[URLCandidate]) -> Resolution | None:
        for candidate in candidates:
            url = self.normalizer.try_normalize(candidate.raw_url)
            if url:
                logger.debug(f"Resolved from {candidate.source_kind.value}: {url}")
                return Resolution(url=url, candidate=candidate)
        return None
