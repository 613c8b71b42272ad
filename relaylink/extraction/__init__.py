"""Candidate discovery, junk filtering and anchor scoring."""

from relaylink.extraction.candidates import CandidateExtractor, find_plain_urls
from relaylink.extraction.junk import DEFAULT_JUNK_RULES, JunkClassifier, JunkRule
from relaylink.extraction.scoring import DISQUALIFIED, AnchorScorer, PostPathPattern

__all__ = [
    "CandidateExtractor",
    "find_plain_urls",
    "JunkClassifier",
    "JunkRule",
    "DEFAULT_JUNK_RULES",
    "AnchorScorer",
    "PostPathPattern",
    "DISQUALIFIED",
]
