"""Tests for the URL resolution pipeline."""

from relaylink.config import RelayConfig
from relaylink.extraction import AnchorScorer
from relaylink.models import Document, ScoringWeights, SourceKind
from relaylink.pipeline import UrlResolutionPipeline


def make_document(
    html: str = "",
    text: str = "",
    headers: dict[str, str] | None = None,
    subject: str = "Weekly notes",
    sender: str = "news@newsletter.example",
) -> Document:
    return Document(
        subject=subject,
        sender_address=sender,
        headers=headers or {},
        html_body=html,
        plain_text_body=text,
    )


class TestUrlResolutionPipeline:
    """Tests for UrlResolutionPipeline class."""

    def test_og_url_with_unsubscribe_anchor(self) -> None:
        """Test the og:url meta tag wins and is normalized."""
        html = """
        <meta property="og:url" content="https://news.example/story-1?utm_source=newsletter">
        <a href="https://news.example/unsubscribe?id=7">Unsubscribe</a>
        """
        pipeline = UrlResolutionPipeline()

        assert pipeline.resolve(make_document(html=html)) == "https://news.example/story-1"

    def test_canonical_beats_anchors(self) -> None:
        """Test that a canonical tag takes precedence over anchors."""
        html = """
        <a class="post-title-link" href="https://news.example/anchor-story">Weekly notes</a>
        <link rel="canonical" href="https://news.example/canonical-story/">
        """
        pipeline = UrlResolutionPipeline()

        resolution = pipeline.resolve_candidate(make_document(html=html))

        assert resolution is not None
        assert resolution.url == "https://news.example/canonical-story"
        assert resolution.candidate.source_kind == SourceKind.CANONICAL_TAG

    def test_header_beats_meta(self) -> None:
        """Test that the List-Post header takes precedence over meta tags."""
        document = make_document(
            html='<link rel="canonical" href="https://news.example/canonical">',
            headers={"List-Post": "<https://www.news.example/from-header/>"},
        )
        pipeline = UrlResolutionPipeline()

        assert pipeline.resolve(document) == "https://news.example/from-header"

    def test_best_anchor_selected(self, newsletter_document: Document) -> None:
        """Test that the title link beats view-in-browser and body links."""
        pipeline = UrlResolutionPipeline()

        resolution = pipeline.resolve_candidate(newsletter_document)

        assert resolution is not None
        assert resolution.url == "https://writer.substack.com/p/big-story"
        assert resolution.candidate.source_kind == SourceKind.ANCHOR
        assert "post-title-link" in resolution.candidate.markup_context

    def test_subject_anchor_beats_earlier_anchor(self) -> None:
        """Test that scoring, not order alone, decides between anchors."""
        html = """
        <a href="https://sponsor.example/deal">Our sponsor</a>
        <a href="https://writer.substack.com/p/big-story">The Big Story</a>
        """
        document = make_document(html=html, subject="The Big Story", sender="writer@substack.com")
        pipeline = UrlResolutionPipeline()

        assert pipeline.resolve(document) == "https://writer.substack.com/p/big-story"

    def test_tie_goes_to_earlier_anchor(self) -> None:
        """Test that equal scores pick the earlier anchor."""
        html = '<a href="https://first.example/a">One</a><a href="https://second.example/b">Two</a>'
        pipeline = UrlResolutionPipeline(scorer=AnchorScorer(weights=ScoringWeights(position_max=0)))

        assert pipeline.resolve(make_document(html=html)) == "https://first.example/a"

    def test_junk_only_anchor_is_never_returned(self) -> None:
        """Test that a lone junk anchor yields no link."""
        html = """
        <a href="https://news.example/account/preferences">Manage preferences</a>
        <img src="https://eotrx.substackcdn.com/open?token=abc">
        <div xmlns="http://www.w3.org/1999/xhtml"></div>
        """
        pipeline = UrlResolutionPipeline()

        assert pipeline.resolve(make_document(html=html)) is None

    def test_falls_back_to_plain_text(self) -> None:
        """Test that the plain-text body is used when nothing else matches."""
        document = make_document(
            html="<p>No links here</p>",
            text="Unsubscribe: https://news.example/unsubscribe\nStory: https://news.example/a?utm_medium=email",
        )
        pipeline = UrlResolutionPipeline()

        resolution = pipeline.resolve_candidate(document)

        assert resolution is not None
        assert resolution.url == "https://news.example/a"
        assert resolution.candidate.source_kind == SourceKind.PLAIN_TEXT

    def test_malformed_stage_falls_through(self) -> None:
        """Test that a candidate failing normalization does not stop the pipeline."""
        html = '<link rel="canonical" href="https://"><a href="https://news.example/fallback">Story</a>'
        pipeline = UrlResolutionPipeline()

        assert pipeline.resolve(make_document(html=html)) == "https://news.example/fallback"

    def test_anchor_redirect_is_unwrapped(self) -> None:
        """Test that the winning anchor is normalized through its redirect."""
        html = '<a href="https://click.example/t?url=https%3A%2F%2Freal.example%2Fpost%3Futm_source%3Dx">Read more</a>'
        pipeline = UrlResolutionPipeline()

        assert pipeline.resolve(make_document(html=html)) == "https://real.example/post"

    def test_non_web_redirect_target_is_not_selected(self) -> None:
        """Test that a redirect to a javascript: URL never becomes the article link."""
        html = '<a href="https://n.example/go?url=javascript%3A%2F%2Fevil%2Falert">Read more</a>'
        pipeline = UrlResolutionPipeline()

        assert pipeline.resolve(make_document(html=html)) == "https://n.example/go"

    def test_undecodable_token_anchor_does_not_raise(self) -> None:
        """Test that an anchor with a non-ASCII redirect token still resolves."""
        html = '<a href="https://writer.substack.com/redirect/2/x?j=aaa.%C3%A9%C3%A9.sig">Read more</a>'
        pipeline = UrlResolutionPipeline()

        assert pipeline.resolve(make_document(html=html)) == "https://writer.substack.com/redirect/2/x"

    def test_no_candidates(self) -> None:
        """Test that an empty document resolves to None."""
        pipeline = UrlResolutionPipeline()

        assert pipeline.resolve(make_document()) is None

    def test_from_config_uses_junk_patterns(self) -> None:
        """Test that configured junk patterns reach the extractor."""
        config = RelayConfig(junk_patterns=[r"sponsored"])
        pipeline = UrlResolutionPipeline.from_config(config)
        html = '<a href="https://ads.example/sponsored/1">Deal</a><a href="https://news.example/story">Story</a>'

        assert pipeline.resolve(make_document(html=html)) == "https://news.example/story"
