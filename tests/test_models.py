"""Tests for data models."""

from email.message import EmailMessage

from relaylink.models import Document, ScoredAnchor, SourceKind, URLCandidate


def build_message() -> EmailMessage:
    message = EmailMessage()
    message["Subject"] = "The Big Story"
    message["From"] = "Writer <Writer@Substack.com>"
    message["Date"] = "Tue, 14 Nov 2023 22:13:20 +0000"
    message["Message-ID"] = "<issue-12@substack.com>"
    message["List-Post"] = "<https://writer.substack.com/p/big-story>"
    message.set_content("Read it at https://writer.substack.com/p/big-story\n")
    message.add_alternative(
        '<a class="post-title-link" href="https://writer.substack.com/p/big-story">The Big Story</a>',
        subtype="html",
    )
    return message


class TestSourceKind:
    """Tests for SourceKind precedence."""

    def test_precedence_order(self) -> None:
        """Test that headers outrank meta tags, anchors and plain text."""
        kinds = sorted(SourceKind, key=lambda k: k.precedence)

        assert kinds[0] is SourceKind.LIST_POST_HEADER
        assert kinds[-1] is SourceKind.PLAIN_TEXT
        assert SourceKind.CANONICAL_TAG.precedence < SourceKind.OG_URL_META.precedence

    def test_candidate_sort_key(self) -> None:
        """Test ordering by kind, then position."""
        candidates = [
            URLCandidate("https://a.example/2", SourceKind.ANCHOR, document_position=2),
            URLCandidate("https://a.example/1", SourceKind.ANCHOR, document_position=1),
            URLCandidate("https://a.example/m", SourceKind.OG_URL_META),
        ]

        ordered = sorted(candidates, key=URLCandidate.sort_key)

        assert [c.raw_url for c in ordered] == [
            "https://a.example/m",
            "https://a.example/1",
            "https://a.example/2",
        ]


class TestDocument:
    """Tests for Document."""

    def test_sender_domain(self) -> None:
        """Test domain extraction from sender address."""
        document = Document(subject="", sender_address="Writer@News.Example")

        assert document.sender_domain == "news.example"

    def test_sender_domain_missing(self) -> None:
        """Test empty domain for an address without @."""
        assert Document(subject="", sender_address="nobody").sender_domain == ""

    def test_header_lookup_case_insensitive(self) -> None:
        """Test header lookup ignores case."""
        document = Document(subject="", sender_address="", headers={"List-Post": "<https://a.example/>"})

        assert document.header("list-post") == "<https://a.example/>"
        assert document.header("X-Missing") is None

    def test_from_message(self) -> None:
        """Test building a document from an email message."""
        document = Document.from_message(build_message())

        assert document.subject == "The Big Story"
        assert document.sender_address == "Writer@Substack.com"
        assert document.sender_domain == "substack.com"
        assert document.message_id == "<issue-12@substack.com>"
        assert document.internal_timestamp == 1_700_000_000_000
        assert "post-title-link" in document.html_body
        assert "https://writer.substack.com/p/big-story" in document.plain_text_body
        assert document.header("list-post") == "<https://writer.substack.com/p/big-story>"

    def test_from_message_plain_only(self) -> None:
        """Test a message without HTML part or date."""
        message = EmailMessage()
        message["Subject"] = "Plain"
        message["From"] = "a@b.example"
        message.set_content("hello\n")

        document = Document.from_message(message)

        assert document.html_body == ""
        assert document.plain_text_body == "hello\n"
        assert document.internal_timestamp == 0
        assert document.message_id == ""


class TestScoredAnchor:
    """Tests for ScoredAnchor."""

    def test_disqualified(self) -> None:
        """Test the disqualified flag follows matched factors."""
        candidate = URLCandidate("https://a.example/", SourceKind.ANCHOR)

        assert ScoredAnchor(candidate, -1, ["disqualified"]).disqualified
        assert not ScoredAnchor(candidate, 10, ["position 0"]).disqualified
