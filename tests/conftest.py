"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from relaylink.config import RelayConfig
from relaylink.models import Document
from relaylink.storage import MemoryStore

NOW_MS = 1_700_000_000_000
DAY_MS = 24 * 60 * 60 * 1000


@pytest.fixture
def clock():
    """Fixed clock returning NOW_MS."""
    return lambda: NOW_MS


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def relay_config(tmp_path: Path) -> RelayConfig:
    """Default configuration writing into the temporary directory."""
    return RelayConfig(
        state_path=tmp_path / "state" / "relay_state.json",
        logs_dir=tmp_path / "logs",
    )


@pytest.fixture
def sample_config(tmp_path: Path) -> Path:
    """Create a sample config file for testing."""
    config_path = tmp_path / "config.yaml"
    config_content = f"""
dedup:
  retention_days: 30

junk:
  patterns:
    - "sponsored"

scoring:
  weights:
    read_more: 25

history:
  enabled: false

storage:
  path: {tmp_path / "state" / "relay_state.json"}

run:
  max_documents: 5

output:
  logs_dir: {tmp_path / "logs"}
"""
    config_path.write_text(config_content)
    return config_path


@pytest.fixture
def newsletter_html() -> str:
    """A typical platform newsletter body."""
    return """
<html xmlns="http://www.w3.org/1999/xhtml">
<head><meta property="og:title" content="Issue 12"></head>
<body>
  <a href="https://writer.substack.com/p/big-story?utm_source=substack">View in browser</a>
  <h1><a class="post-title-link" href="https://writer.substack.com/p/big-story?utm_campaign=email">The Big Story</a></h1>
  <p>Some text <a href="https://elsewhere.example/reference">a reference</a>.</p>
  <a href="https://substack.com/app-link/post?publication_id=1">Get the app</a>
  <a href="https://writer.substack.com/action/disable_email?token=x">Unsubscribe</a>
  <img src="https://eotrx.substackcdn.com/open?token=abc" width="1" height="1">
</body>
</html>
"""


@pytest.fixture
def newsletter_document(newsletter_html: str) -> Document:
    return Document(
        subject="The Big Story",
        sender_address="writer@substack.com",
        headers={"Subject": "The Big Story"},
        html_body=newsletter_html,
        plain_text_body="Read online: https://writer.substack.com/p/big-story",
        internal_timestamp=NOW_MS,
        message_id="<issue-12@substack.com>",
    )
