"""Configuration loading for newsletter relay runs."""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from relaylink.models import ScoringWeights

logger = logging.getLogger(__name__)

MS_PER_DAY = 24 * 60 * 60 * 1000

DEFAULT_TRACKING_PARAMS = [
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "mc_cid",
    "mc_eid",
]

# Order matters: the first present parameter wins
DEFAULT_REDIRECT_PARAMS = ["redirect", "url", "u", "target", "r", "to"]

HISTORY_TOKEN_ENV = "RELAYLINK_HISTORY_TOKEN"


@dataclass
class HistoryConfig:
    """Configuration for the published-history cross-check."""

    enabled: bool = False
    base_url: str = ""
    access_token: str = ""
    limit: int = 40


@dataclass
class RelayConfig:
    """Explicit configuration handed to each component at construction."""

    retention_days: int = 180
    tracking_param_names: list[str] = field(default_factory=lambda: list(DEFAULT_TRACKING_PARAMS))
    redirect_param_names: list[str] = field(default_factory=lambda: list(DEFAULT_REDIRECT_PARAMS))
    junk_patterns: list[str] = field(default_factory=list)  # Appended to the built-in denylist
    scoring_weights: ScoringWeights = field(default_factory=ScoringWeights)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    state_path: Path = Path("state/relay_state.json")
    logs_dir: Path = Path("output/logs")
    max_documents: int = 25

    @property
    def retention_window_ms(self) -> int:
        return self.retention_days * MS_PER_DAY

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "RelayConfig":
        """Build configuration from a parsed YAML mapping.

        Args:
            data: Mapping as produced by ``yaml.safe_load``. None means defaults.

        Returns:
            RelayConfig with defaults for every absent key.
        """
        data = data or {}
        config = cls()

        dedup = data.get("dedup", {}) or {}
        config.retention_days = int(dedup.get("retention_days", config.retention_days))

        normalization = data.get("normalization", {}) or {}
        if "tracking_params" in normalization:
            config.tracking_param_names = [str(p) for p in normalization["tracking_params"]]
        if "redirect_params" in normalization:
            config.redirect_param_names = [str(p) for p in normalization["redirect_params"]]

        junk = data.get("junk", {}) or {}
        config.junk_patterns = [str(p) for p in junk.get("patterns", [])]

        weights = (data.get("scoring") or {}).get("weights") or {}
        known = {f.name for f in fields(ScoringWeights)}
        unknown = set(weights) - known
        if unknown:
            logger.warning(f"Ignoring unknown scoring weights: {', '.join(sorted(unknown))}")
        config.scoring_weights = ScoringWeights(**{k: int(v) for k, v in weights.items() if k in known})

        history = data.get("history", {}) or {}
        config.history = HistoryConfig(
            enabled=bool(history.get("enabled", False)),
            base_url=str(history.get("base_url", "")).rstrip("/"),
            access_token=str(history.get("access_token", "") or os.environ.get(HISTORY_TOKEN_ENV, "")),
            limit=int(history.get("limit", 40)),
        )

        storage = data.get("storage", {}) or {}
        config.state_path = Path(storage.get("path", config.state_path))

        output = data.get("output", {}) or {}
        config.logs_dir = Path(output.get("logs_dir", config.logs_dir))

        run = data.get("run", {}) or {}
        config.max_documents = int(run.get("max_documents", config.max_documents))

        return config


def load_config(config_path: Path) -> RelayConfig:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to config.yaml.

    Returns:
        Parsed configuration.

    Raises:
        FileNotFoundError: If config file doesn't exist.
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        data: dict[str, Any] | None = yaml.safe_load(f)

    return RelayConfig.from_dict(data)
