"""Run log and Markdown summary of relayed newsletters."""

import json
import logging
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any

from relaylink.models import LogEntry, RelayResult

logger = logging.getLogger(__name__)

OUTCOMES = ("posted", "duplicate", "no_link", "failed", "skipped")


class RelayLogger:
    """Records each processed document in JSON and renders daily summaries."""

    def __init__(self, logs_dir: Path):
        """Initialize relay logger.

        Args:
            logs_dir: Directory for log files.
        """
        self.logs_dir = Path(logs_dir)
        self.logs_dir.mkdir(parents=True, exist_ok=True)

        self.relay_log_path = self.logs_dir / "relay_log.json"
        self.daily_results: list[LogEntry] = []

    def log_result(self, result: RelayResult) -> LogEntry:
        """Log the outcome for one document.

        Args:
            result: The processed document outcome.

        Returns:
            The created LogEntry.
        """
        entry = LogEntry(
            timestamp=datetime.now().isoformat(),
            message_id=result.message_id,
            subject=result.subject,
            url=result.url,
            outcome=result.outcome,
            error=result.error,
        )

        self.daily_results.append(entry)
        self._append_to_json(entry)

        return entry

    def _append_to_json(self, entry: LogEntry) -> None:
        try:
            entries: list[dict[str, Any]] = []
            if self.relay_log_path.exists():
                with open(self.relay_log_path) as f:
                    try:
                        entries = json.load(f)
                    except json.JSONDecodeError:
                        logger.warning(f"Relay log {self.relay_log_path} unreadable, starting a new one")
                        entries = []

            entries.append(asdict(entry))

            with open(self.relay_log_path, "w") as f:
                json.dump(entries, f, indent=2)

        except OSError as e:
            logger.error(f"Error writing to JSON log: {e}")

    def write_daily_summary(self) -> Path:
        """Generate Markdown summary of today's run.

        Returns:
            Path to the summary file.
        """
        date = datetime.now().strftime("%Y-%m-%d")
        summary_path = self.logs_dir / f"daily_summary_{date}.md"

        summary_path.write_text(self._render_summary(date))

        logger.info(f"Daily summary written: {summary_path}")
        return summary_path

    def _render_summary(self, date: str) -> str:
        by_outcome = {outcome: [r for r in self.daily_results if r.outcome == outcome] for outcome in OUTCOMES}

        lines = [
            f"# Newsletter Relay Summary - {date}",
            "",
            "## Overview",
            "",
            f"- **Documents Processed:** {len(self.daily_results)}",
            f"- **Posted:** {len(by_outcome['posted'])}",
            f"- **Duplicates:** {len(by_outcome['duplicate'])}",
            f"- **No Article Link:** {len(by_outcome['no_link'])}",
            f"- **Failed:** {len(by_outcome['failed'])}",
            "",
        ]

        if by_outcome["posted"]:
            lines.extend(["## Posted", ""])
            for entry in by_outcome["posted"]:
                lines.extend(self._format_entry(entry))

        if by_outcome["failed"]:
            lines.extend(["## Failed", "", "These documents will be retried on the next run.", ""])
            for entry in by_outcome["failed"]:
                lines.extend(self._format_entry(entry))

        if by_outcome["duplicate"]:
            lines.extend(["## Duplicates", "", f"*{len(by_outcome['duplicate'])} links were already posted.*", ""])

        lines.extend(["---", f"*Generated at {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}*"])

        return "\n".join(lines)

    def _format_entry(self, entry: LogEntry) -> list[str]:
        title = entry.subject if len(entry.subject) <= 60 else f"{entry.subject[:60]}..."
        lines = [
            f"### [{title}]({entry.url})" if entry.url else f"### {title}",
            "",
            f"- **Message:** `{entry.message_id or 'n/a'}`",
        ]
        if entry.error:
            lines.append(f"- **Error:** {entry.error}")
        lines.append("")
        return lines

    def get_stats(self) -> dict[str, Any]:
        """Get statistics about logged results.

        Returns:
            Dictionary with a total and one count per outcome.
        """
        stats: dict[str, Any] = {"total": len(self.daily_results)}
        for outcome in OUTCOMES:
            stats[outcome] = sum(1 for r in self.daily_results if r.outcome == outcome)
        return stats

    def clear_daily_results(self) -> None:
        """Clear daily results for a new run."""
        self.daily_results.clear()
