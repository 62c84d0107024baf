"""
Format-agnostic exporter for page records.

Turns heterogeneous, nested page payloads into JSON, CSV, Markdown, plain
text, SQL or HTML artifacts with collision-free file names.
"""

import csv
import html
import io
import json
import re
import time
from typing import Any, Optional, Union

from ..config import config
from ..exceptions import ExportError, InvalidFormatError
from ..models.export import ExportArtifact, ExportFormat
from ..models.page import PageRecord
from ..models.research import SynthesisReport
from ..utils.logger import get_export_logger
from .extractor import get_domain

logger = get_export_logger()

Summary = Union[SynthesisReport, str, None]


def flatten(value: Any, prefix: str = "") -> list[tuple[str, Any]]:
    """
    Flatten a nested JSON value into (key path, scalar) pairs.

    Object keys join with dots (`a.b`), list items use brackets (`a[0]`).
    A scalar at the top level is reported under the key `value`.
    """
    if isinstance(value, dict):
        pairs: list[tuple[str, Any]] = []
        for key, item in value.items():
            pairs.extend(flatten(item, f"{prefix}.{key}" if prefix else str(key)))
        return pairs
    if isinstance(value, list):
        pairs = []
        for index, item in enumerate(value):
            pairs.extend(flatten(item, f"{prefix}[{index}]"))
        return pairs
    return [(prefix or "value", value)]


def render_scalar(value: Any) -> str:
    """Render a scalar the way JSON spells it, with null as empty."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "_", text.lower()).strip("_")
    return slug[:60] or "export"


class ExportSerializer:
    """
    Serializes page records (plus an optional summary) into export formats.

    Single-record exports show that record's payload; multi-record exports
    aggregate every source.
    """

    def __init__(self):
        self._last_stamp = 0

    def serialize(
        self,
        records: list[PageRecord],
        fmt: Union[ExportFormat, str],
        summary: Summary = None,
        topic: Optional[str] = None,
    ) -> ExportArtifact:
        """
        Serialize records into one export artifact.

        Args:
            records: Page records in run order
            fmt: Export format (enum or its string value)
            summary: Optional synthesis report or summary text
            topic: Optional topic used for the file name instead of the domain

        Returns:
            ExportArtifact with filename, content and MIME type

        Raises:
            InvalidFormatError: Unknown format string
            ExportError: No records to export
        """
        fmt = self._coerce_format(fmt)
        if not records:
            raise ExportError("Nothing to export: no page records")

        renderers = {
            ExportFormat.JSON: self.to_json,
            ExportFormat.CSV: self.to_csv,
            ExportFormat.MARKDOWN: self.to_markdown,
            ExportFormat.TXT: self.to_txt,
            ExportFormat.SQL: self.to_sql,
            ExportFormat.HTML: self.to_html,
        }
        content = renderers[fmt](records, summary)
        filename = self.build_filename(records, fmt, topic)

        logger.info(f"[EXPORT] {fmt.value}: {len(records)} records -> {filename} ({len(content)} chars)")
        return ExportArtifact(filename=filename, content=content, mime_type=fmt.mime_type)

    @staticmethod
    def _coerce_format(fmt: Union[ExportFormat, str]) -> ExportFormat:
        if isinstance(fmt, ExportFormat):
            return fmt
        try:
            return ExportFormat(str(fmt).lower())
        except ValueError:
            raise InvalidFormatError(str(fmt), [f.value for f in ExportFormat])

    def build_filename(
        self,
        records: list[PageRecord],
        fmt: ExportFormat,
        topic: Optional[str] = None,
    ) -> str:
        """
        Build a unique export file name.

        The stamp is a microsecond timestamp, bumped when needed so that two
        exports from the same serializer never share a name.
        """
        stamp = max(time.time_ns() // 1000, self._last_stamp + 1)
        self._last_stamp = stamp
        slug = slugify(topic or get_domain(records[0].url) or "export")
        prefix = config.export.FILENAME_PREFIX
        return f"{prefix}_{slug}_{len(records)}pg_{stamp}{fmt.extension}"

    # ------------------------------------------------------------------
    # JSON
    # ------------------------------------------------------------------

    def to_json(self, records: list[PageRecord], summary: Summary = None) -> str:
        if len(records) == 1 and summary is None:
            record = records[0]
            payload = record.structured if record.has_structured else {"text": record.raw_text}
            return json.dumps(payload, indent=2, ensure_ascii=False)

        envelope: dict[str, Any] = {
            "crawl": {
                "pages": len(records),
                "successful": sum(1 for r in records if r.is_success),
                "domain": get_domain(records[0].url),
            },
            "pages": [self._tagged_payload(r) for r in records if r.has_structured],
        }
        if summary is not None:
            envelope["summary"] = self._summary_payload(summary)
        return json.dumps(envelope, indent=2, ensure_ascii=False)

    @staticmethod
    def _tagged_payload(record: PageRecord) -> dict:
        if isinstance(record.structured, dict):
            return {"_source": record.url, **record.structured}
        return {"_source": record.url, "data": record.structured}

    @staticmethod
    def _summary_payload(summary: Summary) -> Any:
        if isinstance(summary, SynthesisReport):
            return summary.model_dump()
        return summary

    # ------------------------------------------------------------------
    # CSV
    # ------------------------------------------------------------------

    def csv_rows(self, records: list[PageRecord]) -> list[tuple[str, str, str]]:
        """Flatten every record into (source_url, key, value) rows."""
        excerpt_length = config.export.CSV_TEXT_EXCERPT_LENGTH
        rows = []
        for record in records:
            pairs = flatten(record.structured) if record.has_structured else []
            for key, value in pairs:
                rows.append((record.url, key, render_scalar(value)))
            if not pairs:
                rows.append((record.url, "text", record.raw_text[:excerpt_length]))
        return rows

    def to_csv(self, records: list[PageRecord], summary: Summary = None) -> str:
        output = io.StringIO()
        writer = csv.writer(output, lineterminator="\n")
        writer.writerow(["source_url", "key", "value"])
        writer.writerows(self.csv_rows(records))
        return output.getvalue()

    # ------------------------------------------------------------------
    # Markdown
    # ------------------------------------------------------------------

    def to_markdown(self, records: list[PageRecord], summary: Summary = None) -> str:
        lines = []
        if len(records) == 1:
            record = records[0]
            lines.append("# Scraped Data")
            lines.append("")
            lines.extend(self._markdown_summary(summary))
            if record.has_structured:
                lines.append(self._render_markdown(record.structured).rstrip("\n"))
            else:
                lines.append(record.raw_text)
            return "\n".join(lines) + "\n"

        lines.append(f"# Crawl: {get_domain(records[0].url)}")
        lines.append("")
        lines.extend(self._markdown_summary(summary))
        sections = [f"## {r.url}\n\n{r.raw_text}" for r in records]
        lines.append("\n\n---\n\n".join(sections))
        return "\n".join(lines) + "\n"

    def _render_markdown(self, value: Any, depth: int = 0) -> str:
        heading = "#" * min(depth + 2, 6)
        md = ""
        if isinstance(value, list):
            for index, item in enumerate(value):
                if isinstance(item, (dict, list)) and item:
                    md += f"{heading} Item {index + 1}\n\n{self._render_markdown(item, depth + 1)}\n"
                else:
                    md += f"- {render_scalar(item)}\n"
        elif isinstance(value, dict):
            for key, item in value.items():
                if isinstance(item, (dict, list)) and item:
                    md += f"{heading} {key}\n\n{self._render_markdown(item, depth + 1)}\n"
                else:
                    md += f"**{key}:** {render_scalar(item)}\n\n"
        else:
            md += f"{render_scalar(value)}\n"
        return md

    def _markdown_summary(self, summary: Summary) -> list[str]:
        if summary is None:
            return []
        lines = ["## Research Summary", ""]
        if isinstance(summary, str):
            lines.extend([summary, ""])
            return lines

        if summary.executive_summary:
            lines.extend([summary.executive_summary, ""])
        if summary.key_themes:
            lines.append("### Key Themes")
            lines.append("")
            for theme in summary.key_themes:
                detail = ", ".join(
                    part for part in (
                        theme.frequency,
                        f"{theme.source_count} sources" if theme.source_count else "",
                    ) if part
                )
                lines.append(f"- **{theme.theme}**" + (f" ({detail})" if detail else ""))
            lines.append("")
        if summary.top_recommendations:
            lines.append("### Top Recommendations")
            lines.append("")
            lines.extend(f"{i}. {item}" for i, item in enumerate(summary.top_recommendations, start=1))
            lines.append("")
        if summary.sentiment_tally:
            lines.append("### Sentiment")
            lines.append("")
            lines.extend(f"- {label}: {count}" for label, count in summary.sentiment_tally.items())
            lines.append("")
        if summary.actionable_insights:
            lines.append("### Actionable Insights")
            lines.append("")
            lines.extend(f"- {item}" for item in summary.actionable_insights)
            lines.append("")
        lines.extend(["---", ""])
        return lines

    # ------------------------------------------------------------------
    # Plain text
    # ------------------------------------------------------------------

    def to_txt(self, records: list[PageRecord], summary: Summary = None) -> str:
        blocks = []
        if summary is not None:
            blocks.append("=== SUMMARY ===\n" + self._summary_text(summary))
        blocks.extend(f"--- {r.url} ---\n{r.raw_text}" for r in records)
        return "\n\n".join(blocks)

    @staticmethod
    def _summary_text(summary: Summary) -> str:
        if isinstance(summary, str):
            return summary
        lines = [summary.executive_summary] if summary.executive_summary else []
        lines.extend(f"* {theme.theme}" for theme in summary.key_themes)
        lines.extend(f"> {item}" for item in summary.top_recommendations)
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # SQL
    # ------------------------------------------------------------------

    def sql_rows(self, records: list[PageRecord]) -> list[dict[str, Any]]:
        """One row per dict payload (or per dict item of a list payload)."""
        rows = []
        for record in records:
            payload = record.structured
            if isinstance(payload, dict):
                rows.append({"_source": record.url, **payload})
            elif isinstance(payload, list) and any(isinstance(item, dict) for item in payload):
                for item in payload:
                    if isinstance(item, dict):
                        rows.append({"_source": record.url, **item})
                    else:
                        rows.append({"_source": record.url, "value": item})
            elif payload is not None:
                rows.append({"_source": record.url, "value": payload})
            else:
                rows.append({"_source": record.url, "text": record.raw_text})
        return rows

    def to_sql(self, records: list[PageRecord], summary: Summary = None) -> str:
        table = config.export.SQL_TABLE_NAME
        rows = self.sql_rows(records)
        columns = list(dict.fromkeys(key for row in rows for key in row))
        names = self.column_names(columns)

        column_defs = ",\n".join(f"  {self._sql_identifier(names[c])} TEXT" for c in columns)
        statements = [
            f"CREATE TABLE IF NOT EXISTS {table} (\n"
            f"  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
            f"{column_defs}\n);"
        ]

        column_list = ", ".join(self._sql_identifier(names[c]) for c in columns)
        for row in rows:
            values = ", ".join(self._sql_literal(row.get(c)) for c in columns)
            statements.append(f"INSERT INTO {table} ({column_list}) VALUES ({values});")

        return statements[0] + "\n\n" + "\n".join(statements[1:]) + "\n"

    @staticmethod
    def column_names(keys: list[str]) -> dict[str, str]:
        """
        Map payload keys to unique column names.

        SQLite compares identifiers case-insensitively and `id` belongs to
        the surrogate key, so clashing keys get a numeric suffix (`id_2`).
        """
        taken = {"id"}
        names = {}
        for key in keys:
            base = str(key)
            name, suffix = base, 2
            while name.lower() in taken:
                name = f"{base}_{suffix}"
                suffix += 1
            taken.add(name.lower())
            names[key] = name
        return names

    @staticmethod
    def _sql_identifier(name: str) -> str:
        return '"' + str(name).replace('"', '""') + '"'

    @staticmethod
    def _sql_literal(value: Any) -> str:
        if value is None:
            return "NULL"
        return "'" + render_scalar(value).replace("'", "''") + "'"

    # ------------------------------------------------------------------
    # HTML
    # ------------------------------------------------------------------

    def to_html(self, records: list[PageRecord], summary: Summary = None) -> str:
        title = html.escape(f"Crawl: {get_domain(records[0].url)}")
        parts = [
            "<!DOCTYPE html>",
            f'<html><head><meta charset="utf-8"><title>{title}</title></head><body>',
        ]
        if summary is not None:
            parts.append(f"<h1>Summary</h1><pre>{html.escape(self._summary_text(summary))}</pre><hr/>")
        parts.append("<hr/>".join(
            f"<h2>{html.escape(r.url)}</h2><pre>{html.escape(r.raw_text)}</pre>"
            for r in records
        ))
        parts.append("</body></html>")
        return "\n".join(parts)


# Global serializer instance
export_serializer = ExportSerializer()
