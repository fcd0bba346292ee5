"""
Serializers for a categorized star list.

Markdown and JSON skip empty categories; CSV emits one row per repository.
"""

import csv
import enum
import io
import json
from datetime import datetime, timezone
from typing import List, Optional

from .categories import Category


class ExportFormat(str, enum.Enum):
    MARKDOWN = "markdown"
    JSON = "json"
    CSV = "csv"


CSV_HEADERS = ["Category", "Name", "Description", "URL", "Stars", "Language", "Topics"]


def export_markdown(username: str, categories: List[Category]) -> str:
    lines = [f"# GitHub Stars - @{username}", ""]

    for category in categories:
        if not category.repos:
            continue
        lines.extend([f"## {category.name} ({category.count})", ""])
        for repo in category.repos:
            description = f" - {repo.description}" if repo.description else ""
            lines.append(
                f"- [{repo.full_name}]({repo.url}){description} - ⭐ {repo.stars:,}"
            )
        lines.append("")

    return "\n".join(lines)


def export_json(
    username: str,
    categories: List[Category],
    exported_at: Optional[datetime] = None,
) -> str:
    exported_at = exported_at or datetime.now(timezone.utc)
    data = {
        "username": username,
        "exportedAt": exported_at.isoformat(),
        "totalStars": sum(category.count for category in categories),
        "categories": {
            category.name: [
                {
                    "name": repo.full_name,
                    "description": repo.description,
                    "url": repo.url,
                    "stars": repo.stars,
                    "language": repo.language,
                    "topics": list(repo.topics),
                }
                for repo in category.repos
            ]
            for category in categories
            if category.repos
        },
    }
    return json.dumps(data, indent=2, ensure_ascii=False)


def export_csv(categories: List[Category]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for category in categories:
        for repo in category.repos:
            writer.writerow(
                [
                    category.name,
                    repo.full_name,
                    repo.description or "",
                    repo.url,
                    repo.stars,
                    repo.language or "",
                    "; ".join(repo.topics),
                ]
            )
    return buffer.getvalue()


_EXPORTERS = {
    ExportFormat.MARKDOWN: export_markdown,
    ExportFormat.JSON: export_json,
    ExportFormat.CSV: lambda username, categories: export_csv(categories),
}


def export(fmt: ExportFormat, username: str, categories: List[Category]) -> str:
    """Serialize ``categories`` in the requested format."""
    return _EXPORTERS[ExportFormat(fmt)](username, categories)
