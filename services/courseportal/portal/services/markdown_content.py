"""Markdown rendering for lesson content."""

import bleach
import markdown as md
from django.conf import settings

_MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "toc"]


def _sanitize(html: str) -> str:
    allowed_tags = set(bleach.sanitizer.ALLOWED_TAGS).union(
        {
            "p",
            "pre",
            "code",
            "h1",
            "h2",
            "h3",
            "h4",
            "h5",
            "h6",
            "hr",
            "br",
            "table",
            "thead",
            "tbody",
            "tr",
            "th",
            "td",
            "details",
            "summary",
        }
    )
    allowed_attrs = {
        **bleach.sanitizer.ALLOWED_ATTRIBUTES,
        "a": ["href", "title", "target", "rel"],
        "code": ["class"],
        "pre": ["class"],
        "h1": ["id"],
        "h2": ["id"],
        "h3": ["id"],
        "h4": ["id"],
    }
    return bleach.clean(html, tags=list(allowed_tags), attributes=allowed_attrs, strip=True)


def render_markdown(markdown_text) -> str:
    """Render lesson markdown to HTML.

    Missing or empty input renders to the empty document (""). Output is not
    sanitized unless PORTAL_MARKDOWN_SANITIZE is on: lesson content comes from
    admins, not students.
    """
    if not markdown_text:
        return ""
    html = md.markdown(
        str(markdown_text),
        extensions=_MARKDOWN_EXTENSIONS,
        output_format="html5",
    )
    if getattr(settings, "PORTAL_MARKDOWN_SANITIZE", False):
        html = _sanitize(html)
    return html
