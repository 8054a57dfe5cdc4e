"""
Render a studio page into a standalone HTML document for packets and single-page downloads.
Body: content_html > content_md > metadata content/body/markdown; non-HTML goes through markdown.
"""
from __future__ import annotations

import re
from pathlib import Path

import markdown
from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from studio.access.classifier import required_tier_of, visibility_of
from studio.access.models import ContentPage

TEMPLATES_DIR = Path(__file__).parent / "templates"

_HTML_MARKERS = ("<p", "<div", "<h1", "<h2", "<br", "<ul", "<ol", "<li")
_SLUG_RE = re.compile(r"[^a-z0-9-_]+")


def slugify(value: object, fallback: str = "page") -> str:
    s = _SLUG_RE.sub("-", str(value or "").strip().lower())
    s = re.sub(r"-+", "-", s).strip("-")
    return s or fallback


def document_name(index: int, page: ContentPage, ext: str = "html") -> str:
    """NN-<page-type>[-<title>].html, 1-based index."""
    page_type = slugify(page.page_type, fallback=f"page-{index}")
    title = slugify(page.title, fallback="")
    name = f"{index:02d}-{page_type}"
    if title:
        name = f"{name}-{title}"
    return f"{name}.{ext}"


def watermark_for(mode: str, brand: str) -> str:
    if mode == "preview":
        return f"PREVIEW - {brand}"
    return f"CONFIDENTIAL - {brand}"


def looks_like_html(raw: str) -> bool:
    return any(marker in raw for marker in _HTML_MARKERS)


def page_body_source(page: ContentPage) -> str:
    md = page.metadata or {}
    candidates = (
        page.content_html,
        page.content_md,
        md.get("content") or md.get("body") or md.get("markdown"),
    )
    for candidate in candidates:
        text = str(candidate or "").strip()
        if text:
            return text
    return ""


def body_html(page: ContentPage) -> Markup:
    raw = page_body_source(page)
    if looks_like_html(raw):
        return Markup(raw)
    return Markup(markdown.markdown(raw, extensions=["extra", "sane_lists"]))


class DocumentRenderer:
    """Jinja2 environment is built once per renderer; templates are immutable."""

    def __init__(self, brand: str, templates_dir: Path = TEMPLATES_DIR) -> None:
        self.brand = brand
        self._env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(["html"]),
            keep_trailing_newline=True,
        )
        self._template = self._env.get_template("page.html")

    def render(self, page: ContentPage, mode: str) -> bytes:
        html = self._template.render(
            brand=self.brand,
            title=(page.title or page.page_type or "Studio Page").strip(),
            page_type=page.page_type,
            required_tier=required_tier_of(page).value,
            visibility=visibility_of(page).value,
            mode=mode,
            body=body_html(page),
            attachments=page.attachments,
            watermark=watermark_for(mode, self.brand),
        )
        return html.encode("utf-8")
