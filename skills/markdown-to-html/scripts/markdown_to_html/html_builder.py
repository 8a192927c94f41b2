"""
完整 HTML 文档的拼装与渲染后的结构修补。
"""

from __future__ import annotations

import html
import re
from typing import Any, Dict, Optional

from .config import strip_quotes
from .models import HtmlDocumentMeta

_NESTED_LIST_IN_LI_RE = re.compile(r"<li([^>]*)>([\s\S]*?)(<ul[\s\S]*?</ul>|<ol[\s\S]*?</ol>)</li>", re.I)
_FIRST_HEADING_RE = re.compile(r"<h[12][^>]*>[\s\S]*?</h[12]>")


def build_document_meta(yaml_data: Dict[str, Any], output_path: str) -> HtmlDocumentMeta:
    """front matter → 文档元信息；标题缺省时取输出文件名（不含 .html）。"""
    title = strip_quotes(yaml_data.get("title"))
    if not title:
        base = re.split(r"[\\/]", output_path)[-1]
        title = base[:-5] if base.lower().endswith(".html") else base
    author = strip_quotes(yaml_data.get("author")) or None
    description = strip_quotes(yaml_data.get("description") or yaml_data.get("summary")) or None
    return HtmlDocumentMeta(title=title, author=author, description=description)


def build_html_document(
    meta: HtmlDocumentMeta,
    css: str,
    content: str,
    code_theme_css: Optional[str] = None,
) -> str:
    lines = [
        "<!doctype html>",
        "<html>",
        "<head>",
        '  <meta charset="utf-8" />',
        '  <meta name="viewport" content="width=device-width, initial-scale=1" />',
        f"  <title>{html.escape(meta.title, quote=False)}</title>",
    ]
    if meta.author:
        lines.append(f'  <meta name="author" content="{html.escape(meta.author)}" />')
    if meta.description:
        lines.append(f'  <meta name="description" content="{html.escape(meta.description)}" />')
    lines.append(f"  <style>{css}</style>")
    if code_theme_css:
        lines.append(f"  <style>{code_theme_css}</style>")
    lines.extend(
        [
            "</head>",
            "<body>",
            '  <div id="output">',
            content,
            "  </div>",
            "</body>",
            "</html>",
        ]
    )
    return "\n".join(lines)


def modify_html_structure(document: str) -> str:
    """把 <li> 里的嵌套列表移到 </li> 之后，重复到没有可移的为止（幂等）。"""
    while True:
        new_document = _NESTED_LIST_IN_LI_RE.sub(r"<li\1>\2</li>\3", document, count=1)
        if new_document == document:
            return document
        document = new_document


def remove_first_heading(content: str) -> str:
    return _FIRST_HEADING_RE.sub("", content, count=1)
