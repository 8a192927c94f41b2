"""
CSS 内联与变量归一化。

inline_css：交给 css-inline 把 <style> 里的规则写进元素的 style 属性；<style> 保留，
伪元素 / @media 等无法内联的规则照常生效。CSS 变量不在这一步解析。
normalize_inline_css：把残留的 var(--xxx) 替换成样式配置里的字面值，并删掉
已无用的自定义属性声明。部分编辑器（如公众号后台）不支持 CSS 变量。
"""

from __future__ import annotations

import html
import re
from typing import Any, List, Optional

from .constants import CSS_VARIABLES, FOREGROUND_LITERAL
from .models import StyleConfig

_VAR_RE = re.compile(r"var\(\s*(--[A-Za-z0-9_-]+)\s*(?:,\s*((?:[^()]|\([^()]*\))*))?\)")
_HSL_FOREGROUND_RE = re.compile(r"hsl\(\s*var\(\s*--foreground\s*\)\s*\)")
_CUSTOM_PROP_RE = re.compile(r"\s*(--[A-Za-z0-9_-]+)\s*:")
_STYLE_BLOCK_RE = re.compile(r"(<style\b[^>]*>)([\s\S]*?)(</style>)", re.I)
_STYLE_ATTR_RE = re.compile(r"(\sstyle=)(?:\"([^\"]*)\"|'([^']*)')", re.I)
_RULE_BODY_RE = re.compile(r"\{([^{}]*)\}")


def _require_backend() -> Any:
    try:
        import css_inline
    except ImportError as e:
        raise RuntimeError(
            f"CSS 内联功能不可用（{e.name or e}）：需要 css-inline，请先安装：pip install css-inline"
        ) from e
    return css_inline


def inline_css(document: str) -> str:
    """样式表规则写入 style 属性；!important 与已有的行内样式按层叠规则处理。"""
    css_inline = _require_backend()
    inliner = css_inline.CSSInliner(
        inline_style_tags=True,
        keep_style_tags=True,
        keep_link_tags=False,
        load_remote_stylesheets=False,
    )
    try:
        return inliner.inline(document)
    except css_inline.InlineError as e:
        raise RuntimeError(f"CSS 内联失败：{e}") from e


def resolve_css_variables(text: str, style: StyleConfig) -> str:
    values = {name: getattr(style, field) for name, field in CSS_VARIABLES.items()}
    text = _HSL_FOREGROUND_RE.sub(FOREGROUND_LITERAL, text)

    def repl(m: "re.Match[str]") -> str:
        name, fallback = m.group(1), m.group(2)
        if name in values:
            return values[name]
        if fallback is not None:
            return fallback.strip()
        return m.group(0)

    # 回退值里可能还嵌着 var()
    for _ in range(5):
        new_text = _VAR_RE.sub(repl, text)
        if new_text == text:
            break
        text = new_text
    return text


def _split_declaration_block(block: str) -> List[str]:
    parts: List[str] = []
    buf: List[str] = []
    quote: Optional[str] = None
    depth = 0
    for ch in block:
        if quote:
            buf.append(ch)
            if ch == quote:
                quote = None
            continue
        if ch in "\"'":
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(0, depth - 1)
        elif ch == ";" and depth == 0:
            parts.append("".join(buf))
            buf = []
            continue
        buf.append(ch)
    parts.append("".join(buf))
    return parts


def strip_custom_properties(block: str) -> str:
    kept = []
    for part in _split_declaration_block(block):
        m = _CUSTOM_PROP_RE.match(part)
        if m and m.group(1) in CSS_VARIABLES:
            continue
        kept.append(part)
    return ";".join(kept)


def _normalize_declarations(text: str, style: StyleConfig) -> str:
    return strip_custom_properties(resolve_css_variables(text, style))


def normalize_inline_css(document: str, style: StyleConfig) -> str:
    def style_block(m: "re.Match[str]") -> str:
        css = _RULE_BODY_RE.sub(lambda b: "{" + _normalize_declarations(b.group(1), style) + "}", m.group(2))
        return m.group(1) + css + m.group(3)

    def style_attr(m: "re.Match[str]") -> str:
        double_quoted = m.group(2) is not None
        raw = m.group(2) if double_quoted else m.group(3)
        value = _normalize_declarations(html.unescape(raw), style).strip().strip(";").strip()
        value = value.replace("&", "&amp;")
        if double_quoted:
            return f'{m.group(1)}"{value.replace(chr(34), "&quot;")}"'
        return f"{m.group(1)}'{value.replace(chr(39), '&#39;')}'"

    document = _STYLE_BLOCK_RE.sub(style_block, document)
    return _STYLE_ATTR_RE.sub(style_attr, document)
