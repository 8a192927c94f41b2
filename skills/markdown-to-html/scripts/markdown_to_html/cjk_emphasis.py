"""
CJK 强调预处理：把 **粗体** / *斜体* 改写成行内 HTML，再序列化回 Markdown。

CommonMark 的 flanking 规则按拉丁文设计，`**中文：**后面` 这类写法会被判定为
无法闭合。处理步骤：
1. mistune 解析为 AST（与渲染阶段相同的扩展语法；反斜杠转义单独成节点）
2. 对解析器遗留在文本里、贴着 CJK 字符的 `**…**` / `*…*` 补做配对
3. 后序遍历，把 strong / emphasis 节点替换为 `<strong>…</strong>` / `<em>…</em>`
4. MarkdownWriter 序列化（转义原样写回），最后把非 ASCII 的数字实体还原为字符
"""

from __future__ import annotations

import html
import re
from typing import Any, Dict, List

from mistune.renderers.markdown import MarkdownRenderer

from .extensions import create_parser

Token = Dict[str, Any]

_CJK = (
    "\u3000-\u303f"  # CJK 标点
    "\u3040-\u30ff"
    "\u3400-\u4dbf"
    "\u4e00-\u9fff"
    "\uac00-\ud7af"
    "\uf900-\ufaff"
    "\uff00-\uffef"  # 全角标点
)
_CJK_CHAR_RE = re.compile(f"[{_CJK}]")

# 同一文本 token 内未被解析器配对的定界符
_LEFTOVER_RES = (
    ("strong", re.compile(r"(?<![*\\])\*\*(?![\s*])(.+?)(?<![\s*])\*\*(?!\*)")),
    ("emphasis", re.compile(r"(?<![*\\])\*(?![\s*])(.+?)(?<![\s*])\*(?!\*)")),
)

_MD_SPECIAL_RE = re.compile(r"([\\`*_\[\]~=+])")
_NUMERIC_ENTITY_RE = re.compile(r"&#(?:[xX]([0-9a-fA-F]+)|([0-9]+));")

_HTML_TAGS = {"strong": "strong", "emphasis": "em"}


def _is_cjk(ch: str) -> bool:
    return bool(ch) and _CJK_CHAR_RE.match(ch) is not None


def _touches_cjk(raw: str, m: "re.Match[str]") -> bool:
    inner = m.group(1)
    before = raw[m.start() - 1] if m.start() > 0 else ""
    after = raw[m.end()] if m.end() < len(raw) else ""
    return any(_is_cjk(ch) for ch in (before, inner[0], inner[-1], after))


def _split_leftover(raw: str) -> List[Token]:
    for node_type, pattern in _LEFTOVER_RES:
        for m in pattern.finditer(raw):
            if not _touches_cjk(raw, m):
                continue
            out: List[Token] = []
            if m.start():
                out.extend(_split_leftover(raw[: m.start()]))
            out.append({"type": node_type, "children": _split_leftover(m.group(1))})
            if m.end() < len(raw):
                out.extend(_split_leftover(raw[m.end() :]))
            return out
    return [{"type": "text", "raw": raw}]


def pair_cjk_delimiters(tokens: List[Token]) -> None:
    """为贴着 CJK 字符、被标准语法拒绝的定界符补建 strong / emphasis 节点。"""
    for token in tokens:
        children = token.get("children")
        if isinstance(children, list):
            pair_cjk_delimiters(children)
    i = 0
    while i < len(tokens):
        token = tokens[i]
        if token["type"] == "text" and "*" in token["raw"]:
            replacement = _split_leftover(token["raw"])
            tokens[i : i + 1] = replacement
            i += len(replacement)
            continue
        i += 1


def _escape_markdown(text: str) -> str:
    return _MD_SPECIAL_RE.sub(r"\\\1", text)


def _flatten(tokens: List[Token]) -> str:
    """强调节点的内容：只留文字，但标签之间的文本还会按 Markdown 再解析一次，所以要转义。"""
    parts: List[str] = []
    for token in tokens:
        kind = token["type"]
        if kind == "text":
            parts.append(_escape_markdown(html.escape(html.unescape(token["raw"]), quote=False)))
        elif kind == "escaped_text":
            parts.append("".join("\\" + ch for ch in token["raw"]))
        elif kind == "footnote_ref":
            parts.append(f"[^{token['raw']}]")
        elif kind == "ruby":
            parts.append(f"[{token['raw']}({token['attrs']['rt']})]")
        elif kind == "codespan":
            parts.append(html.escape(token["raw"], quote=False))
        elif kind == "inline_html":
            parts.append(token["raw"])
        elif kind == "softbreak":
            parts.append(" ")
        elif kind == "linebreak":
            parts.append("<br>")
        elif "children" in token:
            parts.append(_flatten(token["children"]))
    return "".join(parts)


def replace_emphasis_nodes(tokens: List[Token]) -> None:
    """后序遍历：子节点先替换，外层 strong 的扁平文本里保留内层标签。"""
    for idx, token in enumerate(tokens):
        children = token.get("children")
        if isinstance(children, list):
            replace_emphasis_nodes(children)
        tag = _HTML_TAGS.get(token["type"])
        if tag:
            tokens[idx] = {"type": "inline_html", "raw": f"<{tag}>{_flatten(token['children'])}</{tag}>"}


def decode_numeric_entities(text: str) -> str:
    def repl(m: "re.Match[str]") -> str:
        code = int(m.group(1), 16) if m.group(1) else int(m.group(2))
        # ASCII 实体保持原样，避免还原出 < & 等改变语义的字符
        if code < 0x80 or code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
            return m.group(0)
        return chr(code)

    return _NUMERIC_ENTITY_RE.sub(repl, text)


class MarkdownWriter(MarkdownRenderer):
    """MarkdownRenderer 加上转义与扩展语法（脚注、高亮、下划线、ruby）的写回。"""

    def escaped_text(self, token: Token, state: Any) -> str:
        return "".join("\\" + ch for ch in token["raw"])

    def footnote_ref(self, token: Token, state: Any) -> str:
        return f"[^{token['raw']}]"

    def footnotes(self, token: Token, state: Any) -> str:
        return "".join(self.render_token(item, state) for item in token["children"])

    def footnote_item(self, token: Token, state: Any) -> str:
        lines = self.render_children(token, state).strip("\n").split("\n")
        body = "\n".join([lines[0]] + [f"    {line}" if line else "" for line in lines[1:]])
        return f"[^{token['attrs']['key']}]: {body}\n\n"

    def mark(self, token: Token, state: Any) -> str:
        return "==" + self.render_children(token, state) + "=="

    def underline(self, token: Token, state: Any) -> str:
        return "++" + self.render_children(token, state) + "++"

    def ruby(self, token: Token, state: Any) -> str:
        return f"[{token['raw']}({token['attrs']['rt']})]"


def preprocess_cjk_emphasis(markdown_text: str) -> str:
    parser = create_parser(preserve_escapes=True)
    tokens, state = parser.parse(markdown_text)
    pair_cjk_delimiters(tokens)
    replace_emphasis_nodes(tokens)
    return decode_numeric_entities(MarkdownWriter()(tokens, state))
