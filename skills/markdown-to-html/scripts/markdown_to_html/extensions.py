"""
Markdown 扩展语法。

- 脚注 [^1]、==高亮==、ruby 注音 [漢字(かんじ)]：mistune 自带插件
- ++下划线++：本模块的行内插件
- GitHub 提示块（> [!NOTE] …）与 [TOC] 目录：语法上仍是引用块 / 段落，渲染时识别

渲染和 CJK 预处理用同一套语法（create_parser），保证两次解析结果一致。
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Tuple

import mistune
from mistune.helpers import unescape_char

Token = Dict[str, Any]

PLUGINS = ["table", "strikethrough", "footnotes", "mark", "ruby"]

ALERT_TYPES = ("note", "tip", "important", "warning", "caution")
_ALERT_MARKER_RE = re.compile(r"^\[!(" + "|".join(ALERT_TYPES) + r")\][ \t]*", re.I)
_TOC_MARKER = "[TOC]"


def _find_closing(src: str, pos: int, marker: str) -> Optional[int]:
    c = marker[0]
    end = src.find(marker, pos)
    while end != -1:
        after = end + len(marker)
        prev = src[end - 1]
        if end > pos and not prev.isspace() and prev != c and not src.startswith(c, after):
            return end
        end = src.find(marker, end + 1)
    return None


def _parse_underline(inline: Any, m: "re.Match[str]", state: Any) -> Optional[int]:
    pos = m.end()
    end = _find_closing(state.src, pos, "++")
    if end is None:
        return None
    new_state = state.copy()
    new_state.src = state.src[pos:end]
    state.append_token({"type": "underline", "children": inline.render(new_state)})
    return end + 2


def underline(md: mistune.Markdown) -> None:
    """++text++ → underline 节点"""
    md.inline.register("underline", r"\+\+(?=[^\s+])", _parse_underline, before="link")


def _parse_escape_token(inline: Any, m: "re.Match[str]", state: Any) -> int:
    state.append_token({"type": "escaped_text", "raw": unescape_char(m.group(0))})
    return m.end()


def keep_escapes(md: mistune.Markdown) -> None:
    """反斜杠转义单独成 escaped_text 节点，不与相邻文本合并，序列化时可以原样写回。"""
    md.inline.register("escape", None, _parse_escape_token)


def create_parser(preserve_escapes: bool = False) -> mistune.Markdown:
    md = mistune.create_markdown(renderer="ast", plugins=PLUGINS)
    underline(md)
    if preserve_escapes:
        keep_escapes(md)
    return md


def split_alert(token: Token) -> Optional[Tuple[str, List[Token]]]:
    """首行是 [!NOTE] 等标记的引用块 → (类型, 去掉标记后的子节点)；否则 None。"""
    children = token.get("children") or []
    if not children or children[0]["type"] != "paragraph":
        return None
    inline = children[0].get("children") or []
    if not inline or inline[0]["type"] != "text":
        return None
    m = _ALERT_MARKER_RE.match(inline[0]["raw"])
    if not m:
        return None

    rest_text = inline[0]["raw"][m.end() :]
    rest: List[Token] = [{"type": "text", "raw": rest_text}] if rest_text else []
    rest.extend(inline[1:])
    if rest and rest[0]["type"] in ("softbreak", "linebreak"):
        rest = rest[1:]
    body = list(children[1:])
    if rest:
        body.insert(0, {"type": "paragraph", "children": rest})
    return m.group(1).lower(), body


def is_toc_marker(token: Token) -> bool:
    if token["type"] != "paragraph":
        return False
    children = token.get("children") or []
    return (
        len(children) == 1
        and children[0]["type"] == "text"
        and children[0]["raw"].strip().upper() == _TOC_MARKER
    )
