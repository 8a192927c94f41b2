"""
代码高亮：Pygments 词法分析 + highlight.js 风格的 class 名。

输出的 `<span class="hljs-keyword">` 等 class 与 highlight.js 主题 CSS 对应，
因此 --code-theme 直接复用 highlight.js 的样式表。
"""

from __future__ import annotations

import html
import re
from typing import Iterable, List, Optional, Tuple

from pygments import highlight
from pygments.formatter import Formatter
from pygments.lexer import Lexer
from pygments.lexers import get_lexer_by_name
from pygments.lexers.special import TextLexer
from pygments.token import (
    Comment,
    Generic,
    Keyword,
    Literal,
    Name,
    Number,
    Operator,
    String,
    _TokenType,
)
from pygments.util import ClassNotFound

PLAINTEXT = "plaintext"

# 顺序敏感：子类型要排在父类型前面
_HLJS_SCOPES: List[Tuple[_TokenType, str]] = [
    (Comment.Preproc, "hljs-meta"),
    (Comment, "hljs-comment"),
    (Keyword.Type, "hljs-type"),
    (Keyword.Constant, "hljs-literal"),
    (Keyword, "hljs-keyword"),
    (Operator.Word, "hljs-keyword"),
    (Name.Builtin, "hljs-built_in"),
    (Name.Function, "hljs-title function_"),
    (Name.Class, "hljs-title class_"),
    (Name.Decorator, "hljs-meta"),
    (Name.Tag, "hljs-name"),
    (Name.Attribute, "hljs-attr"),
    (Name.Variable, "hljs-variable"),
    (Name.Constant, "hljs-variable constant_"),
    (String.Regex, "hljs-regexp"),
    (String.Escape, "hljs-char escape_"),
    (String.Doc, "hljs-comment"),
    (String, "hljs-string"),
    (Number, "hljs-number"),
    (Literal, "hljs-literal"),
    (Generic.Deleted, "hljs-deletion"),
    (Generic.Inserted, "hljs-addition"),
    (Generic.Heading, "hljs-section"),
    (Generic.Subheading, "hljs-section"),
    (Generic.Emph, "hljs-emphasis"),
    (Generic.Strong, "hljs-strong"),
]

_TAG_SPLIT_RE = re.compile(r"(<[^>]+>)")

_LINE_WRAPPER_STYLE = (
    "display:flex;align-items:flex-start;overflow-x:hidden;overflow-y:auto;"
    "width:100%;max-width:100%;padding:0;box-sizing:border-box"
)
_LINE_NUMBERS_STYLE = (
    "text-align:right;padding:8px 0;border-right:1px solid rgba(0,0,0,0.04);"
    "user-select:none;background:transparent"
)
_LINE_NUMBER_STYLE = "padding:0 10px 0 0;line-height:1.75"
_CODE_SCROLL_STYLE = (
    "flex:1 1 auto;overflow-x:auto;overflow-y:visible;padding:8px;min-width:0;box-sizing:border-box"
)


def _scope_for(ttype: _TokenType) -> Optional[str]:
    for parent, scope in _HLJS_SCOPES:
        if ttype in parent:
            return scope
    return None


class HljsHtmlFormatter(Formatter):
    """把 Pygments token 流输出为 highlight.js class 命名的 span。"""

    name = "hljs"
    aliases: List[str] = []
    filenames: List[str] = []

    def format(self, tokensource: Iterable[Tuple[_TokenType, str]], outfile) -> None:
        for scope, value in self._merge(tokensource):
            text = html.escape(value, quote=False)
            if scope:
                outfile.write(f'<span class="{scope}">{text}</span>')
            else:
                outfile.write(text)

    @staticmethod
    def _merge(tokensource: Iterable[Tuple[_TokenType, str]]) -> Iterable[Tuple[Optional[str], str]]:
        current: Optional[str] = None
        buf: List[str] = []
        for ttype, value in tokensource:
            scope = _scope_for(ttype)
            if buf and scope != current:
                yield current, "".join(buf)
                buf = []
            current = scope
            buf.append(value)
        if buf:
            yield current, "".join(buf)


def get_lexer(language: str) -> Optional[Lexer]:
    """语言未注册时返回 None。"""
    if not language:
        return None
    if language == PLAINTEXT:
        return TextLexer(stripnl=False, ensurenl=False)
    try:
        return get_lexer_by_name(language, stripnl=False, ensurenl=False)
    except ClassNotFound:
        return None


def is_language_registered(language: str) -> bool:
    return get_lexer(language) is not None


def highlight_code(code: str, language: str) -> str:
    lexer = get_lexer(language) or TextLexer(stripnl=False, ensurenl=False)
    return highlight(code, lexer, HljsHtmlFormatter())


def _preserve_spaces(line_html: str) -> str:
    parts = _TAG_SPLIT_RE.split(line_html)
    return "".join(p if p.startswith("<") else p.replace(" ", "&nbsp;") for p in parts)


def format_highlighted_code(highlighted: str, show_line_number: bool = False) -> str:
    """保留缩进与换行（公众号编辑器会折叠空白），可选行号栏。"""
    lines = [_preserve_spaces(line) for line in highlighted.replace("\t", "    ").split("\n")]
    if not show_line_number:
        return "<br/>".join(lines)

    numbers = "".join(
        f'<section style="{_LINE_NUMBER_STYLE}">{i}</section>' for i in range(1, len(lines) + 1)
    )
    return (
        f'<section style="{_LINE_WRAPPER_STYLE}">'
        f'<section class="line-numbers" style="{_LINE_NUMBERS_STYLE}">{numbers}</section>'
        f'<section class="code-scroll" style="{_CODE_SCROLL_STYLE}">{"<br/>".join(lines)}</section>'
        "</section>"
    )


def highlight_and_format_code(code: str, language: str, show_line_number: bool = False) -> str:
    return format_highlighted_code(highlight_code(code, language), show_line_number)
