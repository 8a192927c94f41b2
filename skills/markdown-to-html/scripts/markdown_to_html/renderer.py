"""
Markdown → 带 class 的 HTML 片段。

mistune 只负责分词（AST），每种节点的输出规则都在 StyledRenderer 里。
跨节点的状态（引用链接、列表嵌套栈）放在 RenderSession，一篇文档一个会话。
"""

from __future__ import annotations

import html
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from .cjk_emphasis import preprocess_cjk_emphasis
from .constants import ALERT_COLORS, MAC_CODE_SVG, TOC_MAX_LEVEL
from .extensions import create_parser, is_toc_marker, split_alert
from .frontmatter import parse_front_matter_and_content
from .highlight import PLAINTEXT, highlight_and_format_code, is_language_registered
from .models import Footnote, ParseResult, ReadingTime, RenderOptions

Token = Dict[str, Any]

_HEADING_TAG_RE = re.compile(r"^h\d$")
_WECHAT_LINK_RE = re.compile(r"^https?://mp\.weixin\.qq\.com")
_LEADING_P_RE = re.compile(r"^<p(?:\s[^>]*)?>([\s\S]*?)</p>")

_CODE_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#39;",
    "`": "&#96;",
}


class UnsupportedTokenError(ValueError):
    """mistune 产出了没有渲染规则的节点类型"""


def styled_content(style_label: str, content: str, tag: Optional[str] = None, attrs: str = "") -> str:
    tag = tag or style_label
    class_name = style_label.replace("_", "-")
    heading_attr = ' data-heading="true"' if _HEADING_TAG_RE.match(tag) else ""
    return f'<{tag} class="{class_name}"{heading_attr}{attrs}>{content}</{tag}>'


def escape_code_text(text: str) -> str:
    return "".join(_CODE_ESCAPES.get(ch, ch) for ch in text)


def _attr(value: str) -> str:
    return html.escape(value, quote=True)


def transform_legend(legend: str, text: Optional[str], title: Optional[str]) -> str:
    """按 legend 策略（如 "title-alt"）依次取第一个非空的 alt / title。"""
    values = {"alt": text, "title": title}
    for option in legend.split("-"):
        value = values.get(option)
        if value:
            return value
    return ""


class RenderSession:
    """单次渲染的可变状态：引用链接登记表、列表嵌套栈和 [TOC] 目录。"""

    def __init__(self, options: RenderOptions) -> None:
        self.options = options
        self.footnotes: List[Footnote] = []
        self.list_ordered: List[bool] = []
        self.list_counter: List[int] = []
        # [TOC] 目录：(级别, 标题文字, 锚点)，以及标题节点 → 锚点
        self.toc: List[Tuple[int, str, str]] = []
        self.heading_anchors: Dict[int, str] = {}

    def add_footnote(self, title: str, link: str) -> int:
        for note in self.footnotes:
            if note.link == link:
                return note.index
        note = Footnote(index=len(self.footnotes) + 1, title=title, link=link)
        self.footnotes.append(note)
        return note.index

    def push_list(self, ordered: bool, start: int) -> None:
        self.list_ordered.append(ordered)
        self.list_counter.append(start)

    def pop_list(self) -> None:
        self.list_ordered.pop()
        self.list_counter.pop()

    def next_item_prefix(self) -> str:
        if self.list_ordered and self.list_ordered[-1]:
            idx = self.list_counter[-1]
            self.list_counter[-1] = idx + 1
            return f"{idx}. "
        return "• "

    def reset(self, **changes: Any) -> None:
        self.footnotes = []
        self.list_ordered = []
        self.list_counter = []
        self.toc = []
        self.heading_anchors = {}
        if changes:
            self.options = self.options.merged(**changes)


class StyledRenderer:
    """
    渲染引擎。

    - 软换行渲染为 <br>
    - 未知节点类型直接抛 UnsupportedTokenError，不会静默丢弃
    - 不可并发复用；顺序复用时先调用 reset()
    """

    def __init__(self, options: Optional[RenderOptions] = None) -> None:
        self.session = RenderSession(options or RenderOptions())
        self._parser = create_parser()
        self._block_rules: Dict[str, Callable[[Token], str]] = {
            "paragraph": self._paragraph,
            "heading": self._heading,
            "block_text": self._block_text,
            "block_quote": self._block_quote,
            "block_code": self._block_code,
            "block_html": self._raw,
            "thematic_break": self._thematic_break,
            "blank_line": self._blank,
            "list": self._list,
            "list_item": self._list_item,
            "table": self._table,
            "footnotes": self._footnotes,
        }
        self._inline_rules: Dict[str, Callable[[Token], str]] = {
            "text": self._text,
            "emphasis": self._emphasis,
            "strong": self._strong,
            "strikethrough": self._strikethrough,
            "codespan": self._codespan,
            "link": self._link,
            "image": self._image,
            "linebreak": self._break,
            "softbreak": self._break,
            "inline_html": self._raw,
            "footnote_ref": self._footnote_ref,
            "mark": self._mark,
            "underline": self._underline,
            "ruby": self._ruby,
        }

    @property
    def options(self) -> RenderOptions:
        return self.session.options

    # ── 对外接口 ──────────────────────────────────────

    def reset(self, **changes: Any) -> None:
        self.session.reset(**changes)

    def parse_front_matter_and_content(self, markdown_text: str) -> ParseResult:
        return parse_front_matter_and_content(markdown_text)

    def render(self, markdown_text: str) -> str:
        tokens = self._parser(markdown_text)
        self._collect_toc(tokens)
        return self.render_blocks(tokens)

    def render_blocks(self, tokens: List[Token]) -> str:
        return "".join(self._dispatch(self._block_rules, tok) for tok in tokens)

    def render_inline(self, tokens: List[Token]) -> str:
        return "".join(self._dispatch(self._inline_rules, tok) for tok in tokens)

    def build_reading_time(self, reading_time: ReadingTime) -> str:
        if not self.options.count_status or reading_time.words <= 0:
            return ""
        return (
            '<blockquote class="md-blockquote"><p class="md-blockquote-p">'
            f"字数 {reading_time.words}，阅读大约需 {reading_time.rounded_minutes} 分钟"
            "</p></blockquote>"
        )

    def build_footnotes(self) -> str:
        if not self.session.footnotes:
            return ""
        entries = []
        for note in self.session.footnotes:
            index = f'<code style="font-size: 90%; opacity: 0.6;">[{note.index}]</code>'
            if note.link == note.title:
                entries.append(f'{index}: <i style="word-break: break-all">{html.escape(note.title)}</i><br/>')
            else:
                entries.append(
                    f"{index} {html.escape(note.title)}: "
                    f'<i style="word-break: break-all">{html.escape(note.link)}</i><br/>'
                )
        return styled_content("h4", "引用链接") + styled_content("footnotes", "\n".join(entries), "p")

    def build_addition(self) -> str:
        return (
            "<style>\n"
            "  .preview-wrapper pre::before {\n"
            "    position: absolute;\n"
            "    top: 0;\n"
            "    right: 0;\n"
            "    color: #ccc;\n"
            "    text-align: center;\n"
            "    font-size: 0.8em;\n"
            "    padding: 5px 10px 0;\n"
            "    line-height: 15px;\n"
            "    height: 15px;\n"
            "    font-weight: 600;\n"
            "  }\n"
            "</style>"
        )

    def create_container(self, content: str) -> str:
        return styled_content("container", content, "section")

    # ── 分发 ──────────────────────────────────────────

    def _dispatch(self, rules: Dict[str, Callable[[Token], str]], token: Token) -> str:
        rule = rules.get(token["type"])
        if rule is None:
            raise UnsupportedTokenError(f"没有对应的渲染规则：{token['type']}")
        return rule(token)

    def _collect_toc(self, tokens: List[Token]) -> None:
        """文档里有 [TOC] 段落时，给顶层 h1~h3 分配锚点。"""
        self.session.toc = []
        self.session.heading_anchors = {}
        if not any(is_toc_marker(tok) for tok in tokens):
            return
        for tok in tokens:
            if tok["type"] != "heading" or tok["attrs"]["level"] > TOC_MAX_LEVEL:
                continue
            anchor = f"toc-{len(self.session.toc) + 1}"
            self.session.heading_anchors[id(tok)] = anchor
            self.session.toc.append((tok["attrs"]["level"], self._plain_text(tok["children"]), anchor))

    @staticmethod
    def _plain_text(tokens: List[Token]) -> str:
        parts: List[str] = []
        for tok in tokens:
            if tok["type"] == "text":
                parts.append(html.unescape(tok["raw"]))
            elif tok["type"] in ("codespan", "ruby"):
                parts.append(tok["raw"])
            elif tok["type"] in ("softbreak", "linebreak"):
                parts.append("\n")
            elif "children" in tok:
                parts.append(StyledRenderer._plain_text(tok["children"]))
        return "".join(parts)

    # ── 块级规则 ──────────────────────────────────────

    def _paragraph(self, token: Token) -> str:
        if is_toc_marker(token):
            return self._toc()
        text = self.render_inline(token["children"])
        is_figure_image = "<figure" in text and "<img" in text
        if is_figure_image or not text.strip():
            return text
        return styled_content("p", text)

    def _heading(self, token: Token) -> str:
        level = token["attrs"]["level"]
        anchor = self.session.heading_anchors.get(id(token))
        attrs = f' id="{anchor}"' if anchor else ""
        return styled_content(f"h{level}", self.render_inline(token["children"]), attrs=attrs)

    def _toc(self) -> str:
        if not self.session.toc:
            return ""
        top = min(level for level, _, _ in self.session.toc)
        items = "".join(
            f'<li class="markdown-toc-item markdown-toc-h{level}" style="padding-left: {level - top}em;">'
            f'<a href="#{anchor}">{html.escape(text, quote=False)}</a></li>'
            for level, text, anchor in self.session.toc
        )
        return f'<nav class="markdown-toc"><ul class="markdown-toc-list">{items}</ul></nav>'

    def _block_text(self, token: Token) -> str:
        return self.render_inline(token["children"])

    def _block_quote(self, token: Token) -> str:
        alert = split_alert(token)
        if alert is not None:
            return self._alert(*alert)
        return styled_content("blockquote", self.render_blocks(token["children"]))

    def _alert(self, kind: str, children: List[Token]) -> str:
        color = ALERT_COLORS[kind]
        title = f'<p class="markdown-alert-title" style="color: {color};">{kind.capitalize()}</p>'
        return (
            f'<blockquote class="markdown-alert markdown-alert-{kind}" style="border-left-color: {color};">'
            f"{title}{self.render_blocks(children)}</blockquote>"
        )

    def _footnotes(self, token: Token) -> str:
        items = []
        for item in token["children"]:
            i = item["attrs"]["index"]
            label = f'<code style="font-size: 90%; opacity: 0.6;">[{i}]</code> '
            back = f' <a href="#fnref-{i}" class="footnote-backref">↩</a>'
            children = [c for c in item["children"] if c["type"] != "blank_line"]
            if len(children) == 1 and children[0]["type"] == "paragraph":
                body = self.render_inline(children[0]["children"])
                items.append(f'<p class="footnote-item" id="fn-{i}">{label}{body}{back}</p>')
            else:
                body = self.render_blocks(children)
                items.append(f'<section class="footnote-item" id="fn-{i}">{label}{body}{back}</section>')
        return f'<section class="markdown-footnotes">{styled_content("hr", "")}{"".join(items)}</section>'

    def _thematic_break(self, token: Token) -> str:
        return styled_content("hr", "")

    def _blank(self, token: Token) -> str:
        return ""

    def _raw(self, token: Token) -> str:
        return token["raw"]

    def _block_code(self, token: Token) -> str:
        code = token["raw"].rstrip("\n")
        lang = html.unescape(token.get("attrs", {}).get("info", "") or "").strip()

        if lang.startswith("mermaid"):
            return f'<pre class="mermaid">{html.escape(code, quote=False)}</pre>'

        lang_text = lang.split(" ")[0] if lang else PLAINTEXT
        registered = is_language_registered(lang_text)
        language = lang_text if registered else PLAINTEXT
        show_line_number = self.options.is_show_line_number
        highlighted = highlight_and_format_code(code, language, show_line_number)

        pending_attr = ""
        if not registered and lang_text != PLAINTEXT:
            pending_attr = (
                f' data-language-pending="{_attr(lang_text)}"'
                f' data-raw-code="{_attr(code)}"'
                f' data-show-line-number="{str(show_line_number).lower()}"'
            )

        span = ""
        if self.options.is_mac_code_block:
            span = f'<span class="mac-sign" style="padding: 10px 14px 0;">{MAC_CODE_SVG}</span>'
        code_html = f'<code class="language-{_attr(lang or PLAINTEXT)}"{pending_attr}>{highlighted}</code>'
        return f'<pre class="hljs code__pre">{span}{code_html}</pre>'

    def _list(self, token: Token) -> str:
        attrs = token.get("attrs", {})
        ordered = bool(attrs.get("ordered"))
        self.session.push_list(ordered, int(attrs.get("start", 1)))
        try:
            body = self.render_blocks(token["children"])
        finally:
            self.session.pop_list()
        return styled_content("ol" if ordered else "ul", body)

    def _list_item(self, token: Token) -> str:
        prefix = self.session.next_item_prefix()
        children = [c for c in token["children"] if c["type"] != "blank_line"]
        if len(children) == 1 and children[0]["type"] in ("block_text", "paragraph"):
            content = self.render_inline(children[0]["children"])
        else:
            content = _LEADING_P_RE.sub(r"\1", self.render_blocks(children), count=1)
        return styled_content("listitem", f"{prefix}{content}", "li")

    def _table(self, token: Token) -> str:
        header = ""
        body = ""
        for part in token["children"]:
            if part["type"] == "table_head":
                cells = "".join(self._table_cell(c, "th") for c in part["children"])
                header = styled_content("tr", cells)
            elif part["type"] == "table_body":
                body = "".join(
                    styled_content("tr", "".join(self._table_cell(c, "td") for c in row["children"]))
                    for row in part["children"]
                )
            else:
                raise UnsupportedTokenError(f"没有对应的渲染规则：{part['type']}")
        return (
            '\n<section style="max-width: 100%; overflow: auto">\n'
            '<table class="preview-table">\n'
            f"<thead>{header}</thead>\n"
            f"<tbody>{body}</tbody>\n"
            "</table>\n</section>\n"
        )

    def _table_cell(self, token: Token, tag: str) -> str:
        content = self.render_inline(token["children"])
        align = token.get("attrs", {}).get("align")
        if align:
            return f'<{tag} class="{tag}" style="text-align: {align}">{content}</{tag}>'
        return styled_content(tag, content)

    # ── 行内规则 ──────────────────────────────────────

    def _text(self, token: Token) -> str:
        return html.escape(html.unescape(token["raw"]), quote=False)

    def _emphasis(self, token: Token) -> str:
        return styled_content("em", self.render_inline(token["children"]))

    def _strong(self, token: Token) -> str:
        return styled_content("strong", self.render_inline(token["children"]))

    def _strikethrough(self, token: Token) -> str:
        return f"<del>{self.render_inline(token['children'])}</del>"

    def _codespan(self, token: Token) -> str:
        return styled_content("codespan", escape_code_text(token["raw"]), "code")

    def _break(self, token: Token) -> str:
        return "<br>"

    def _footnote_ref(self, token: Token) -> str:
        i = token["attrs"]["index"]
        return f'<sup class="footnote-ref" id="fnref-{i}"><a href="#fn-{i}">[{i}]</a></sup>'

    def _mark(self, token: Token) -> str:
        return f'<span class="markup-highlight">{self.render_inline(token["children"])}</span>'

    def _underline(self, token: Token) -> str:
        return f'<span class="markup-underline">{self.render_inline(token["children"])}</span>'

    def _ruby(self, token: Token) -> str:
        base = html.escape(token["raw"], quote=False)
        annotation = html.escape(token["attrs"]["rt"], quote=False)
        return f"<ruby>{base}<rp>(</rp><rt>{annotation}</rt><rp>)</rp></ruby>"

    def _link(self, token: Token) -> str:
        attrs = token.get("attrs", {})
        href = attrs.get("url", "")
        title = attrs.get("title")
        parsed_text = self.render_inline(token["children"])
        text = self._plain_text(token["children"])
        anchor_title = _attr(title or text)

        if _WECHAT_LINK_RE.match(href):
            return f'<a href="{_attr(href)}" title="{anchor_title}">{parsed_text}</a>'
        if href == text:
            return parsed_text
        if self.options.cite_status:
            ref = self.session.add_footnote(title or text, href)
            return f'<a href="{_attr(href)}" title="{anchor_title}">{parsed_text}<sup>[{ref}]</sup></a>'
        return f'<a href="{_attr(href)}" title="{anchor_title}">{parsed_text}</a>'

    def _image(self, token: Token) -> str:
        attrs = token.get("attrs", {})
        src = attrs.get("url", "")
        title = attrs.get("title")
        alt = self._plain_text(token["children"])
        caption = transform_legend(self.options.legend, alt, title)
        sub_text = styled_content("figcaption", html.escape(caption, quote=False)) if caption else ""
        title_attr = f' title="{_attr(title)}"' if title else ""
        return f'<figure><img src="{_attr(src)}"{title_attr} alt="{_attr(alt)}"/>{sub_text}</figure>'


def render_markdown(raw: str, renderer: StyledRenderer) -> Dict[str, Any]:
    """拆 front matter → CJK 强调预处理 → 渲染正文，返回 html / reading_time / yaml_data。"""
    parsed = renderer.parse_front_matter_and_content(raw)
    return {
        "html": renderer.render(preprocess_cjk_emphasis(parsed.markdown_content)),
        "reading_time": parsed.reading_time,
        "yaml_data": parsed.yaml_data,
    }


def post_process_html(base_html: str, reading_time: ReadingTime, renderer: StyledRenderer) -> str:
    content = renderer.build_reading_time(reading_time) + base_html
    content += renderer.build_footnotes()
    content += renderer.build_addition()
    mac_display = "flex" if renderer.options.is_mac_code_block else "none"
    content += f"""
    <style>
      .hljs.code__pre > .mac-sign {{
        display: {mac_display};
      }}
    </style>
  """
    content += """
    <style>
      h1 strong, h2 strong, h3 strong, h4 strong, h5 strong, h6 strong {
        color: inherit !important;
      }
    </style>
  """
    return renderer.create_container(content)
