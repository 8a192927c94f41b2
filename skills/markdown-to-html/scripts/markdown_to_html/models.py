from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional


@dataclass
class RenderOptions:
    """渲染选项"""

    legend: str = "alt"  # 图片说明策略：title-alt | alt-title | title | alt | none
    cite_status: bool = False  # 外链转为文末引用
    count_status: bool = False  # 文首字数/阅读时间
    is_mac_code_block: bool = True
    is_show_line_number: bool = False
    theme_mode: str = "light"  # light | dark

    def merged(self, **changes: Any) -> "RenderOptions":
        return replace(self, **changes)


@dataclass
class ReadingTime:
    words: int = 0
    minutes: float = 0.0

    @property
    def rounded_minutes(self) -> int:
        return math.ceil(self.minutes)


@dataclass
class ParseResult:
    """front matter 拆分结果"""

    yaml_data: Dict[str, Any]
    markdown_content: str
    reading_time: ReadingTime


@dataclass(frozen=True)
class Footnote:
    index: int
    title: str
    link: str


@dataclass
class StyleConfig:
    """样式配置（每项都是合法的 CSS 值）"""

    primary_color: str
    font_family: str
    font_size: str
    foreground: str
    blockquote_background: str
    accent_color: str
    container_bg: str


@dataclass
class HtmlDocumentMeta:
    title: str
    author: Optional[str] = None
    description: Optional[str] = None


@dataclass
class CliOptions:
    """命令行 / EXTEND.md / 内置默认值合并后的最终选项"""

    input_path: str
    theme: str = "default"
    keep_title: bool = False
    primary_color: Optional[str] = None
    font_family: Optional[str] = None
    font_size: Optional[str] = None
    code_theme: str = "github"
    is_mac_code_block: bool = True
    is_show_line_number: bool = False
    cite_status: bool = False
    count_status: bool = False
    legend: str = "alt"

    def render_options(self) -> RenderOptions:
        return RenderOptions(
            legend=self.legend,
            cite_status=self.cite_status,
            count_status=self.count_status,
            is_mac_code_block=self.is_mac_code_block,
            is_show_line_number=self.is_show_line_number,
        )
