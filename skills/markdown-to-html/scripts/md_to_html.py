#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
把 Markdown 渲染为带主题样式、CSS 全部内联的单文件 HTML（可直接粘贴到公众号编辑器）。

依赖说明：
- 必需依赖：mistune（Markdown 分词）、Pygments（代码高亮）、PyYAML（front matter）、
  css-inline（CSS 内联）、requests（下载代码高亮主题）

处理流程：
  front matter → CJK 强调预处理 → 渲染 → 阅读时间 / 引用链接 / 附加样式
  → 去掉首个标题（可选）→ 拼装 HTML 文档 → CSS 内联 → CSS 变量归一化 → 嵌套列表修补

配置优先级：命令行参数 > EXTEND.md（./.markdown-to-html/ 或 ~/.markdown-to-html/）> 内置默认值
"""

from __future__ import annotations

import argparse
import os
import re
import sys
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

# 支持通过 importlib 直接加载本脚本时导入同级 package
_SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
if _SCRIPT_DIR not in sys.path:
    sys.path.insert(0, _SCRIPT_DIR)

from markdown_to_html.config import (
    load_extend_config,
    resolve_cli_options,
    resolve_style,
    validate_cli_options,
)
from markdown_to_html.constants import CODE_BLOCK_THEMES, COLOR_PRESETS, FONT_FAMILY_MAP, LEGEND_OPTIONS
from markdown_to_html.html_builder import (
    build_document_meta,
    build_html_document,
    modify_html_structure,
    remove_first_heading,
)
from markdown_to_html.http_client import load_code_theme_css
from markdown_to_html.inliner import inline_css, normalize_inline_css
from markdown_to_html.models import CliOptions, StyleConfig
from markdown_to_html.renderer import StyledRenderer, post_process_html, render_markdown
from markdown_to_html.themes import build_css, load_theme_css, resolve_theme_names

EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_USAGE = 2

_MD_SUFFIX_RE = re.compile(r"\.md$", re.I)


def output_path_for(input_path: str) -> str:
    return os.path.abspath(_MD_SUFFIX_RE.sub(".html", input_path))


def format_timestamp(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime("%Y%m%d%H%M%S")


def backup_existing(path: str, now: Optional[datetime] = None) -> Optional[str]:
    """已有输出文件时改名为 <path>.bak-YYYYMMDDHHMMSS（同一秒内重复则追加 -1、-2…）。"""
    if not os.path.exists(path):
        return None
    base = f"{path}.bak-{format_timestamp(now)}"
    backup = base
    n = 1
    while os.path.exists(backup):
        backup = f"{base}-{n}"
        n += 1
    os.replace(path, backup)
    return backup


def render_markdown_document(
    markdown_text: str,
    options: CliOptions,
    style: StyleConfig,
    css: str,
    code_theme_css: str,
    output_path: str,
) -> str:
    renderer = StyledRenderer(options.render_options())
    rendered = render_markdown(markdown_text, renderer)
    content = post_process_html(rendered["html"], rendered["reading_time"], renderer)
    if not options.keep_title:
        content = remove_first_heading(content)

    meta = build_document_meta(rendered["yaml_data"], output_path)
    document = build_html_document(meta, css, content, code_theme_css)
    document = normalize_inline_css(inline_css(document), style)
    return modify_html_structure(document)


def _add_toggle(ap: argparse.ArgumentParser, name: str, dest: str, help_on: str, help_off: str) -> None:
    group = ap.add_mutually_exclusive_group()
    group.add_argument(f"--{name}", dest=dest, action="store_true", default=None, help=help_on)
    group.add_argument(f"--no-{name}", dest=dest, action="store_false", default=None, help=help_off)


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="md_to_html.py",
        description="把 Markdown 渲染为样式内联的单文件 HTML，输出到同目录的同名 .html。",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
可选值：
  --color        {", ".join(COLOR_PRESETS)}（或任意 CSS 颜色）
  --font-family  {", ".join(FONT_FAMILY_MAP)}（或任意 CSS font-family）
  --legend       {", ".join(LEGEND_OPTIONS)}
  --code-theme   highlight.js 样式名，如 github、atom-one-dark（共 {len(CODE_BLOCK_THEMES)} 个）

示例：
  python md_to_html.py article.md --theme grace --color red --cite
""",
    )
    ap.add_argument("input", help="输入的 Markdown 文件（.md）")
    ap.add_argument("--theme", help="主题名（默认 default）")
    ap.add_argument("--color", dest="primary_color", help="主色：预设名或十六进制颜色")
    ap.add_argument("--font-family", dest="font_family", help="字体：预设名或 CSS 值")
    ap.add_argument("--font-size", dest="font_size", help="字号：14px~18px，可省略 px")
    ap.add_argument("--code-theme", dest="code_theme", help="代码高亮主题（默认 github）")
    ap.add_argument("--legend", help="图片说明来源（默认 alt）")
    _add_toggle(ap, "mac-code-block", "is_mac_code_block", "代码块显示 Mac 风格装饰头（默认）", "不显示装饰头")
    _add_toggle(ap, "line-number", "is_show_line_number", "代码块显示行号", "不显示行号（默认）")
    _add_toggle(ap, "cite", "cite_status", "外链转为文末引用链接", "保留外链（默认）")
    _add_toggle(ap, "count", "count_status", "文首显示字数与阅读时间", "不显示（默认）")
    _add_toggle(ap, "keep-title", "keep_title", "保留正文第一个 h1/h2", "去掉正文第一个 h1/h2（默认）")
    return ap


def _cli_layer(args: argparse.Namespace) -> Dict[str, Any]:
    layer = vars(args).copy()
    layer.pop("input", None)
    return layer


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = build_arg_parser()
    args = ap.parse_args(argv)

    if not args.input.lower().endswith(".md"):
        ap.print_usage(sys.stderr)
        print(f"错误：输入文件必须是 .md：{args.input}", file=sys.stderr)
        return EXIT_USAGE
    input_path = os.path.abspath(args.input)
    if not os.path.isfile(input_path):
        print(f"错误：文件不存在：{input_path}", file=sys.stderr)
        return EXIT_ERROR

    options = resolve_cli_options(input_path, load_extend_config(), _cli_layer(args))
    error = validate_cli_options(options, resolve_theme_names())
    if error:
        ap.print_usage(sys.stderr)
        print(f"错误：{error}", file=sys.stderr)
        return EXIT_USAGE

    output_path = output_path_for(input_path)
    try:
        style = resolve_style(options.theme, options.primary_color, options.font_family, options.font_size)
        base_css, theme_css = load_theme_css(options.theme)
        css = build_css(base_css, theme_css, style)
        code_theme_css = load_code_theme_css(options.code_theme)

        with open(input_path, "r", encoding="utf-8") as f:
            markdown_text = f.read()
        final_html = render_markdown_document(markdown_text, options, style, css, code_theme_css, output_path)
    except (FileNotFoundError, RuntimeError, ValueError) as e:
        print(f"错误：{e}", file=sys.stderr)
        return EXIT_ERROR

    backup = backup_existing(output_path)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(final_html)

    if backup:
        print(f"已备份旧文件：{backup}")
    print(f"HTML 已写入：{output_path}")
    return EXIT_SUCCESS


if __name__ == "__main__":
    raise SystemExit(main())
