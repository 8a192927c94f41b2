"""
配置分层：内置默认值 ← 主题默认值 / EXTEND.md ← 命令行参数。

所有合并都走 fold_layers：按顺序逐字段覆盖，None 表示“未指定”，不参与覆盖。
"""

from __future__ import annotations

import os
import re
import sys
from dataclasses import fields
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .constants import (
    CODE_BLOCK_THEMES,
    COLOR_PRESETS,
    DEFAULT_STYLE,
    FONT_FAMILY_MAP,
    FONT_SIZE_OPTIONS,
    LEGEND_OPTIONS,
    THEME_STYLE_DEFAULTS,
)
from .models import CliOptions, StyleConfig

EXTEND_DIR_NAME = ".markdown-to-html"
EXTEND_FILE_NAME = "EXTEND.md"

_EXTEND_FRONT_MATTER_RE = re.compile(r"^---\s*\n([\s\S]*?)\n---\s*$", re.M)
_QUOTE_PAIRS = (('"', '"'), ("'", "'"), ("“", "”"), ("‘", "’"))

DEFAULT_CLI_OPTIONS: Dict[str, Any] = {
    "theme": "default",
    "keep_title": False,
    "code_theme": "github",
    "is_mac_code_block": True,
    "is_show_line_number": False,
    "cite_status": False,
    "count_status": False,
    "legend": "alt",
}


def strip_quotes(value: Any) -> str:
    """去掉成对包裹的引号（ASCII 或中文弯引号）。"""
    if value is None:
        return ""
    text = str(value).strip()
    for left, right in _QUOTE_PAIRS:
        if len(text) >= 2 and text.startswith(left) and text.endswith(right):
            return text[1:-1]
    return text


def fold_layers(*layers: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    merged: Dict[str, Any] = {}
    for layer in layers:
        if not layer:
            continue
        for key, value in layer.items():
            if value is not None:
                merged[key] = value
    return merged


def resolve_style(
    theme: str,
    primary_color: Optional[str] = None,
    font_family: Optional[str] = None,
    font_size: Optional[str] = None,
) -> StyleConfig:
    overrides = {"primary_color": primary_color, "font_family": font_family, "font_size": font_size}
    return StyleConfig(**fold_layers(DEFAULT_STYLE, THEME_STYLE_DEFAULTS.get(theme), overrides))


# ── EXTEND.md ─────────────────────────────────────────


def _to_bool(value: str) -> bool:
    return value == "true"


def normalize_font_size(value: str) -> str:
    value = value.strip()
    return value if value.endswith("px") else f"{value}px"


_EXTEND_KEYS: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "default_theme": ("theme", str),
    "default_color": ("primary_color", str),
    "default_font_family": ("font_family", str),
    "default_font_size": ("font_size", normalize_font_size),
    "default_code_theme": ("code_theme", str),
    "mac_code_block": ("is_mac_code_block", _to_bool),
    "show_line_number": ("is_show_line_number", _to_bool),
    "cite": ("cite_status", _to_bool),
    "count": ("count_status", _to_bool),
    "legend": ("legend", str),
    "keep_title": ("keep_title", _to_bool),
}


def parse_extend_config(content: str) -> Dict[str, Any]:
    """解析 EXTEND.md 的 front matter（逐行 key: value，不是完整 YAML）。"""
    m = _EXTEND_FRONT_MATTER_RE.search(content)
    if not m:
        return {}
    layer: Dict[str, Any] = {}
    for line in m.group(1).split("\n"):
        line = line.strip()
        if not line or line.startswith("#") or ":" not in line:
            continue
        key, raw_value = line.split(":", 1)
        key = key.strip()
        value = strip_quotes(raw_value)
        if not value or value == "null":
            continue
        entry = _EXTEND_KEYS.get(key)
        if entry is None:
            continue
        field_name, convert = entry
        layer[field_name] = convert(value)
    return layer


def extend_config_paths(cwd: Optional[str] = None, home: Optional[str] = None) -> List[str]:
    cwd = cwd or os.getcwd()
    home = home or os.path.expanduser("~")
    return [
        os.path.join(cwd, EXTEND_DIR_NAME, EXTEND_FILE_NAME),
        os.path.join(home, EXTEND_DIR_NAME, EXTEND_FILE_NAME),
    ]


def load_extend_config(paths: Optional[Sequence[str]] = None) -> Dict[str, Any]:
    """按项目级 → 用户级顺序查找，第一个可读的 EXTEND.md 生效。"""
    for path in paths if paths is not None else extend_config_paths():
        if not os.path.isfile(path):
            continue
        try:
            with open(path, "r", encoding="utf-8") as f:
                return parse_extend_config(f.read())
        except (OSError, UnicodeDecodeError) as e:
            print(f"警告：无法读取配置文件 {path}：{e}", file=sys.stderr)
    return {}


# ── 命令行选项 ────────────────────────────────────────


def resolve_cli_options(
    input_path: str,
    extend_layer: Optional[Mapping[str, Any]] = None,
    cli_layer: Optional[Mapping[str, Any]] = None,
) -> CliOptions:
    known = {f.name for f in fields(CliOptions)} - {"input_path"}
    merged = fold_layers(DEFAULT_CLI_OPTIONS, extend_layer, cli_layer)
    merged = {k: v for k, v in merged.items() if k in known}

    color = merged.get("primary_color")
    if color:
        merged["primary_color"] = COLOR_PRESETS.get(color, color)
    family = merged.get("font_family")
    if family:
        merged["font_family"] = FONT_FAMILY_MAP.get(family, family)
    size = merged.get("font_size")
    if size:
        merged["font_size"] = normalize_font_size(str(size))
    return CliOptions(input_path=input_path, **merged)


def validate_cli_options(options: CliOptions, theme_names: Sequence[str]) -> Optional[str]:
    """返回第一条错误信息；全部合法时返回 None。"""
    if options.theme not in theme_names:
        return f"未知主题：{options.theme}（可选：{', '.join(theme_names)}）"
    if options.font_size and options.font_size not in FONT_SIZE_OPTIONS:
        return f"无效的字号：{options.font_size}（可选：{', '.join(FONT_SIZE_OPTIONS)}）"
    if options.code_theme not in CODE_BLOCK_THEMES:
        return f"未知代码主题：{options.code_theme}"
    if options.legend not in LEGEND_OPTIONS:
        return f"无效的图注策略：{options.legend}（可选：{', '.join(LEGEND_OPTIONS)}）"
    return None
