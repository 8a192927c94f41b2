"""
主题样式：发现、加载、拼装。

主题 = base.css + <theme>.css，查找顺序为包内 themes/ → 外部主题目录。
外部来源通过环境变量配置：
- MD_THEME_DIR：外部主题 CSS 目录
- MD_THEME_CONFIG_PATH：外部主题配置文件（读取 themeOptionsMap 的键作为主题名）；
  未设置 MD_THEME_DIR 时，外部目录默认为配置文件旁的 theme-css/
"""

from __future__ import annotations

import os
import re
import sys
from typing import List, Optional, Tuple

from .constants import FALLBACK_THEMES
from .models import StyleConfig

THEME_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "themes")

_THEME_OPTIONS_MAP_RE = re.compile(r"themeOptionsMap\s*=\s*\{([\s\S]*?)\n\}")
_THEME_KEY_RE = re.compile(r"^\s*([a-zA-Z0-9_-]+)\s*:", re.M)


def external_theme_config_path() -> Optional[str]:
    return os.environ.get("MD_THEME_CONFIG_PATH") or None


def external_theme_dir() -> Optional[str]:
    env_dir = os.environ.get("MD_THEME_DIR")
    if env_dir:
        return env_dir
    config_path = external_theme_config_path()
    if config_path:
        return os.path.join(os.path.dirname(os.path.abspath(config_path)), "theme-css")
    return None


def _search_dirs(external_dir: Optional[str]) -> List[str]:
    dirs = [THEME_DIR]
    if external_dir:
        dirs.append(external_dir)
    return dirs


def discover_themes_from_dir(path: Optional[str]) -> List[str]:
    if not path or not os.path.isdir(path):
        return []
    names = []
    for name in sorted(os.listdir(path)):
        stem, ext = os.path.splitext(name)
        if ext.lower() == ".css" and stem.lower() != "base":
            names.append(stem)
    return names


def read_theme_names_from_config(config_path: Optional[str]) -> List[str]:
    if not config_path or not os.path.isfile(config_path):
        return []
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        print(f"警告：无法读取主题配置 {config_path}：{e}", file=sys.stderr)
        return []
    m = _THEME_OPTIONS_MAP_RE.search(content)
    if not m:
        return []
    return _THEME_KEY_RE.findall(m.group(1))


def resolve_theme_names() -> List[str]:
    """本地 + 外部目录 + 外部配置里的主题名，去重后只保留确实有 CSS 文件的。"""
    external_dir = external_theme_dir()
    combined: List[str] = []
    for name in (
        discover_themes_from_dir(THEME_DIR)
        + discover_themes_from_dir(external_dir)
        + read_theme_names_from_config(external_theme_config_path())
    ):
        if name not in combined:
            combined.append(name)
    dirs = _search_dirs(external_dir)
    resolved = [n for n in combined if any(os.path.isfile(os.path.join(d, f"{n}.css")) for d in dirs)]
    return resolved or list(FALLBACK_THEMES)


def _read_first(candidates: List[str]) -> Optional[str]:
    for path in candidates:
        if os.path.isfile(path):
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
    return None


def load_theme_css(theme: str) -> Tuple[str, str]:
    """返回 (base_css, theme_css)；任一缺失时抛 FileNotFoundError 并列出查找过的路径。"""
    dirs = _search_dirs(external_theme_dir())
    base_candidates = [os.path.join(d, "base.css") for d in dirs]
    theme_candidates = [os.path.join(d, f"{theme}.css") for d in dirs]

    base_css = _read_first(base_candidates)
    if base_css is None:
        raise FileNotFoundError(f"缺少基础样式 base.css，已查找：{', '.join(base_candidates)}")
    theme_css = _read_first(theme_candidates)
    if theme_css is None:
        raise FileNotFoundError(f"缺少主题样式 \"{theme}\"，已查找：{', '.join(theme_candidates)}")
    return base_css, theme_css


def strip_output_scope(css: str) -> str:
    css = re.sub(r"#output\s*\{", "body {", css)
    css = re.sub(r"#output\s+", "", css)
    css = re.sub(r"^#output\s*", "", css, flags=re.M)
    return css


def build_css(base_css: str, theme_css: str, style: StyleConfig) -> str:
    variables = f""":root {{
  --md-primary-color: {style.primary_color};
  --md-font-family: {style.font_family};
  --md-font-size: {style.font_size};
  --foreground: {style.foreground};
  --blockquote-background: {style.blockquote_background};
  --md-accent-color: {style.accent_color};
  --md-container-bg: {style.container_bg};
}}

body {{
  margin: 0;
  padding: 24px;
  background: #ffffff;
}}

#output {{
  max-width: 860px;
  margin: 0 auto;
}}"""
    return strip_output_scope("\n\n".join([variables, base_css, theme_css]))
