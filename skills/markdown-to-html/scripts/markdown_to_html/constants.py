from __future__ import annotations

from typing import Dict, List

FONT_FAMILY_MAP: Dict[str, str] = {
    "sans": (
        "-apple-system-font,BlinkMacSystemFont, Helvetica Neue, PingFang SC, "
        "Hiragino Sans GB , Microsoft YaHei UI , Microsoft YaHei ,Arial,sans-serif"
    ),
    "serif": (
        "Optima-Regular, Optima, PingFangSC-light, PingFangTC-light, 'PingFang SC', "
        "Cambria, Cochin, Georgia, Times, 'Times New Roman', serif"
    ),
    "serif-cjk": '"Source Han Serif SC", "Noto Serif CJK SC", "Source Han Serif CN", STSong, SimSun, serif',
    "mono": "Menlo, Monaco, 'Courier New', monospace",
}

FONT_SIZE_OPTIONS: List[str] = ["14px", "15px", "16px", "17px", "18px"]

COLOR_PRESETS: Dict[str, str] = {
    "blue": "#0F4C81",
    "green": "#009874",
    "vermilion": "#FA5151",
    "yellow": "#FECE00",
    "purple": "#92617E",
    "sky": "#55C9EA",
    "rose": "#B76E79",
    "olive": "#556B2F",
    "black": "#333333",
    "gray": "#A9A9A9",
    "pink": "#FFB7C5",
    "red": "#A93226",
    "orange": "#D97757",
}

# highlight.js 11.x 自带的样式名
CODE_BLOCK_THEMES: List[str] = [
    "1c-light", "a11y-dark", "a11y-light", "agate", "an-old-hope",
    "androidstudio", "arduino-light", "arta", "ascetic",
    "atom-one-dark-reasonable", "atom-one-dark", "atom-one-light",
    "brown-paper", "codepen-embed", "color-brewer", "dark", "default",
    "devibeans", "docco", "far", "felipec", "foundation",
    "github-dark-dimmed", "github-dark", "github", "gml", "googlecode",
    "gradient-dark", "gradient-light", "grayscale", "hybrid", "idea",
    "intellij-light", "ir-black", "isbl-editor-dark", "isbl-editor-light",
    "kimbie-dark", "kimbie-light", "lightfair", "lioshi", "magula",
    "mono-blue", "monokai-sublime", "monokai", "night-owl", "nnfx-dark",
    "nnfx-light", "nord", "obsidian", "panda-syntax-dark",
    "panda-syntax-light", "paraiso-dark", "paraiso-light", "pojoaque",
    "purebasic", "qtcreator-dark", "qtcreator-light", "rainbow", "routeros",
    "school-book", "shades-of-purple", "srcery", "stackoverflow-dark",
    "stackoverflow-light", "sunburst", "tokyo-night-dark", "tokyo-night-light",
    "tomorrow-night-blue", "tomorrow-night-bright", "vs", "vs2015", "xcode",
    "xt256",
]

LEGEND_OPTIONS: List[str] = ["title-alt", "alt-title", "title", "alt", "none"]

FALLBACK_THEMES: List[str] = ["default", "grace", "simple"]

DEFAULT_STYLE: Dict[str, str] = {
    "primary_color": COLOR_PRESETS["blue"],
    "font_family": FONT_FAMILY_MAP["sans"],
    "font_size": "16px",
    "foreground": "0 0% 3.9%",
    "blockquote_background": "#f7f7f7",
    "accent_color": "#6B7280",
    "container_bg": "transparent",
}

# 主题自带的局部默认值，只覆盖列出的字段
THEME_STYLE_DEFAULTS: Dict[str, Dict[str, str]] = {
    "default": {"primary_color": COLOR_PRESETS["blue"]},
    "grace": {"primary_color": COLOR_PRESETS["purple"]},
    "simple": {"primary_color": COLOR_PRESETS["green"]},
    "modern": {
        "primary_color": COLOR_PRESETS["orange"],
        "accent_color": "#E4B1A0",
        "container_bg": "rgba(250, 249, 245, 1)",
        "font_family": FONT_FAMILY_MAP["sans"],
        "font_size": "15px",
        "blockquote_background": "rgba(255, 255, 255, 0.6)",
    },
}

# CSS 变量名 → StyleConfig 字段
CSS_VARIABLES: Dict[str, str] = {
    "--md-primary-color": "primary_color",
    "--md-font-family": "font_family",
    "--md-font-size": "font_size",
    "--foreground": "foreground",
    "--blockquote-background": "blockquote_background",
    "--md-accent-color": "accent_color",
    "--md-container-bg": "container_bg",
}

# hsl(var(--foreground)) 的固定替换值
FOREGROUND_LITERAL = "#3f3f3f"

MAC_CODE_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" version="1.1" x="0px" y="0px" '
    'width="45px" height="13px" viewBox="0 0 450 130">'
    '<ellipse cx="50" cy="65" rx="50" ry="52" stroke="rgb(220,60,54)" stroke-width="2" fill="rgb(237,108,96)" />'
    '<ellipse cx="225" cy="65" rx="50" ry="52" stroke="rgb(218,151,33)" stroke-width="2" fill="rgb(247,193,81)" />'
    '<ellipse cx="400" cy="65" rx="50" ry="52" stroke="rgb(27,161,37)" stroke-width="2" fill="rgb(100,200,86)" />'
    "</svg>"
)

HLJS_CDN_BASE = "https://cdn.jsdelivr.net/npm/@highlightjs/cdn-assets@11.11.1"

WORDS_PER_MINUTE = 200

# GitHub 提示块的标题与主色
ALERT_COLORS: Dict[str, str] = {
    "note": "#478be6",
    "tip": "#57ab5a",
    "important": "#986ee2",
    "warning": "#c69026",
    "caution": "#e5534b",
}

TOC_MAX_LEVEL = 3
