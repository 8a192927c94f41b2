"""
代码高亮主题（highlight.js 样式表）的获取：本地 code_themes/ 优先，其次 CDN。

取不到时返回空字符串并打印警告，不中断渲染。
CDN 地址可用环境变量 MD_CODE_THEME_CDN 覆盖（指向 @highlightjs/cdn-assets 的根目录）。
"""

from __future__ import annotations

import os
import sys
from typing import Optional

import requests

from .constants import HLJS_CDN_BASE

CODE_THEMES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "code_themes")

_DEFAULT_TIMEOUT_S = 15
_USER_AGENT = "Mozilla/5.0 (compatible; md_to_html/1.0)"


def code_theme_cdn_base() -> str:
    return (os.environ.get("MD_CODE_THEME_CDN") or HLJS_CDN_BASE).rstrip("/")


def code_theme_url(theme: str) -> str:
    return f"{code_theme_cdn_base()}/styles/{theme}.min.css"


def read_local_code_theme(theme: str, themes_dir: Optional[str] = None) -> Optional[str]:
    path = os.path.join(themes_dir or CODE_THEMES_DIR, f"{theme}.min.css")
    if not os.path.isfile(path):
        return None
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def fetch_code_theme_css(
    session: requests.Session,
    theme: str,
    timeout_s: int = _DEFAULT_TIMEOUT_S,
) -> str:
    url = code_theme_url(theme)
    try:
        r = session.get(url, timeout=timeout_s, headers={"User-Agent": _USER_AGENT})
        r.raise_for_status()
    except requests.exceptions.HTTPError as exc:
        status = exc.response.status_code if exc.response is not None else "?"
        print(f"警告：代码主题下载失败（HTTP {status}）：{url}", file=sys.stderr)
        return ""
    except requests.exceptions.RequestException as exc:
        print(f"警告：代码主题下载失败：{url}（{exc}）", file=sys.stderr)
        return ""
    r.encoding = r.encoding or "utf-8"
    return r.text


def load_code_theme_css(
    theme: str,
    session: Optional[requests.Session] = None,
    timeout_s: int = _DEFAULT_TIMEOUT_S,
    themes_dir: Optional[str] = None,
) -> str:
    local = read_local_code_theme(theme, themes_dir)
    if local is not None:
        return local
    if session is not None:
        return fetch_code_theme_css(session, theme, timeout_s)
    with requests.Session() as own_session:
        return fetch_code_theme_css(own_session, theme, timeout_s)
