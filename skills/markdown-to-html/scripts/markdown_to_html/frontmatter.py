"""
front matter 拆分与阅读时间估算。

- 只识别位于文档开头的 `---` … `---`（或 `...`）块
- YAML 由 PyYAML safe_load 解析；解析失败或结果不是 mapping 时整篇按正文处理
- 字数统计：CJK 字符每个记一个词，其余按空白切分且至少含一个单词字符
"""

from __future__ import annotations

import re
import sys
from typing import Any, Dict, Tuple

import yaml

from .constants import WORDS_PER_MINUTE
from .models import ParseResult, ReadingTime

_FENCE_OPEN = "---"
_FENCE_CLOSE = ("---", "...")

_CJK_CHAR_RE = re.compile(
    "[\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff\uf900-\ufaff\uac00-\ud7af]"
)
_WORD_CHAR_RE = re.compile(r"\w")


def split_front_matter(text: str) -> Tuple[Dict[str, Any], str]:
    """返回 (metadata, body)。没有 front matter 时 body 就是原文。"""
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    if normalized.startswith("\ufeff"):
        normalized = normalized[1:]
    lines = normalized.split("\n")
    if not lines or lines[0].rstrip() != _FENCE_OPEN:
        return {}, text

    for i in range(1, len(lines)):
        if lines[i].rstrip() in _FENCE_CLOSE:
            block = "\n".join(lines[1:i])
            body = "\n".join(lines[i + 1 :])
            break
    else:
        # 没有闭合分隔线：不是 front matter
        return {}, text

    try:
        data = yaml.safe_load(block) if block.strip() else {}
    except yaml.YAMLError as e:
        print(f"警告：front matter 解析失败，按正文处理：{e}", file=sys.stderr)
        return {}, text
    if data is None:
        data = {}
    if not isinstance(data, dict):
        print("警告：front matter 不是键值映射，按正文处理", file=sys.stderr)
        return {}, text
    return data, body


def count_words(text: str) -> int:
    cjk = len(_CJK_CHAR_RE.findall(text))
    rest = _CJK_CHAR_RE.sub(" ", text)
    latin = sum(1 for w in rest.split() if _WORD_CHAR_RE.search(w))
    return cjk + latin


def estimate_reading_time(text: str) -> ReadingTime:
    words = count_words(text)
    return ReadingTime(words=words, minutes=words / WORDS_PER_MINUTE)


def parse_front_matter_and_content(markdown_text: str) -> ParseResult:
    yaml_data, body = split_front_matter(markdown_text)
    return ParseResult(
        yaml_data=yaml_data,
        markdown_content=body,
        reading_time=estimate_reading_time(body),
    )
