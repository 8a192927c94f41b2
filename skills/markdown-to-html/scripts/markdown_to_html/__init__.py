"""markdown_to_html package."""

from .models import CliOptions, HtmlDocumentMeta, ParseResult, ReadingTime, RenderOptions, StyleConfig
from .renderer import StyledRenderer, UnsupportedTokenError

__all__ = [
    "CliOptions",
    "HtmlDocumentMeta",
    "ParseResult",
    "ReadingTime",
    "RenderOptions",
    "StyleConfig",
    "StyledRenderer",
    "UnsupportedTokenError",
]
