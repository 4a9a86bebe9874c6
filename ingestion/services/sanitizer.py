"""Markup stripping for every externally sourced string."""

from __future__ import annotations

import re
import warnings
from typing import Iterable, List, Optional

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning

_WS_RE = re.compile(r"\s+")
_ANGLE_RE = re.compile(r"[<>]")
_HOSTILE_RE = re.compile(r"[&<>]")
_DROP_TAGS = ("script", "style", "iframe", "object", "embed", "noscript", "template")
_MAX_PASSES = 16


def _strip_once(text: str) -> str:
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", MarkupResemblesLocatorWarning)
        soup = BeautifulSoup(text, "html.parser")
    for tag in soup.find_all(_DROP_TAGS):
        tag.decompose()
    return _WS_RE.sub(" ", soup.get_text()).strip()


def sanitize_text(value: Optional[str]) -> str:
    """Return plain text with all markup removed.

    Entities can hide markup (``&lt;b&gt;``), and dropping stray angle
    brackets can join fragments into a fresh entity (``&<>lt;``). Stripping
    and bracket removal repeat until the text no longer changes, so the
    result is a fixed point and never contains ``<`` or ``>``. Input still
    changing after ``_MAX_PASSES`` rounds is treated as hostile and loses
    every ``&``, ``<`` and ``>``.
    """
    if not value:
        return ""
    text = str(value)
    for _ in range(_MAX_PASSES):
        stripped = _strip_once(text)
        if stripped == text:
            stripped = _WS_RE.sub(" ", _ANGLE_RE.sub("", text)).strip()
            if stripped == text:
                return text
        text = stripped
    return _WS_RE.sub(" ", _HOSTILE_RE.sub("", text)).strip()


def sanitize_list(values: Optional[Iterable[str]]) -> List[str]:
    cleaned: List[str] = []
    for value in values or ():
        s = sanitize_text(value)
        if s:
            cleaned.append(s)
    return cleaned
