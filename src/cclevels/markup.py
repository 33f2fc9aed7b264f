"""Reader and writer for the plist-like markup used by level save files.

Only the small tag vocabulary that appears in saves is understood:

- ``<d>``/``<dict>`` (``<d />`` for an empty dict)
- ``<k>``/``<key>``
- ``<s>``/``<string>``, ``<i>``/``<integer>``, ``<r>``/``<real>``
- ``<t />``/``<true />`` and ``<f />``/``<false />``

Every other tag (``<?xml?>``, ``<plist>``, unknown wrappers) is skipped.
Text is never entity-escaped, in either direction.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from .errors import MalformedMarkup
from .utils.numbers import lenient_float, lenient_int

logger = logging.getLogger(__name__)

MAX_DEPTH = 256

XML_DECLARATION = '<?xml version="1.0"?>'
PLIST_OPEN = '<plist version="1.0" gjver="2.0">'
PLIST_OPEN_LEGACY = '<plist version="1.0">'

_OPEN = "open"
_CLOSE = "close"
_EMPTY = "empty"
_KEY = "key"
_VALUE = "value"

_DICT_TAGS = frozenset({"d", "dict"})
_TRUE_TAGS = frozenset({"t", "true"})
_FALSE_TAGS = frozenset({"f", "false"})

# tag name -> (token kind, converter for the element text)
_ELEMENT_TAGS: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "k": (_KEY, str),
    "key": (_KEY, str),
    "s": (_VALUE, str),
    "string": (_VALUE, str),
    "i": (_VALUE, lenient_int),
    "integer": (_VALUE, lenient_int),
    "r": (_VALUE, lenient_float),
    "real": (_VALUE, lenient_float),
}


def _tag_name(body: str) -> str:
    parts = body.split()
    return parts[0].rstrip("/") if parts else ""


class _Scanner:
    """Forward-only tokenizer over markup text."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def next_token(self) -> Optional[Tuple[str, Any]]:
        text = self.text
        while True:
            start = text.find("<", self.pos)
            if start == -1:
                return None
            end = text.find(">", start)
            if end == -1:
                return None
            body = text[start + 1:end]
            self.pos = end + 1

            if body.startswith("/"):
                if _tag_name(body[1:]) in _DICT_TAGS:
                    return _CLOSE, None
                continue

            name = _tag_name(body)
            self_closing = body.rstrip().endswith("/")
            if name in _DICT_TAGS:
                return (_EMPTY, {}) if self_closing else (_OPEN, None)
            if name in _TRUE_TAGS:
                return _VALUE, True
            if name in _FALSE_TAGS:
                return _VALUE, False
            element = _ELEMENT_TAGS.get(name)
            if element is None:
                continue
            kind, convert = element
            content = "" if self_closing else self._read_element(name, start)
            return kind, convert(content)

    def _read_element(self, name: str, start: int) -> str:
        end_tag = f"</{name}>"
        end = self.text.find(end_tag, self.pos)
        if end == -1:
            raise MalformedMarkup(f"Unterminated <{name}> element at offset {start}")
        content = self.text[self.pos:end]
        self.pos = end + len(end_tag)
        return content


@dataclass
class _Frame:
    node: Dict[str, Any]
    pending: Optional[str] = None

    def store(self, value: Any) -> None:
        if self.pending is not None:
            self.node[self.pending] = value
            self.pending = None


def parse(text: str | bytes) -> Dict[str, Any]:
    """Parse markup text into a nested dict.

    Raises MalformedMarkup when no dict root is present, when an element is
    left unterminated, or when nesting is deeper than MAX_DEPTH.
    A root dict that is still open at end of input is returned as read so far.
    """
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    scanner = _Scanner(text.replace("\0", ""))

    while True:
        token = scanner.next_token()
        if token is None:
            raise MalformedMarkup("No <dict> root found in markup")
        kind, _ = token
        if kind == _EMPTY:
            return {}
        if kind == _OPEN:
            break

    root: Dict[str, Any] = {}
    stack = [_Frame(root)]
    while stack:
        token = scanner.next_token()
        if token is None:
            logger.debug("Markup ended with %d dict(s) still open", len(stack))
            break
        kind, value = token
        frame = stack[-1]
        if kind == _CLOSE:
            stack.pop()
        elif kind == _KEY:
            frame.pending = value
        elif kind == _OPEN:
            if len(stack) >= MAX_DEPTH:
                raise MalformedMarkup(f"Markup nesting exceeds {MAX_DEPTH} levels")
            child: Dict[str, Any] = {}
            frame.store(child)
            stack.append(_Frame(child))
        else:
            frame.store(value)
    return root


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "<t />" if value else "<f />"
    if isinstance(value, int):
        return f"<i>{value}</i>"
    if isinstance(value, float):
        if value.is_integer():
            return f"<i>{int(value)}</i>"
        return f"<r>{value!r}</r>"
    return f"<s>{value}</s>"


def _build_items(node: Dict[str, Any]) -> str:
    parts = []
    for key, value in node.items():
        if value is None:
            continue
        parts.append(f"<k>{key}</k>")
        if isinstance(value, dict):
            parts.append(f"<d>{_build_items(value)}</d>" if value else "<d />")
        else:
            parts.append(_scalar(value))
    return "".join(parts)


def _build_items_pretty(node: Dict[str, Any], level: int) -> str:
    pad = "  " * level
    parts = []
    for key, value in node.items():
        if value is None:
            continue
        parts.append(f"\n{pad}<k>{key}</k>")
        if isinstance(value, dict):
            if value:
                parts.append(f"\n{pad}<d>{_build_items_pretty(value, level + 1)}\n{pad}</d>")
            else:
                parts.append(f"\n{pad}<d />")
        else:
            parts.append(f"\n{pad}{_scalar(value)}")
    return "".join(parts)


def build(node: Dict[str, Any], *, gjver: bool = True) -> str:
    """Serialize a tree to the compact single-line save form.

    ``gjver=False`` drops the ``gjver="2.0"`` plist attribute, which is how
    legacy saves are written.
    """
    plist = PLIST_OPEN if gjver else PLIST_OPEN_LEGACY
    return f"{XML_DECLARATION}{plist}<dict>{_build_items(node)}</dict></plist>"


def build_fragment(node: Dict[str, Any]) -> str:
    """Serialize a tree as a bare ``<d>`` element with no document header."""
    return f"<d>{_build_items(node)}</d>" if node else "<d />"


def build_pretty(node: Dict[str, Any], *, gjver: bool = True) -> str:
    """Serialize a tree with one tag per line, indented two spaces per level."""
    plist = PLIST_OPEN if gjver else PLIST_OPEN_LEGACY
    return f"{XML_DECLARATION}\n{plist}\n<dict>{_build_items_pretty(node, 1)}\n</dict>\n</plist>"
