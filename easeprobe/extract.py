"""Value extraction from HTML, XML, JSON and plain-text documents."""

from __future__ import annotations

import json
import math
import re
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Callable

from lxml import etree
from lxml import html as lxml_html

from .evaltypes import VarType


class ExtractError(ValueError):
    """Raised when a value cannot be extracted or converted."""


# --------------------------------------------------------------------------
# Time and duration parsing

_TIME_FORMATS = (
    "%a %b %d %H:%M:%S %Y",
    "%a %b %d %H:%M:%S %Z %Y",
    "%a %b %d %H:%M:%S %z %Y",
    "%I:%M%p",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M:%S%z",
    "%Y-%m-%dT%H%z",
    "%Y-%m-%dT%H:%M%z",
)

_LONG_FRACTION = re.compile(r"(?<=:\d\d\.)(\d{6})\d+")
_UTC_NAME = re.compile(r" (?:UTC|GMT) (\d{4})$")


def _localize(moment: datetime) -> datetime:
    if moment.tzinfo is not None:
        return moment
    try:
        return moment.astimezone()
    except (OverflowError, OSError, ValueError):
        return moment.replace(tzinfo=datetime.now().astimezone().tzinfo)


def try_parse_time(text: str) -> datetime:
    """Parse a time in one of the supported layouts; naive times are local."""
    candidate = _LONG_FRACTION.sub(r"\1", text)
    candidate = _UTC_NAME.sub(r" +0000 \1", candidate)
    for layout in _TIME_FORMATS:
        try:
            parsed = datetime.strptime(candidate, layout)
        except ValueError:
            continue
        return _localize(parsed)
    raise ExtractError(f"Cannot parse the time: {text}")


_DURATION_UNITS = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|\u00b5s|\u03bcs|ms|s|m|h)")
_MAX_NANOS = (1 << 63) - 1


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``"1h30m"``, ``"500ms"`` or ``"-1.5s"``."""
    body = text
    negative = False
    if body and body[0] in "+-":
        negative = body[0] == "-"
        body = body[1:]
    if body == "0":
        return timedelta(0)
    if not body:
        raise ExtractError(f'invalid duration "{text}"')

    total = Decimal(0)
    position = 0
    while position < len(body):
        part = _DURATION_PART.match(body, position)
        if part is None:
            raise ExtractError(f'invalid duration "{text}"')
        total += Decimal(part.group(1)) * _DURATION_UNITS[part.group(2)]
        position = part.end()

    nanos = int(total)
    if nanos > _MAX_NANOS + (1 if negative else 0):
        raise ExtractError(f'invalid duration "{text}"')
    seconds, remainder = divmod(nanos, 1_000_000_000)
    result = timedelta(seconds=seconds, microseconds=remainder // 1000)
    return -result if negative else result


# --------------------------------------------------------------------------
# Conversions from extracted text

_INTEGER = re.compile(r"[+-]?[0-9]+")
_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


def _to_int(text: str) -> int:
    if not _INTEGER.fullmatch(text):
        raise ExtractError(f'invalid integer "{text}"')
    value = int(text)
    if not -(1 << 63) <= value <= _MAX_NANOS:
        raise ExtractError(f'integer out of range "{text}"')
    return value


def _to_float(text: str) -> float:
    if text != text.strip() or "_" in text:
        raise ExtractError(f'invalid float "{text}"')
    try:
        return float(text)
    except ValueError as exc:
        raise ExtractError(f'invalid float "{text}"') from exc


def _to_bool(text: str) -> bool:
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise ExtractError(f'invalid boolean "{text}"')


_CONVERTERS: dict[VarType, Callable[[str], Any]] = {
    VarType.STRING: lambda text: text,
    VarType.INT: _to_int,
    VarType.FLOAT: _to_float,
    VarType.BOOL: _to_bool,
    VarType.TIME: try_parse_time,
    VarType.DURATION: parse_duration,
}


class Extractor(ABC):
    """Pulls a typed value out of a document using a query."""

    def __init__(self, document: str = "", var_type: VarType = VarType.STRING) -> None:
        self.name = ""
        self.var_type = var_type
        self.document = document

    @abstractmethod
    def set_query(self, query: str) -> None:
        """Set the query used to locate the value."""

    def set_var_type(self, var_type: VarType) -> None:
        self.var_type = var_type

    def set_document(self, document: str) -> None:
        self.document = document

    @abstractmethod
    def extract_str(self) -> str:
        """Return the raw text selected by the query."""

    def extract(self) -> Any:
        """Return the selected value converted to the configured type."""
        convert = _CONVERTERS.get(self.var_type)
        if convert is None:
            raise ExtractError(f"unknown type: {self.var_type}")
        return convert(self.extract_str())


# --------------------------------------------------------------------------
# XPath based extractors


def _format_number(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _node_text(found: Any) -> str:
    if isinstance(found, list):
        if not found:
            return ""
        found = found[0]
    if isinstance(found, bool):
        return "true" if found else "false"
    if isinstance(found, float):
        return _format_number(found)
    if isinstance(found, str):
        return str(found)
    if etree.iselement(found):
        return str(found.xpath("string()"))
    return str(found)


class XPathExtractor(Extractor):
    """Extracts values from a tree-shaped document by XPath expression."""

    def __init__(self, document: str = "", var_type: VarType = VarType.STRING) -> None:
        super().__init__(document, var_type)
        self.xpath = ""

    def set_query(self, query: str) -> None:
        self.xpath = query

    @abstractmethod
    def _parse(self, document: str) -> Any:
        """Parse the document into an lxml element tree."""

    def extract_str(self) -> str:
        root = self._parse(self.document)
        try:
            found = root.xpath(self.xpath)
        except etree.XPathError as exc:
            raise ExtractError(f"invalid xpath {self.xpath!r}: {exc}") from exc
        return _node_text(found)


class HTMLExtractor(XPathExtractor):
    """XPath extraction from HTML documents."""

    def _parse(self, document: str) -> Any:
        source = document if document.strip() else "<html></html>"
        parser = lxml_html.HTMLParser(encoding="utf-8")
        try:
            return lxml_html.document_fromstring(source.encode("utf-8"), parser=parser)
        except (etree.ParserError, ValueError) as exc:
            raise ExtractError(str(exc)) from exc


class XMLExtractor(XPathExtractor):
    """XPath extraction from XML documents."""

    def _parse(self, document: str) -> Any:
        parser = etree.XMLParser(resolve_entities=False, no_network=True)
        try:
            return etree.fromstring(document.encode("utf-8"), parser)
        except (etree.XMLSyntaxError, ValueError) as exc:
            raise ExtractError(str(exc)) from exc


_INVALID_NAME_CHARS = re.compile(r"[^\w.-]")
_NAME_START = re.compile(r"[^\W\d]")


def _tag_name(key: str) -> str:
    name = _INVALID_NAME_CHARS.sub("_", key)
    if not name or not _NAME_START.match(name):
        name = "_" + name
    return name


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON value: {name}")


def _fill(element: Any, value: Any) -> None:
    if isinstance(value, dict):
        for key in sorted(value):
            _fill(etree.SubElement(element, _tag_name(key)), value[key])
    elif isinstance(value, list):
        for item in value:
            _fill(etree.SubElement(element, "item"), item)
    elif isinstance(value, bool):
        element.text = "true" if value else "false"
    elif isinstance(value, int):
        element.text = str(value)
    elif isinstance(value, float):
        element.text = _format_number(value)
    elif isinstance(value, str):
        element.text = value


class JSONExtractor(XPathExtractor):
    """XPath extraction from JSON documents; object keys become elements."""

    def _parse(self, document: str) -> Any:
        try:
            data = json.loads(document, parse_constant=_reject_constant)
            root = etree.Element("document")
            _fill(root, data)
        except ValueError as exc:
            raise ExtractError(str(exc)) from exc
        return root


# --------------------------------------------------------------------------
# Regular-expression extractor


class RegexExtractor(Extractor):
    """Extracts values from plain text with a regular expression.

    The first capture group is returned when the pattern has one,
    otherwise the whole match.
    """

    def __init__(self, document: str = "", var_type: VarType = VarType.STRING) -> None:
        super().__init__(document, var_type)
        self.regex = ""

    def set_query(self, query: str) -> None:
        self.regex = query

    def extract_str(self) -> str:
        try:
            pattern = re.compile(self.regex)
        except re.error as exc:
            raise ExtractError(f"invalid regex {self.regex!r}: {exc}") from exc
        match = pattern.search(self.document)
        if match is None:
            raise ExtractError(f"no match found for - {self.regex}")
        if pattern.groups:
            group_names = {index: name for name, index in pattern.groupindex.items()}
            if 1 in group_names:
                self.name = group_names[1]
            return match.group(1) or ""
        return match.group(0)