"""Evaluate an expression over values extracted from a document."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

from .evaltypes import DocType, VarType
from .expression import Expression, ExpressionError
from .extract import (
    ExtractError,
    Extractor,
    HTMLExtractor,
    JSONExtractor,
    RegexExtractor,
    XMLExtractor,
    parse_duration,
)

log = logging.getLogger(__name__)

_EXTRACTORS: dict[DocType, Callable[[str], Extractor]] = {
    DocType.HTML: HTMLExtractor,
    DocType.XML: XMLExtractor,
    DocType.JSON: JSONExtractor,
    DocType.TEXT: RegexExtractor,
}


def _nanos(delta: timedelta) -> float:
    return float((delta.days * 86400 + delta.seconds) * 1_000_000_000 + delta.microseconds * 1000)


def _param(value: Any) -> Any:
    if isinstance(value, timedelta):
        return _nanos(value)
    return value


def _str_arg(args: tuple) -> str:
    if len(args) != 1 or not isinstance(args[0], str):
        raise ExpressionError("function expects a single string argument")
    return args[0]


@dataclass
class Variable:
    """A named value extracted from the document by a query."""

    name: str
    type: VarType
    query: str
    value: Any = None


@dataclass
class Evaluator:
    """Extracts variables from a document and evaluates an expression over them."""

    document: str = ""
    doc_type: DocType = DocType.UNSUPPORTED
    expression: str = ""
    variables: list[Variable] = field(default_factory=list)
    extractor: Extractor | None = field(default=None, init=False)
    eval_funcs: dict[str, Callable[..., Any]] = field(default_factory=dict, init=False)
    extracted_values: dict[str, Any] = field(default_factory=dict, init=False)

    def __post_init__(self) -> None:
        self.configure()

    def configure(self) -> None:
        """Set up the extractor for the document type and the functions."""
        self._configure_extractor()
        self._configure_functions()

    def _configure_extractor(self) -> None:
        self.extracted_values = {}
        factory = _EXTRACTORS.get(self.doc_type)
        if factory is None:
            self.extractor = None
            log.error("Unsupported document type: %s", self.doc_type)
        else:
            self.extractor = factory(self.document)

    def _extract(self, var_type: VarType, *args: Any) -> Any:
        variable = Variable("", var_type, _str_arg(args))
        self.extract_value(variable)
        return variable.value

    def _configure_functions(self) -> None:
        self.eval_funcs = {
            "x_str": lambda *a: self._extract(VarType.STRING, *a),
            "x_float": lambda *a: self._extract(VarType.FLOAT, *a),
            "x_int": lambda *a: float(self._extract(VarType.INT, *a)),
            "x_bool": lambda *a: self._extract(VarType.BOOL, *a),
            "x_time": lambda *a: float(self._extract(VarType.TIME, *a)),
            "x_duration": lambda *a: _nanos(self._extract(VarType.DURATION, *a)),
            "strlen": lambda *a: float(len(_str_arg(a).encode("utf-8"))),
            "now": lambda *a: float(int(time.time())),
            "duration": lambda *a: _nanos(parse_duration(_str_arg(a))),
        }

    def set_document(self, doc_type: DocType, document: str) -> None:
        """Replace the document, switching extractor if the type changes."""
        self.document = document
        if self.doc_type != doc_type or self.extractor is None:
            self.doc_type = doc_type
            self._configure_extractor()
        else:
            self.extractor.set_document(document)

    def add_variable(self, variable: Variable) -> None:
        self.variables.append(variable)

    def clean_variable(self) -> None:
        self.variables = []

    def evaluate(self) -> bool:
        """Extract all variables and return the truth of the expression."""
        self.extract()
        expression = Expression(self.expression, self.eval_funcs)
        params = {v.name: _param(v.value) for v in self.variables}
        result = expression.evaluate(params)
        if isinstance(result, bool):
            return result
        if isinstance(result, float):
            return result != 0
        if isinstance(result, str):
            return result != ""
        raise ExpressionError(f"Unsupported type: {type(result).__name__}")

    def extract(self) -> None:
        """Extract the values of all variables."""
        for variable in self.variables:
            self.extract_value(variable)

    def extract_value(self, variable: Variable) -> None:
        """Extract one variable's value; times become Unix seconds."""
        if self.doc_type == DocType.UNSUPPORTED or self.extractor is None:
            raise ExtractError(f"Unsupported document type: {self.doc_type}")
        self.extractor.set_query(variable.query)
        self.extractor.set_var_type(variable.type)
        value = self.extractor.extract()
        if variable.type == VarType.TIME and isinstance(value, datetime):
            value = int(value.timestamp())
        variable.value = value
        self.extracted_values[variable.query] = value