"""Document and variable types used by the expression evaluator."""

from __future__ import annotations

from enum import IntEnum

import yaml


class DocType(IntEnum):
    """The kind of document a value is extracted from."""

    UNSUPPORTED = 0
    HTML = 1
    XML = 2
    JSON = 3
    TEXT = 4

    def __str__(self) -> str:
        return self.name.lower()


class VarType(IntEnum):
    """The type an extracted value is converted to."""

    UNKNOWN = 0
    INT = 1
    FLOAT = 2
    STRING = 3
    BOOL = 4
    TIME = 5
    DURATION = 6

    def __str__(self) -> str:
        return self.name.lower()


_DOC_TYPES = {str(member): member for member in DocType}
_VAR_TYPES = {str(member): member for member in VarType}


def parse_doc_type(text: str) -> DocType:
    """Return the document type named by ``text``, or ``UNSUPPORTED``."""
    return _DOC_TYPES.get(text.lower(), DocType.UNSUPPORTED)


def parse_var_type(text: str) -> VarType:
    """Return the variable type named by ``text``, or ``UNKNOWN``."""
    return _VAR_TYPES.get(text.lower(), VarType.UNKNOWN)


def dump_enum_yaml(value: DocType | VarType) -> str:
    """Serialise a document or variable type as a YAML scalar document."""
    if not isinstance(value, (DocType, VarType)):
        raise ValueError(f"not a document or variable type: {value!r}")
    return f"{value}\n"


def _load_enum(text: str, table: dict, kind: str):
    try:
        value = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"invalid {kind}: {exc}") from exc
    if not isinstance(value, str) or value.lower() not in table:
        raise ValueError(f"invalid {kind}: {value!r}")
    return table[value.lower()]


def load_doc_type_yaml(text: str) -> DocType:
    """Read a document type from a YAML scalar; raise ValueError if invalid."""
    return _load_enum(text, _DOC_TYPES, "DocType")


def load_var_type_yaml(text: str) -> VarType:
    """Read a variable type from a YAML scalar; raise ValueError if invalid."""
    return _load_enum(text, _VAR_TYPES, "Variable")