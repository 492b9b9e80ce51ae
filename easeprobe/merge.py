"""Merge a directory of YAML configuration files into one document."""

from __future__ import annotations

import copy
import glob
import os
from typing import Any

import yaml


class MergeError(ValueError):
    """Raised when configuration files cannot be merged."""


def merge_documents(into: Any, source: Any) -> Any:
    """Deep-merge ``source`` into ``into`` and return the result.

    Mappings merge key by key, sequences are appended, and any other value
    in ``source`` replaces the one in ``into``. The inputs are not modified.
    """
    if isinstance(into, dict) and isinstance(source, dict):
        merged = copy.deepcopy(into)
        for key, value in source.items():
            if key in merged:
                merged[key] = merge_documents(merged[key], value)
            else:
                merged[key] = copy.deepcopy(value)
        return merged
    if isinstance(into, list) and isinstance(source, list):
        return copy.deepcopy(into) + copy.deepcopy(source)
    if isinstance(source, (dict, list)) and into is not None:
        raise MergeError(
            f"cannot merge {type(source).__name__} into {type(into).__name__}"
        )
    return copy.deepcopy(source)


def merge_yaml_files(path: str | os.PathLike) -> str:
    """Merge every ``*.yaml`` file in ``path`` in name order; return YAML text."""
    pattern = os.path.join(glob.escape(os.fspath(path)), "*.yaml")
    files = sorted(glob.glob(pattern))
    if not files:
        raise MergeError(f"yaml files not found for {path}")

    merged: dict = {}
    for file in files:
        try:
            with open(file, encoding="utf-8") as handle:
                documents = list(yaml.safe_load_all(handle))
        except (OSError, yaml.YAMLError) as exc:
            raise MergeError(f"cannot read {file}: {exc}") from exc
        for document in documents:
            if document is None:
                continue
            if not isinstance(document, dict):
                raise MergeError(f"cannot merge {file}: top level is not a mapping")
            merged = merge_documents(merged, document)
    return yaml.safe_dump(merged, sort_keys=False, allow_unicode=True)