"""Canonical text form for YAML documents."""

from __future__ import annotations

import yaml

_DOCUMENT_END = "...\n"


class YAMLNormalizationError(ValueError):
    """Raised when text cannot be parsed as YAML."""


def normalize_yaml(text: str) -> str:
    """Return ``text`` re-serialised with sorted keys and block style.

    Two documents that hold the same data give the same result, whatever
    their original formatting, key order or comments.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise YAMLNormalizationError(f"failed to parse YAML: {exc}") from exc
    dumped = yaml.safe_dump(
        data,
        default_flow_style=False,
        sort_keys=True,
        allow_unicode=True,
    )
    # Plain scalars at the top level get an explicit end marker; drop it so
    # the output is just the value followed by a newline.
    if dumped.endswith(_DOCUMENT_END):
        dumped = dumped[: -len(_DOCUMENT_END)]
    return dumped


def must_normalize_yaml(text: str) -> str:
    """Return the normalised form of ``text`` for text known to be valid YAML.

    Raises YAMLNormalizationError if it is not.
    """
    return normalize_yaml(text)