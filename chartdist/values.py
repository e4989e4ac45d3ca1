"""Discovery of container image definitions inside chart values."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

import yaml

IMAGE_ELEMENT_KEYS = ("registry", "repository", "tag", "digest")
ROOT_LOCATION = "$"


@dataclass
class ValuesImageElement:
    """An image definition (registry/repository/tag/digest) found in values."""

    registry: str = ""
    repository: str = ""
    digest: str = ""
    tag: str = ""
    location_path: str = ""
    found_fields: list[str] = field(default_factory=list)

    def name(self) -> str:
        """Return the last component of the repository."""
        if not self.repository:
            return "."
        stripped = self.repository.rstrip("/")
        if not stripped:
            return "/"
        return posixpath.basename(stripped)

    def url(self) -> str:
        """Return the full image reference."""
        url = f"{self.registry}/{self.repository}" if self.registry else self.repository
        if self.tag:
            url = f"{url}:{self.tag}"
        if self.digest:
            url = f"{url}@{self.digest}"
        return url

    def to_map(self) -> dict[str, str]:
        """Return every image field keyed by its values name."""
        return {
            "registry": self.registry,
            "repository": self.repository,
            "digest": self.digest,
            "tag": self.tag,
        }

    def yaml_replace_map(self) -> dict[str, str]:
        """Return the values paths of the fields found, mapped to their current value."""
        full = self.to_map()
        return {f"{self.location_path}.{key}": full[key] for key in self.found_fields}


def to_annotation(elements: Iterable[ValuesImageElement]) -> str:
    """Return the YAML annotation text listing each distinct image once."""
    seen: set[str] = set()
    entries: list[dict[str, str]] = []
    for element in elements:
        url = element.url()
        if url in seen:
            continue
        seen.add(url)
        entries.append({"name": element.name(), "image": url})
    return yaml.safe_dump(entries, default_flow_style=False, sort_keys=True, width=4096)


def _parse_element(data: Mapping[Any, Any]) -> ValuesImageElement | None:
    found: dict[str, str] = {}
    for key in IMAGE_ELEMENT_KEYS:
        if key not in data:
            if key == "digest":
                continue
            return None
        value = data[key]
        if not isinstance(value, str):
            return None
        found[key] = value
    # An empty registry is acceptable, an empty repository is not.
    if not found["repository"]:
        return None
    return ValuesImageElement(
        registry=found.get("registry", ""),
        repository=found.get("repository", ""),
        digest=found.get("digest", ""),
        tag=found.get("tag", ""),
        found_fields=[key for key in IMAGE_ELEMENT_KEYS if key in found],
    )


def _find_in_map(data: Mapping[Any, Any], location: str) -> list[ValuesImageElement]:
    elements: list[ValuesImageElement] = []
    element = _parse_element(data)
    if element is not None:
        element.location_path = location
        elements.append(element)
    for key, value in data.items():
        if isinstance(value, Mapping):
            elements.extend(_find_in_map(value, f"{location}.{key}"))
    return elements


def find_image_elements_in_values_map(data: Mapping[Any, Any]) -> list[ValuesImageElement]:
    """Return every image definition found in ``data``, walking nested mappings."""
    return _find_in_map(data, ROOT_LOCATION)


def find_image_elements_in_values_file(chart_path: str) -> list[ValuesImageElement]:
    """Return the image definitions found in the values of the chart at ``chart_path``."""
    from .chart import load_chart

    return find_image_elements_in_values_map(load_chart(chart_path).values)