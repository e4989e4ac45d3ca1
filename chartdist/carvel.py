"""Carvel imgpkg bundle metadata built from a Helm chart."""

from __future__ import annotations

from dataclasses import dataclass, field

import yaml

from .chart import ChartLoadError, load_chart
from .options import DEFAULT_ANNOTATIONS_KEY

CARVEL_BUNDLE_FILE_PATH = ".imgpkg/bundle.yml"
CARVEL_IMAGES_FILE_PATH = ".imgpkg/images.yml"
BUNDLE_API_VERSION = "imgpkg.carvel.dev/v1alpha1"
BUNDLE_KIND = "Bundle"


class CarvelBundleError(ValueError):
    """Raised when bundle metadata cannot be built."""


@dataclass
class Author:
    """A bundle author."""

    name: str = ""
    email: str = ""


@dataclass
class Website:
    """A page with more information on the bundle."""

    url: str = ""


@dataclass
class BundleMetadata:
    """Metadata of a Carvel bundle."""

    api_version: str = BUNDLE_API_VERSION
    kind: str = BUNDLE_KIND
    metadata: dict[str, str] = field(default_factory=dict)
    authors: list[Author] = field(default_factory=list)
    websites: list[Website] = field(default_factory=list)

    def to_yaml(self) -> str:
        """Return the bundle metadata serialised as YAML."""
        document = {
            "version": {"apiversion": self.api_version, "kind": self.kind},
            "metadata": {key: self.metadata[key] for key in sorted(self.metadata)},
            "authors": [{"name": a.name, "email": a.email} for a in self.authors],
            "websites": [{"url": w.url} for w in self.websites],
        }
        return yaml.safe_dump(
            document,
            sort_keys=False,
            default_flow_style=False,
            indent=2,
            allow_unicode=True,
        )


def _text(value: object) -> str:
    return "" if value is None else str(value)


def create_bundle_metadata(
    chart_path: str, chart_name: str, annotations_key: str = ""
) -> BundleMetadata:
    """Build bundle metadata from the chart at ``chart_path``.

    ``chart_name`` becomes the bundle name; every chart annotation except the
    images one (``annotations_key``, or the default key when empty) is copied.
    """
    bundle = BundleMetadata()
    try:
        chart = load_chart(chart_path)
    except (OSError, ChartLoadError) as exc:
        raise CarvelBundleError(f"failed to load chart: {exc}") from exc

    metadata = chart.metadata
    for maintainer in metadata.get("maintainers") or []:
        if isinstance(maintainer, dict):
            bundle.authors.append(
                Author(name=_text(maintainer.get("name")), email=_text(maintainer.get("email")))
            )
    for source in metadata.get("sources") or []:
        bundle.websites.append(Website(url=_text(source)))

    bundle.metadata["name"] = chart_name
    images_key = annotations_key or DEFAULT_ANNOTATIONS_KEY
    annotations = metadata.get("annotations") or {}
    if isinstance(annotations, dict):
        for key, value in annotations.items():
            if key != images_key:
                bundle.metadata[str(key)] = _text(value)
    return bundle