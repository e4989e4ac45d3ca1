"""Loading of Helm charts from directories and archives."""

from __future__ import annotations

import io
import os
import tarfile
from dataclasses import dataclass, field
from typing import Any

import yaml

from .options import Configuration

DEFAULT_IMAGES_LOCK_FILE_NAME = "Images.lock"
HELM_ARTIFACTS_FOLDER = "artifacts"
CHART_FILE_NAME = "Chart.yaml"
VALUES_FILE_NAME = "values.yaml"
_CHARTS_PREFIX = "charts/"


class ChartLoadError(ValueError):
    """Raised when a chart cannot be loaded."""


class InvalidAnnotationsError(ValueError):
    """Raised when the chart image annotations cannot be parsed."""


@dataclass(frozen=True)
class ChartFile:
    """A file of a chart, named relative to the chart root."""

    name: str
    data: bytes


@dataclass(frozen=True)
class AnnotatedImage:
    """An image listed in the chart annotations."""

    name: str
    image: str
    chart: str = ""


@dataclass
class _ChartData:
    metadata: dict[str, Any]
    raw: list[ChartFile]
    values: dict[Any, Any]
    dependencies: list["_ChartData"] = field(default_factory=list)
    parent: "_ChartData | None" = None

    @property
    def name(self) -> str:
        return str(self.metadata.get("name", ""))

    def full_path(self) -> str:
        if self.parent is None:
            return self.name
        return f"{self.parent.full_path()}/charts/{self.name}"


def _parse_mapping(data: bytes, label: str) -> dict[Any, Any]:
    try:
        parsed = yaml.safe_load(data)
    except yaml.YAMLError as exc:
        raise ChartLoadError(f"cannot load {label}: {exc}") from exc
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ChartLoadError(f"cannot load {label}: expected a mapping")
    return parsed


def _read_directory(root: str) -> list[ChartFile]:
    files: list[ChartFile] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for filename in sorted(filenames):
            full = os.path.join(dirpath, filename)
            relative = os.path.relpath(full, root).replace(os.sep, "/")
            with open(full, "rb") as fh:
                files.append(ChartFile(relative, fh.read()))
    return files


def _read_archive(data: bytes) -> list[ChartFile]:
    files: list[ChartFile] = []
    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:*") as archive:
            for member in archive:
                if not member.isfile():
                    continue
                name = "/".join(member.name.split("/")[1:])
                if not name:
                    continue
                extracted = archive.extractfile(member)
                if extracted is None:
                    continue
                files.append(ChartFile(name, extracted.read()))
    except tarfile.TarError as exc:
        raise ChartLoadError(f"cannot read chart archive: {exc}") from exc
    if not files:
        raise ChartLoadError("no files in chart archive")
    return files


def _load_files(files: list[ChartFile]) -> _ChartData:
    metadata: dict[str, Any] | None = None
    values: dict[Any, Any] = {}
    subcharts: dict[str, list[ChartFile]] = {}

    for chart_file in files:
        if chart_file.name == CHART_FILE_NAME:
            metadata = _parse_mapping(chart_file.data, CHART_FILE_NAME)
        elif chart_file.name == VALUES_FILE_NAME:
            values = _parse_mapping(chart_file.data, VALUES_FILE_NAME)
        elif chart_file.name.startswith(_CHARTS_PREFIX):
            if chart_file.name.endswith(".prov"):
                continue
            rest = chart_file.name[len(_CHARTS_PREFIX):]
            subcharts.setdefault(rest.split("/", 1)[0], []).append(ChartFile(rest, chart_file.data))

    if metadata is None:
        raise ChartLoadError("Chart.yaml file is missing")
    if not metadata.get("name"):
        raise ChartLoadError("validation: chart.metadata.name is required")
    if not metadata.get("version"):
        raise ChartLoadError("validation: chart.metadata.version is required")

    chart = _ChartData(metadata=metadata, raw=list(files), values=values)

    for sub_name, sub_files in subcharts.items():
        if sub_name[:1] in ("_", "."):
            continue
        try:
            if sub_name.endswith(".tgz"):
                first = sub_files[0]
                if first.name != sub_name:
                    raise ChartLoadError(
                        f"error unpacking tar in {chart.name}: expected {sub_name}, got {first.name}"
                    )
                dependency = _load_files(_read_archive(first.data))
            else:
                nested = [
                    ChartFile(parts[1], f.data)
                    for f in sub_files
                    if len(parts := f.name.split("/", 1)) == 2
                ]
                dependency = _load_files(nested)
        except ChartLoadError as exc:
            raise ChartLoadError(f"error unpacking {sub_name} in {chart.name}: {exc}") from exc
        dependency.parent = chart
        chart.dependencies.append(dependency)
    return chart


def _load(path: str) -> _ChartData:
    os.stat(path)
    if os.path.isdir(path):
        return _load_files(_read_directory(path))
    if tarfile.is_tarfile(path):
        with open(path, "rb") as fh:
            return _load_files(_read_archive(fh.read()))
    raise ChartLoadError(f"file '{path}' does not appear to be a valid chart file")


def get_chart_root(chart_path: str) -> str:
    """Return the absolute chart directory for a chart directory or a file inside it."""
    os.stat(chart_path)
    if os.path.isdir(chart_path):
        return os.path.abspath(chart_path)
    return os.path.abspath(os.path.dirname(chart_path))


class Chart:
    """A loaded Helm chart together with its location on disk."""

    def __init__(self, data: _ChartData, root_dir: str, config: Configuration | None = None) -> None:
        config = config or Configuration()
        self._data = data
        self.root_dir = root_dir
        self.annotations_key = config.annotations_key
        self._values_file_names = list(config.values_files)

    @property
    def metadata(self) -> dict[str, Any]:
        return self._data.metadata

    @property
    def values(self) -> dict[Any, Any]:
        return self._data.values

    def name(self) -> str:
        return self._data.name

    def version(self) -> str:
        version = self._data.metadata.get("version", "")
        return "" if version is None else str(version)

    def chart_full_path(self) -> str:
        """Return the chart path within its parent charts."""
        return self._data.full_path()

    def chart_dir(self) -> str:
        return self.root_dir

    def lock_file_path(self) -> str:
        return self.abs_file_path(DEFAULT_IMAGES_LOCK_FILE_NAME)

    def image_artifacts_dir(self) -> str:
        return os.path.join(self.root_dir, HELM_ARTIFACTS_FOLDER, "images")

    def images_dir(self) -> str:
        return os.path.join(self.root_dir, "images")

    def file(self, name: str) -> ChartFile | None:
        """Return the chart file called ``name``, or None."""
        return next((f for f in self._data.raw if f.name == name), None)

    def values_files(self) -> list[ChartFile | None]:
        return [self.file(name) for name in self._values_file_names]

    def abs_file_path(self, name: str) -> str:
        return os.path.join(self.root_dir, name)

    def get_annotated_images(self) -> list[AnnotatedImage]:
        """Return the images listed under the configured annotations key."""
        annotations = self._data.metadata.get("annotations") or {}
        text = annotations.get(self.annotations_key) if isinstance(annotations, dict) else None
        if not text:
            return []
        try:
            entries = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise InvalidAnnotationsError(f"failed to parse images annotation: {exc}") from exc
        if entries is None:
            return []
        if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
            raise InvalidAnnotationsError("images annotation must be a list of mappings")
        return [
            AnnotatedImage(name=str(e.get("name", "")), image=str(e.get("image", "")), chart=self.name())
            for e in entries
        ]

    def dependencies(self) -> list["Chart"]:
        config = Configuration(
            annotations_key=self.annotations_key,
            values_files=list(self._values_file_names),
        )
        return [
            Chart(dep, os.path.join(self.root_dir, "charts", dep.name), config)
            for dep in self._data.dependencies
        ]


def load_chart(path: str, config: Configuration | None = None) -> Chart:
    """Load the chart at ``path`` (a directory or an archive)."""
    config = config or Configuration()
    data = _load(path)
    return Chart(data, get_chart_root(path), config)