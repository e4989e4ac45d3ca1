"""Writing the list of container images found in values into Chart.yaml."""

from __future__ import annotations

import os
import tempfile
from typing import Any, Iterable

import yaml

from .chart import CHART_FILE_NAME, DEFAULT_IMAGES_LOCK_FILE_NAME, get_chart_root, load_chart
from .options import Configuration
from .values import ValuesImageElement, find_image_elements_in_values_map, to_annotation

REMOTE_CHART_PREFIX = "oci://"


class AnnotationError(RuntimeError):
    """Raised when a chart cannot be annotated."""


class NoImagesToAnnotateError(AnnotationError):
    """Raised when neither a chart nor its dependencies define container images."""

    def __init__(self, message: str = "no container images to annotate found") -> None:
        super().__init__(message)


class _ChartDumper(yaml.SafeDumper):
    """Dumper that writes multi-line strings as literal blocks."""


def _represent_str(dumper: yaml.SafeDumper, value: str) -> yaml.ScalarNode:
    style = "|" if "\n" in value else None
    return dumper.represent_scalar("tag:yaml.org,2002:str", value, style=style)


_ChartDumper.add_representer(str, _represent_str)


def _sorted(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {key: _sorted(obj[key]) for key in sorted(obj, key=str)}
    if isinstance(obj, list):
        return [_sorted(item) for item in obj]
    return obj


def _safe_write(path: str, text: str, mode: int = 0o600) -> None:
    directory = os.path.dirname(os.path.abspath(path))
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".chart-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def _write_annotations(
    elements: Iterable[ValuesImageElement], chart_file: str, annotations_key: str
) -> None:
    elements = list(elements)
    if not elements:
        return
    annotation_text = to_annotation(elements)

    with open(chart_file, encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise AnnotationError(f"{chart_file} does not hold a mapping")

    annotations = data.pop("annotations", None) or {}
    if not isinstance(annotations, dict):
        raise AnnotationError(f"annotations in {chart_file} are not a mapping")
    annotations[annotations_key] = annotation_text

    document = {"annotations": _sorted(annotations), **_sorted(data)}
    rendered = yaml.dump(
        document,
        Dumper=_ChartDumper,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
        width=4096,
    )
    _safe_write(chart_file, rendered)


def annotate_chart(chart_path: str, config: Configuration | None = None) -> None:
    """Annotate the chart at ``chart_path`` and its sub-charts with their images.

    Raises NoImagesToAnnotateError when no chart in the tree defines images,
    and AnnotationError for any other failure.
    """
    config = config or Configuration()
    try:
        chart = load_chart(chart_path, config)
    except (OSError, ValueError) as exc:
        raise AnnotationError(f"failed to load Helm chart: {exc}") from exc

    elements = sorted(find_image_elements_in_values_map(chart.values), key=lambda e: e.name())
    annotated = bool(elements)

    chart_file = os.path.join(chart.root_dir, CHART_FILE_NAME)
    try:
        _write_annotations(elements, chart_file, config.annotations_key)
    except (OSError, ValueError, yaml.YAMLError, AnnotationError) as exc:
        raise AnnotationError(f"failed to serialize annotations: {exc}") from exc

    errors: list[str] = []
    for dependency in chart.dependencies():
        try:
            annotate_chart(dependency.root_dir, config)
        except NoImagesToAnnotateError:
            continue
        except (AnnotationError, OSError, ValueError) as exc:
            errors.append(f"failed to annotate sub-chart {dependency.chart_full_path()!r}: {exc}")
        else:
            annotated = True

    if errors:
        raise AnnotationError("\n".join(errors))
    if not annotated:
        raise NoImagesToAnnotateError()


def get_image_lock_file_path(chart_path: str) -> str:
    """Return the path of the Images.lock file belonging to the chart."""
    return os.path.join(get_chart_root(chart_path), DEFAULT_IMAGES_LOCK_FILE_NAME)


def is_remote_chart(path: str) -> bool:
    """Return True if ``path`` refers to a chart in an OCI registry."""
    return path.startswith(REMOTE_CHART_PREFIX)