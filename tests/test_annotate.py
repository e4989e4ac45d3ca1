import os

import pytest
import yaml

from chartdist.annotate import (
    AnnotationError,
    NoImagesToAnnotateError,
    annotate_chart,
    get_image_lock_file_path,
    is_remote_chart,
)
from chartdist.chart import load_chart
from chartdist.options import Configuration

IMAGES = [
    {
        "name": "bitnami-shell",
        "registry": "docker.io",
        "repository": "bitnami/bitnami-shell",
        "tag": "1.0.0",
    },
    {
        "name": "wordpress",
        "registry": "docker.io",
        "repository": "bitnami/wordpress",
        "tag": "latest",
    },
]


def write_chart(root, metadata, values=None):
    os.makedirs(root, exist_ok=True)
    with open(os.path.join(root, "Chart.yaml"), "w") as fh:
        yaml.safe_dump(metadata, fh)
    if values is not None:
        with open(os.path.join(root, "values.yaml"), "w") as fh:
            yaml.safe_dump(values, fh)
    return str(root)


def plain_chart(root, images=IMAGES, extra_metadata=None):
    values = {
        img["name"]: {
            "image": {
                "registry": img["registry"],
                "repository": img["repository"],
                "tag": img["tag"],
            }
        }
        for img in images
    }
    metadata = {"apiVersion": "v2", "name": "test", "version": "1.0.0"}
    metadata.update(extra_metadata or {})
    return write_chart(root, metadata, values)


def read_chart_yaml(chart_dir):
    with open(os.path.join(chart_dir, "Chart.yaml")) as fh:
        return yaml.safe_load(fh)


def expected_entries(images):
    return [
        (img["name"], f"{img['registry']}/{img['repository']}:{img['tag']}") for img in images
    ]


def test_annotates_chart(tmp_path):
    chart_dir = plain_chart(tmp_path / "chart")
    annotate_chart(chart_dir, Configuration(annotations_key="images"))

    chart = load_chart(chart_dir)
    got = [(img.name, img.image) for img in chart.get_annotated_images()]
    assert got == expected_entries(IMAGES)


def test_annotation_sorted_by_name(tmp_path):
    chart_dir = plain_chart(tmp_path / "chart", images=list(reversed(IMAGES)))
    annotate_chart(chart_dir)
    got = [img.name for img in load_chart(chart_dir).get_annotated_images()]
    assert got == ["bitnami-shell", "wordpress"]


def test_custom_annotations_key(tmp_path):
    chart_dir = plain_chart(tmp_path / "chart")
    key = "artifacthub.io/images"
    annotate_chart(chart_dir, Configuration(annotations_key=key))

    data = read_chart_yaml(chart_dir)
    assert key in data["annotations"]
    assert "images" not in data["annotations"]
    chart = load_chart(chart_dir, Configuration(annotations_key=key))
    assert [(i.name, i.image) for i in chart.get_annotated_images()] == expected_entries(IMAGES)


def test_keeps_existing_metadata_and_annotations(tmp_path):
    chart_dir = plain_chart(
        tmp_path / "chart",
        extra_metadata={"annotations": {"category": "Infrastructure"}, "description": "demo"},
    )
    annotate_chart(chart_dir)
    data = read_chart_yaml(chart_dir)
    assert data["name"] == "test"
    assert data["version"] == "1.0.0"
    assert data["apiVersion"] == "v2"
    assert data["description"] == "demo"
    assert data["annotations"]["category"] == "Infrastructure"
    assert "images" in data["annotations"]


def test_annotating_twice_gives_same_file(tmp_path):
    chart_dir = plain_chart(tmp_path / "chart")
    annotate_chart(chart_dir)
    with open(os.path.join(chart_dir, "Chart.yaml")) as fh:
        first = fh.read()
    annotate_chart(chart_dir)
    with open(os.path.join(chart_dir, "Chart.yaml")) as fh:
        second = fh.read()
    assert first == second


def test_duplicate_images_listed_once(tmp_path):
    image = {"registry": "docker.io", "repository": "bitnami/nginx", "tag": "1.2.3"}
    chart_dir = write_chart(
        tmp_path / "chart",
        {"apiVersion": "v2", "name": "dup", "version": "0.1.0"},
        {"a": {"image": dict(image)}, "b": {"image": dict(image)}},
    )
    annotate_chart(chart_dir)
    got = load_chart(chart_dir).get_annotated_images()
    assert [(i.name, i.image) for i in got] == [("nginx", "docker.io/bitnami/nginx:1.2.3")]


def test_no_images_raises(tmp_path):
    chart_dir = write_chart(
        tmp_path / "chart",
        {"apiVersion": "v2", "name": "empty", "version": "0.1.0"},
        {"replicaCount": 1},
    )
    with pytest.raises(NoImagesToAnnotateError):
        annotate_chart(chart_dir)
    assert "annotations" not in read_chart_yaml(chart_dir)


def test_dependency_with_images_counts(tmp_path):
    parent = write_chart(
        tmp_path / "parent",
        {"apiVersion": "v2", "name": "parent", "version": "1.0.0"},
        {"replicaCount": 1},
    )
    sub_dir = os.path.join(parent, "charts", "sub")
    plain_chart(sub_dir, images=IMAGES[:1])

    annotate_chart(parent)

    assert "annotations" not in read_chart_yaml(parent)
    sub = load_chart(sub_dir)
    assert [(i.name, i.image) for i in sub.get_annotated_images()] == expected_entries(IMAGES[:1])


def test_missing_chart_raises(tmp_path):
    with pytest.raises(AnnotationError, match="failed to load Helm chart"):
        annotate_chart(str(tmp_path / "missing"))


def test_get_image_lock_file_path(tmp_path):
    chart_dir = plain_chart(tmp_path / "chart")
    expected = os.path.join(os.path.abspath(chart_dir), "Images.lock")
    assert get_image_lock_file_path(chart_dir) == expected
    assert get_image_lock_file_path(os.path.join(chart_dir, "Chart.yaml")) == expected


def test_get_image_lock_file_path_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        get_image_lock_file_path(str(tmp_path / "missing"))


@pytest.mark.parametrize(
    "path, expected",
    [
        ("oci://localhost/charts/test", True),
        ("/tmp/chart", False),
        ("https://localhost/chart.tgz", False),
        ("", False),
    ],
)
def test_is_remote_chart(path, expected):
    assert is_remote_chart(path) is expected