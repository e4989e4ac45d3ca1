# chartdist

Helpers for getting Helm charts ready for distribution. The package finds
container image definitions in a chart's `values.yaml`, writes them into the
chart's `Chart.yaml` as an image annotation, loads charts (directories or
archives) together with their sub-charts, and builds Carvel bundle metadata
from chart information.

## Installation

```
pip install chartdist
```

To run the test suite:

```
pip install "chartdist[test]"
pytest
```

## Configuration

`chartdist.options.Configuration` is a dataclass holding the settings the
helpers read: `annotations_key` (default `"images"`), `values_files`
(default `["values.yaml"]`), `log`, `artifacts_dir`, `fetch_artifacts`,
`max_retries` (default 3), `insecure_mode` and `auth`, an `Auth` with
`username` and `password`. `has_credentials()` is true when both are set.

## Annotating a chart

`chartdist.annotate.annotate_chart` reads the chart's `values.yaml`, collects
the image elements it finds (mappings that hold string `registry`,
`repository` and `tag` entries, with an optional `digest`, and a non-empty
repository), sorts them by image name and stores them under the configured
annotations key in `Chart.yaml`. Sub-charts under `charts/` are annotated too.

```python
from chartdist.annotate import annotate_chart, NoImagesToAnnotateError
from chartdist.options import Configuration

try:
    annotate_chart("path/to/chart", Configuration(annotations_key="images"))
except NoImagesToAnnotateError:
    print("nothing to annotate")
```

`NoImagesToAnnotateError` is raised when neither the chart nor any sub-chart
defines images; other failures raise `AnnotationError`. The resulting
annotation looks like:

```yaml
annotations:
  images: |
    - image: docker.io/bitnami/wordpress:latest
      name: wordpress
```

`get_image_lock_file_path(chart_path)` returns the path of the chart's
`Images.lock`, and `is_remote_chart(path)` tells whether a path is an
`oci://` reference.

## Finding images in values

```python
from chartdist.values import find_image_elements_in_values_map, to_annotation

values = {
    "image": {"registry": "docker.io", "repository": "bitnami/wordpress", "tag": "latest"},
}
elements = find_image_elements_in_values_map(values)
print(elements[0].url())               # docker.io/bitnami/wordpress:latest
print(elements[0].yaml_replace_map())  # {'$.image.registry': 'docker.io', ...}
print(to_annotation(elements))
```

Each `ValuesImageElement` offers `name()`, `url()`, `to_map()` and
`yaml_replace_map()`. `to_annotation` lists each distinct image once.
`find_image_elements_in_values_file(chart_path)` does the same for the
`values.yaml` of a chart on disk.

## Loading a chart

```python
from chartdist.chart import load_chart

chart = load_chart("path/to/chart")
print(chart.name(), chart.version())
for dep in chart.dependencies():
    print(dep.chart_full_path())
for image in chart.get_annotated_images():
    print(image.name, image.image)
```

`load_chart` accepts a chart directory or a chart archive; sub-charts may be
directories or `.tgz` archives under `charts/`. A `Chart` also gives
`chart_dir()`, `lock_file_path()`, `images_dir()`, `image_artifacts_dir()`,
`abs_file_path(name)`, `file(name)` and `values_files()` (as `ChartFile`
objects), plus the parsed `metadata` and `values`. `get_chart_root` returns the
absolute chart directory for a chart directory or a file inside it.

## Carvel bundle metadata

```python
from chartdist.carvel import create_bundle_metadata

bundle = create_bundle_metadata("path/to/chart", "wordpress", "images")
print(bundle.to_yaml())
```

Chart maintainers become bundle `Author`s, chart sources become `Website`s,
and chart annotations other than the image annotation are copied into the
bundle metadata.

## Test helpers

`chartdist.sandbox.Sandbox` keeps files and directories inside a root
directory (a fresh temporary one by default) and removes them on `cleanup()`
or when used as a context manager. It offers `touch`, `temp_file`, `mkdir`,
`symlink`, `write`, `write_file`, `contains_path` and `normalize`.
`chartdist.yamlnorm.normalize_yaml` gives a canonical form of YAML text for
comparisons.

## What this package does not do

It works on charts on the local disk only. It does not pull or push charts
or container images, does not talk to any registry, does not generate or
verify `Images.lock` files, does not write Carvel images lock files, and has
no command-line tool.