import pytest

from policy_harness.image_ref import ImageRef, is_registry


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("alpine:3.10", ImageRef("docker.io", "library/alpine", "3.10", None)),
        ("library/nginx", ImageRef("docker.io", "library/nginx", "latest", None)),
        ("fake_project/fake_image@fake_hash", ImageRef("docker.io", "fake_project/fake_image", None, "fake_hash")),
        ("fake_project/fake_image@", ImageRef("docker.io", "fake_project/fake_image", None, "")),
        ("fake_project/fake_image@sha256:", ImageRef("docker.io", "fake_project/fake_image", None, "sha256:")),
    ],
)
def test_parse_dockerhub(raw, expected):
    assert ImageRef.parse(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("quay.io/prometheus/node-exporter:v0.18.1", ImageRef("quay.io", "prometheus/node-exporter", "v0.18.1")),
        ("gcr.io/fake_project/fake_image:fake_tag", ImageRef("gcr.io", "fake_project/fake_image", "fake_tag")),
        ("gcr.io/fake_project/fake_image", ImageRef("gcr.io", "fake_project/fake_image", "latest")),
        ("gcr.io/fake_image", ImageRef("gcr.io", "fake_image", "latest")),
        ("quay.io/fake_project/fake_image@fake_hash", ImageRef("quay.io", "fake_project/fake_image", None, "fake_hash")),
    ],
)
def test_parse_third_party_registry(raw, expected):
    assert ImageRef.parse(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("localhost/foo", ImageRef("localhost", "foo", "latest")),
        ("localhost/foo:bar", ImageRef("localhost", "foo", "bar")),
        ("localhost/foo/bar", ImageRef("localhost", "foo/bar", "latest")),
        ("localhost/foo/bar:baz", ImageRef("localhost", "foo/bar", "baz")),
    ],
)
def test_parse_localhost(raw, expected):
    assert ImageRef.parse(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("example.com:1234/foo", ImageRef("example.com:1234", "foo", "latest")),
        ("example.com:1234/foo:bar", ImageRef("example.com:1234", "foo", "bar")),
        ("example.com:1234/foo/bar", ImageRef("example.com:1234", "foo/bar", "latest")),
        ("example.com:1234/foo/bar:baz", ImageRef("example.com:1234", "foo/bar", "baz")),
        # arbitrarily nested paths are fine outside Docker Hub
        ("example.com:1234/foo/bar/baz:qux", ImageRef("example.com:1234", "foo/bar/baz", "qux")),
    ],
)
def test_parse_registry_with_port(raw, expected):
    assert ImageRef.parse(raw) == expected


def test_is_registry():
    assert is_registry("localhost")
    assert is_registry("quay.io")
    assert is_registry("registry:5000")
    assert not is_registry("library")


def test_str_renders_normalised_reference():
    assert str(ImageRef.parse("nginx")) == "docker.io/library/nginx:latest"
    assert str(ImageRef.parse("gcr.io/proj/img@sha256:abc")) == "gcr.io/proj/img@sha256:abc"
    assert str(ImageRef(None, "img", None, None)) == "img"
