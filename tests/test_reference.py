"""Tests for image reference parsing."""

import pytest

from image_runner.core.types import ImageReference
from image_runner.exceptions import InvalidReferenceError
from image_runner.utils.reference import parse_image_reference


@pytest.mark.parametrize(
    "reference, expected",
    [
        ("alpine", ("alpine", "latest")),
        ("alpine:3.18", ("alpine", "3.18")),
        ("ubuntu:22.04", ("ubuntu", "22.04")),
        ("busybox:latest", ("busybox", "latest")),
    ],
)
def test_parse_valid_reference(reference, expected):
    ref = parse_image_reference(reference)
    assert (ref.name, ref.tag) == expected


@pytest.mark.parametrize("reference", ["a:b:c", "alpine:3:18", "x:::"])
def test_parse_rejects_multiple_separators(reference):
    with pytest.raises(InvalidReferenceError):
        parse_image_reference(reference)


@pytest.mark.parametrize("reference", ["", ":3.18", "alpine:"])
def test_parse_rejects_empty_parts(reference):
    with pytest.raises(InvalidReferenceError):
        parse_image_reference(reference)


def test_reference_is_immutable():
    ref = parse_image_reference("alpine")
    with pytest.raises(AttributeError):
        ref.tag = "edge"


def test_reference_str():
    assert str(ImageReference("alpine")) == "alpine:latest"
    assert str(parse_image_reference("alpine:3.18")) == "alpine:3.18"
