"""Image reference parsing."""

from ..core.types import ImageReference
from ..exceptions import InvalidReferenceError


def parse_image_reference(reference: str) -> ImageReference:
    """이미지 참조 문자열을 이름과 태그로 파싱합니다.

    Args:
        reference: ``name[:tag]`` 형식의 이미지 참조
            - 예: "alpine", "alpine:3.18", "ubuntu:22.04"

    Returns:
        ImageReference: 이름과 태그 (태그가 없으면 "latest")

    Raises:
        InvalidReferenceError: ``:`` 구분자가 두 개 이상이거나 이름/태그가 비어 있는 경우

    Examples:
        # 태그 없는 경우 (기본값 사용)
        ref = parse_image_reference("alpine")
        # 결과: ImageReference(name="alpine", tag="latest")

        # 태그 포함
        ref = parse_image_reference("alpine:3.18")
        # 결과: ImageReference(name="alpine", tag="3.18")
    """
    parts = reference.split(":")
    if len(parts) > 2:
        raise InvalidReferenceError(f"Invalid image reference: {reference!r}")

    name = parts[0]
    if not name:
        raise InvalidReferenceError(f"Image reference has no name: {reference!r}")

    if len(parts) == 1:
        return ImageReference(name=name)

    tag = parts[1]
    if not tag:
        raise InvalidReferenceError(f"Image reference has an empty tag: {reference!r}")

    return ImageReference(name=name, tag=tag)
