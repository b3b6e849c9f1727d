from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

DEFAULT_REGISTRY = "docker.io"
DEFAULT_TAG = "latest"


def is_registry(token: str) -> bool:
    """Whether the first path component of an image names a registry host."""
    return token == "localhost" or "." in token or ":" in token


@dataclass(frozen=True)
class ImageRef:
    """A container image reference split into its parts.

    ``tag`` and ``hash`` are exclusive: a digest reference (``name@sha256:...``)
    has no tag, and a tag reference defaults to ``latest``.
    """

    registry: Optional[str]
    image: str
    tag: Optional[str] = None
    hash: Optional[str] = None

    @classmethod
    def parse(cls, s: str) -> "ImageRef":
        """Parse an image string. Never raises; malformed input parses to something."""
        parts = s.split("/", 1)
        if len(parts) == 2 and is_registry(parts[0]):
            registry, image_full = parts[0], parts[1]
        else:
            registry, image_full = DEFAULT_REGISTRY, s

        if "/" not in image_full and registry == DEFAULT_REGISTRY:
            image_full = f"library/{image_full}"

        if "@" in image_full:
            image, digest = image_full.split("@", 1)
            return cls(registry=registry, image=image, tag=None, hash=digest)

        name_tag = image_full.split(":", 1)
        tag = name_tag[1] if len(name_tag) == 2 else DEFAULT_TAG
        return cls(registry=registry, image=name_tag[0], tag=tag, hash=None)

    def __str__(self) -> str:
        out = f"{self.registry}/" if self.registry is not None else ""
        out += self.image
        if self.tag is not None:
            out += f":{self.tag}"
        elif self.hash is not None:
            out += f"@{self.hash}"
        return out
