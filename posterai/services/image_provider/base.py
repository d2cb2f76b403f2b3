from __future__ import annotations

from dataclasses import dataclass
from typing import List, Protocol, Union

from posterai.services.images import ImageRef

Part = Union[str, ImageRef]


@dataclass
class GeneratedImage:
    data: bytes
    mime_type: str = "image/png"


class ImageClient(Protocol):
    def generate_image(self, parts: List[Part], *, model: str) -> GeneratedImage:
        ...

    def generate_text(self, parts: List[Part], *, model: str, json_output: bool = False) -> str:
        ...
