from __future__ import annotations

import base64
from io import BytesIO

import pytest
from PIL import Image

from brand_studio.errors import NoImageReturnedError
from brand_studio.intake import read_upload
from brand_studio.providers.base import (
    GeneratedImage,
    StyleSuggestions,
    UploadedImage,
    ViralStrategy,
)


def png_bytes(color: tuple[int, int, int] = (200, 30, 30), size: tuple[int, int] = (8, 8)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


class FakeProvider:
    name = "fake"

    def __init__(self) -> None:
        self.styles = StyleSuggestions(styles=["A", "B"])
        self.strategy = ViralStrategy(needs_human=False, reason="ok", suggested_elements=("sun",))
        self.fail_styles: set[str] = set()
        self.calls: list[tuple] = []
        self.generated_count = 0

    async def analyze_strategy(self, article_text: str) -> ViralStrategy:
        self.calls.append(("analyze", article_text))
        return self.strategy

    async def suggest_styles(self, product, reference_text="", model=None) -> StyleSuggestions:
        self.calls.append(("suggest", product.filename, reference_text, model))
        return self.styles

    async def generate_image(self, params, style, assets) -> GeneratedImage:
        self.calls.append(("generate", style))
        self.generated_count += 1
        if style in self.fail_styles:
            raise NoImageReturnedError("no image")
        payload = f"{style}-{self.generated_count}".encode("utf-8")
        return GeneratedImage(style=style, image_base64=base64.b64encode(payload).decode("ascii"))

    def count(self, kind: str) -> int:
        return sum(1 for c in self.calls if c[0] == kind)


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def make_image():
    def _make(filename: str = "product.png", color: tuple[int, int, int] = (200, 30, 30)) -> UploadedImage:
        return read_upload(filename, png_bytes(color), "image/png")

    return _make
