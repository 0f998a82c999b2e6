from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

AspectRatio = str  # "1:1" | "9:16" | "16:9"
ImageQuality = str  # "4K" | "8K" | "16K"
ModelSelection = str  # "female-asian" | "male-asian" | "female-european" | "male-european"

ASPECT_RATIOS: tuple[str, ...] = ("1:1", "9:16", "16:9")
IMAGE_QUALITIES: tuple[str, ...] = ("4K", "8K", "16K")
MODEL_SELECTIONS: tuple[str, ...] = ("female-asian", "male-asian", "female-european", "male-european")


class AssetSlot(str, Enum):
    MODEL = "model"
    PRODUCT = "product"
    LOGO = "logo"


@dataclass(frozen=True)
class UploadedImage:
    filename: str
    data: bytes
    base64: str
    mime_type: str


@dataclass(frozen=True)
class AssetSet:
    product: UploadedImage
    model: UploadedImage | None = None
    logo: UploadedImage | None = None


@dataclass(frozen=True)
class ViralStrategy:
    needs_human: bool
    reason: str
    suggested_elements: tuple[str, ...] = ()
    # True when the analyzer could not reach or parse the model.
    fallback: bool = False


@dataclass(frozen=True)
class StyleSuggestions:
    styles: list[str]
    fallback: bool = False


@dataclass(frozen=True)
class GeneratedImage:
    style: str
    image_base64: str
    mime_type: str = "image/png"


@dataclass
class GenerationParameters:
    aspect_ratio: AspectRatio = "1:1"
    quality: ImageQuality = "4K"
    overlay_text: str = ""
    product_dimensions: str = ""
    article_text: str = ""
    model_selection: ModelSelection = "female-asian"


class StudioProvider(Protocol):
    name: str

    async def analyze_strategy(self, article_text: str) -> ViralStrategy: ...

    async def suggest_styles(
        self,
        product: UploadedImage,
        reference_text: str = "",
        model: UploadedImage | None = None,
    ) -> StyleSuggestions: ...

    async def generate_image(
        self,
        params: GenerationParameters,
        style: str,
        assets: AssetSet,
    ) -> GeneratedImage: ...
