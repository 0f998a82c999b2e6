from __future__ import annotations

import base64
import json
import logging
from typing import Any

from brand_studio import messages
from brand_studio.config import settings
from brand_studio.errors import NoImageReturnedError
from brand_studio.prompts import (
    build_attachments,
    build_generation_prompt,
    build_strategy_prompt,
    build_style_prompt,
)
from brand_studio.providers.base import (
    AssetSet,
    GeneratedImage,
    GenerationParameters,
    StyleSuggestions,
    UploadedImage,
    ViralStrategy,
)

logger = logging.getLogger(__name__)


def fallback_strategy() -> ViralStrategy:
    return ViralStrategy(
        needs_human=True,
        reason=messages.FALLBACK_STRATEGY_REASON,
        suggested_elements=(),
        fallback=True,
    )


def fallback_styles() -> StyleSuggestions:
    return StyleSuggestions(styles=list(messages.FALLBACK_STYLES), fallback=True)


class GeminiProvider:
    name = "gemini"

    def __init__(self, api_key: str) -> None:
        # Imported lazily so the app can start without the dependency installed.
        from google import genai  # type: ignore
        from google.genai import types  # type: ignore

        self._types = types
        self.client = genai.Client(api_key=api_key)

    def _image_part(self, image: UploadedImage) -> Any:
        return self._types.Part.from_bytes(data=image.data, mime_type=image.mime_type)

    async def analyze_strategy(self, article_text: str) -> ViralStrategy:
        """
        Ask the text model whether the post needs a human model. Never raises:
        any failure yields the fixed fallback record.
        """
        types = self._types
        try:
            resp = await self.client.aio.models.generate_content(
                model=settings.gemini_text_model,
                contents=[build_strategy_prompt(article_text)],
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=types.Schema(
                        type=types.Type.OBJECT,
                        properties={
                            "needsHuman": types.Schema(type=types.Type.BOOLEAN),
                            "reason": types.Schema(type=types.Type.STRING),
                            "suggestedElements": types.Schema(
                                type=types.Type.ARRAY,
                                items=types.Schema(type=types.Type.STRING),
                            ),
                        },
                        required=["needsHuman", "reason"],
                    ),
                ),
            )
            return parse_strategy(getattr(resp, "text", None))
        except Exception:
            logger.warning("Strategy analysis failed, using fallback", exc_info=True)
            return fallback_strategy()

    async def suggest_styles(
        self,
        product: UploadedImage,
        reference_text: str = "",
        model: UploadedImage | None = None,
    ) -> StyleSuggestions:
        """
        Suggest up to `settings.max_styles` style names. Never raises: any
        failure, or an empty answer, yields the fixed fallback list.
        """
        types = self._types
        contents: list[Any] = [
            build_style_prompt(reference_text, has_model=model is not None, count=settings.max_styles),
            "Product Image:",
            self._image_part(product),
        ]
        if model is not None:
            contents += ["Model Image:", self._image_part(model)]

        try:
            resp = await self.client.aio.models.generate_content(
                model=settings.gemini_text_model,
                contents=contents,
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=types.Schema(
                        type=types.Type.OBJECT,
                        properties={
                            "styles": types.Schema(
                                type=types.Type.ARRAY,
                                items=types.Schema(type=types.Type.STRING),
                            ),
                        },
                    ),
                ),
            )
            styles = parse_styles(getattr(resp, "text", None), limit=settings.max_styles)
        except Exception:
            logger.warning("Style suggestion failed, using fallback", exc_info=True)
            return fallback_styles()

        if not styles:
            logger.warning("Style suggestion returned no styles, using fallback")
            return fallback_styles()
        return StyleSuggestions(styles=styles)

    async def generate_image(
        self,
        params: GenerationParameters,
        style: str,
        assets: AssetSet,
    ) -> GeneratedImage:
        """
        One call, one image. Aspect ratio and quality travel only as prompt
        text; the returned geometry is not checked.
        """
        types = self._types
        contents: list[Any] = [build_generation_prompt(params, style, assets)]
        for label, image in build_attachments(assets):
            contents += [f"{label}:", self._image_part(image)]

        resp = await self.client.aio.models.generate_content(
            model=settings.gemini_image_model,
            contents=contents,
            config=types.GenerateContentConfig(response_modalities=["IMAGE"]),
        )

        extracted = _extract_images_from_generate_content(resp)
        if not extracted:
            raise NoImageReturnedError(messages.NO_IMAGE_RETURNED)
        data, mime = extracted[0]
        logger.info("Generated image for style %r (%d bytes)", style, len(data))
        return GeneratedImage(
            style=style,
            image_base64=base64.b64encode(data).decode("ascii"),
            mime_type=mime or "image/png",
        )


def _strip_code_fences(text: str) -> str:
    s = text.strip()
    if s.startswith("```"):
        # Remove leading fence line
        first_nl = s.find("\n")
        if first_nl != -1:
            s = s[first_nl + 1 :]
        # Remove trailing fence
        if s.rstrip().endswith("```"):
            s = s.rstrip()[:-3]
    return s.strip()


def _parse_json_object(raw_text: str | None) -> dict[str, Any]:
    if not raw_text:
        raise ValueError("empty response")
    data = json.loads(_strip_code_fences(raw_text))
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    return data


def parse_strategy(raw_text: str | None) -> ViralStrategy:
    data = _parse_json_object(raw_text)
    needs_human = data.get("needsHuman")
    if not isinstance(needs_human, bool):
        raise ValueError("needsHuman must be a boolean")
    elements = data.get("suggestedElements") or []
    if not isinstance(elements, list):
        elements = []
    return ViralStrategy(
        needs_human=needs_human,
        reason=str(data.get("reason") or "").strip(),
        suggested_elements=tuple(str(e).strip() for e in elements if str(e).strip()),
    )


def parse_styles(raw_text: str | None, limit: int = 4) -> list[str]:
    data = _parse_json_object(raw_text)
    raw = data.get("styles") or []
    if not isinstance(raw, list):
        raise ValueError("styles must be a list")
    out: list[str] = []
    for item in raw:
        s = str(item).strip()
        if s and s not in out:
            out.append(s)
    return out[:limit]


def _extract_images_from_generate_content(resp: Any) -> list[tuple[bytes, str]]:
    out: list[tuple[bytes, str]] = []
    for cand in getattr(resp, "candidates", []) or []:
        content = getattr(cand, "content", None)
        parts = getattr(content, "parts", None) or []
        for part in parts:
            inline = getattr(part, "inline_data", None)
            if not inline:
                continue
            mime = getattr(inline, "mime_type", None) or ""
            data = getattr(inline, "data", None)
            if not data:
                continue
            if mime and not mime.startswith("image/"):
                continue
            if isinstance(data, str):
                # Some transports hand back the base64 text rather than bytes.
                data = base64.b64decode(data)
            out.append((bytes(data), mime))
    return out
