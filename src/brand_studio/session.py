from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Callable

from brand_studio import messages
from brand_studio.config import settings
from brand_studio.errors import (
    BatchGenerationError,
    BusyError,
    RegenerationError,
    StudioError,
    ValidationError,
)
from brand_studio.providers.base import (
    ASPECT_RATIOS,
    IMAGE_QUALITIES,
    MODEL_SELECTIONS,
    AssetSet,
    AssetSlot,
    GeneratedImage,
    GenerationParameters,
    StudioProvider,
    UploadedImage,
    ViralStrategy,
)

logger = logging.getLogger(__name__)

_TEXT_FIELDS = ("overlay_text", "product_dimensions", "article_text")
_CHOICE_FIELDS: dict[str, tuple[str, ...]] = {
    "aspect_ratio": ASPECT_RATIOS,
    "quality": IMAGE_QUALITIES,
    "model_selection": MODEL_SELECTIONS,
}


class StudioPhase(str, Enum):
    IDLE = "idle"
    ANALYZING_STRATEGY = "analyzing_strategy"
    SUGGESTING_STYLES = "suggesting_styles"
    READY_TO_GENERATE = "ready_to_generate"
    GENERATING = "generating"
    READY_WITH_RESULTS = "ready_with_results"
    REGENERATING_ONE = "regenerating_one"


@dataclass
class StudioSession:
    session_id: str
    model_image: UploadedImage | None = None
    product_image: UploadedImage | None = None
    logo_image: UploadedImage | None = None
    params: GenerationParameters = field(default_factory=GenerationParameters)

    suggested_styles: list[str] = field(default_factory=list)
    strategy: ViralStrategy | None = None
    model_upload_override: bool = False

    generated: list[GeneratedImage] = field(default_factory=list)
    selected_style: str | None = None

    style_loading: bool = False
    strategy_loading: bool = False
    is_generating: bool = False
    regenerating_style: str | None = None
    loading_message: str = ""

    error: str | None = None
    advisory: str | None = None

    # Bumped on every suggestion request; only the latest completion is applied.
    suggestion_seq: int = 0
    # Bumped on reset; completions from an older epoch are dropped.
    epoch: int = 0

    def get_asset(self, slot: AssetSlot) -> UploadedImage | None:
        return getattr(self, f"{slot.value}_image")

    def put_asset(self, slot: AssetSlot, image: UploadedImage | None) -> None:
        setattr(self, f"{slot.value}_image", image)

    def asset_set(self) -> AssetSet:
        if self.product_image is None:
            raise ValidationError(messages.PRODUCT_REQUIRED)
        return AssetSet(product=self.product_image, model=self.model_image, logo=self.logo_image)

    @property
    def selected(self) -> GeneratedImage | None:
        if self.selected_style is None:
            return None
        return next((g for g in self.generated if g.style == self.selected_style), None)

    def find_generated(self, style: str) -> GeneratedImage | None:
        return next((g for g in self.generated if g.style == style), None)

    @property
    def phase(self) -> StudioPhase:
        if self.is_generating:
            return StudioPhase.GENERATING
        if self.regenerating_style is not None:
            return StudioPhase.REGENERATING_ONE
        if self.strategy_loading:
            return StudioPhase.ANALYZING_STRATEGY
        if self.style_loading:
            return StudioPhase.SUGGESTING_STYLES
        if self.generated:
            return StudioPhase.READY_WITH_RESULTS
        if self.product_image is not None and self.suggested_styles:
            return StudioPhase.READY_TO_GENERATE
        return StudioPhase.IDLE


class StudioOrchestrator:
    """
    Owns every transition of a StudioSession.

    All mutation happens on the event loop between awaits, so completion
    handlers never interleave; staleness is handled with the session's
    sequence and epoch counters rather than locks.
    """

    def __init__(
        self,
        provider: StudioProvider | None = None,
        *,
        provider_factory: Callable[[], StudioProvider] | None = None,
        max_styles: int | None = None,
    ) -> None:
        if provider is None and provider_factory is None:
            raise ValueError("provider or provider_factory is required")
        self._provider = provider
        self._provider_factory = provider_factory
        self.max_styles = max_styles or settings.max_styles

    @property
    def provider(self) -> StudioProvider:
        if self._provider is None:
            self._provider = self._provider_factory()
        return self._provider

    def _fail(self, session: StudioSession, exc: StudioError) -> StudioError:
        session.error = exc.message
        return exc

    # -- assets -----------------------------------------------------------

    async def set_asset(self, session: StudioSession, slot: AssetSlot, image: UploadedImage) -> None:
        session.put_asset(slot, image)
        session.error = None
        logger.info("Session %s: %s image set (%s)", session.session_id, slot.value, image.mime_type)
        if slot in (AssetSlot.PRODUCT, AssetSlot.MODEL):
            await self.refresh_styles(session)

    async def clear_asset(self, session: StudioSession, slot: AssetSlot) -> None:
        if session.get_asset(slot) is None:
            return
        session.put_asset(slot, None)
        if slot in (AssetSlot.PRODUCT, AssetSlot.MODEL):
            await self.refresh_styles(session)

    # -- parameters -------------------------------------------------------

    def update_parameters(self, session: StudioSession, **changes: Any) -> GenerationParameters:
        """Validate and apply parameter changes. Never calls out, not even for article text."""
        updates: dict[str, Any] = {}
        for name, value in changes.items():
            if value is None:
                continue
            if name in _CHOICE_FIELDS:
                if value not in _CHOICE_FIELDS[name]:
                    raise self._fail(session, ValidationError(messages.invalid_choice(name, str(value))))
                updates[name] = value
            elif name in _TEXT_FIELDS:
                updates[name] = str(value)
            else:
                raise self._fail(session, ValidationError(messages.invalid_choice(name, str(value))))
        session.params = replace(session.params, **updates)
        return session.params

    def set_model_upload_override(self, session: StudioSession, enabled: bool) -> None:
        session.model_upload_override = bool(enabled)

    def show_model_upload(self, session: StudioSession) -> bool:
        if session.model_upload_override:
            return True
        return session.strategy is None or session.strategy.needs_human

    # -- suggestion & strategy -------------------------------------------

    async def refresh_styles(self, session: StudioSession) -> list[str] | None:
        """
        Ask for style suggestions for the current product/model/article.

        Returns the applied list, or None when a newer request (or a reset)
        superseded this one before it completed.
        """
        session.suggestion_seq += 1
        seq = session.suggestion_seq
        epoch = session.epoch

        product = session.product_image
        if product is None:
            session.suggested_styles = []
            session.style_loading = False
            return []

        provider = self.provider
        session.style_loading = True
        try:
            result = await provider.suggest_styles(
                product,
                reference_text=session.params.article_text,
                model=session.model_image,
            )
        finally:
            if seq == session.suggestion_seq and epoch == session.epoch:
                session.style_loading = False

        if seq != session.suggestion_seq or epoch != session.epoch:
            logger.info("Session %s: discarding stale style suggestions (#%d)", session.session_id, seq)
            return None

        session.suggested_styles = list(result.styles[: self.max_styles])
        session.advisory = messages.STYLE_FALLBACK_ADVISORY if result.fallback else None
        return session.suggested_styles

    async def analyze_strategy(self, session: StudioSession) -> ViralStrategy | None:
        article = session.params.article_text.strip()
        if not article:
            raise self._fail(session, ValidationError(messages.ARTICLE_REQUIRED))

        provider = self.provider
        epoch = session.epoch
        session.strategy_loading = True
        session.error = None
        try:
            strategy = await provider.analyze_strategy(article)
        finally:
            if epoch == session.epoch:
                session.strategy_loading = False

        if epoch != session.epoch:
            return None

        session.strategy = strategy
        if strategy.fallback:
            session.advisory = messages.STRATEGY_FALLBACK_ADVISORY
            return strategy

        session.advisory = None
        logger.info("Session %s: strategy needs_human=%s", session.session_id, strategy.needs_human)
        if session.product_image is not None:
            await self.refresh_styles(session)
        return strategy

    # -- generation -------------------------------------------------------

    async def generate_batch(self, session: StudioSession) -> list[GeneratedImage]:
        """
        Generate one image per suggested style (top `max_styles`) in parallel.

        All-or-nothing: the displayed results change only when every call
        succeeds. Returns the new results, or [] if a reset happened meanwhile.
        """
        if session.is_generating:
            raise self._fail(session, BusyError(messages.BATCH_IN_FLIGHT))
        if session.product_image is None:
            raise self._fail(session, ValidationError(messages.PRODUCT_REQUIRED))
        styles = list(session.suggested_styles[: self.max_styles])
        if len(styles) < 1:
            raise self._fail(session, ValidationError(messages.NO_STYLES))

        provider = self.provider
        assets = session.asset_set()
        params = replace(session.params)
        epoch = session.epoch

        session.is_generating = True
        session.loading_message = messages.LOADING_MESSAGES[0]
        session.error = None
        logger.info("Session %s: generating %d styles: %s", session.session_id, len(styles), styles)

        results = await asyncio.gather(
            *(provider.generate_image(params, style, assets) for style in styles),
            return_exceptions=True,
        )

        if epoch != session.epoch:
            logger.info("Session %s: batch finished after reset, ignored", session.session_id)
            return []

        session.is_generating = False
        session.loading_message = ""
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            for style, r in zip(styles, results):
                if isinstance(r, BaseException):
                    logger.error("Session %s: style %r failed: %r", session.session_id, style, r)
            raise self._fail(session, BatchGenerationError(messages.BATCH_FAILED)) from failures[0]

        generated = [img if img.style == style else replace(img, style=style) for style, img in zip(styles, results)]
        session.generated = generated
        session.selected_style = generated[0].style
        return generated

    async def regenerate(self, session: StudioSession, style: str) -> GeneratedImage | None:
        """
        Replace the single entry for `style`, leaving every other entry as the
        same object. One regeneration at a time per session. Returns None when
        the session was reset while the call was in flight, success or not.
        """
        if session.product_image is None:
            raise self._fail(session, ValidationError(messages.PRODUCT_REQUIRED))
        if session.regenerating_style is not None:
            raise self._fail(session, BusyError(messages.REGEN_IN_FLIGHT))
        if session.find_generated(style) is None:
            raise self._fail(session, ValidationError(messages.unknown_style(style)))

        provider = self.provider
        assets = session.asset_set()
        params = replace(session.params)
        epoch = session.epoch

        session.regenerating_style = style
        session.error = None
        try:
            new_image = await provider.generate_image(params, style, assets)
        except Exception as exc:
            logger.error("Session %s: regeneration of %r failed: %r", session.session_id, style, exc)
            if epoch != session.epoch:
                return None
            session.regenerating_style = None
            raise self._fail(session, RegenerationError(messages.regen_failed(style))) from exc

        if epoch != session.epoch:
            return None

        if new_image.style != style:
            new_image = replace(new_image, style=style)
        session.generated = [new_image if g.style == style else g for g in session.generated]
        session.regenerating_style = None
        return new_image

    def select(self, session: StudioSession, style: str) -> GeneratedImage:
        match = session.find_generated(style)
        if match is None:
            raise self._fail(session, ValidationError(messages.unknown_style(style)))
        session.selected_style = style
        return match

    def reset(self, session: StudioSession) -> None:
        epoch = session.epoch + 1
        seq = session.suggestion_seq + 1
        fresh = StudioSession(session_id=session.session_id, epoch=epoch, suggestion_seq=seq)
        for f in fields(fresh):
            setattr(session, f.name, getattr(fresh, f.name))
        logger.info("Session %s: reset", session.session_id)


def session_to_dict(session: StudioSession, orchestrator: StudioOrchestrator | None = None) -> dict[str, Any]:
    def asset(img: UploadedImage | None) -> dict[str, Any] | None:
        if img is None:
            return None
        return {"filename": img.filename, "mime_type": img.mime_type, "size": len(img.data)}

    strategy = session.strategy
    show_model = (
        orchestrator.show_model_upload(session)
        if orchestrator is not None
        else session.model_upload_override or strategy is None or strategy.needs_human
    )
    return {
        "session_id": session.session_id,
        "phase": session.phase.value,
        "assets": {slot.value: asset(session.get_asset(slot)) for slot in AssetSlot},
        "params": {
            "aspect_ratio": session.params.aspect_ratio,
            "quality": session.params.quality,
            "overlay_text": session.params.overlay_text,
            "product_dimensions": session.params.product_dimensions,
            "article_text": session.params.article_text,
            "model_selection": session.params.model_selection,
        },
        "suggested_styles": list(session.suggested_styles),
        "strategy": None
        if strategy is None
        else {
            "needsHuman": strategy.needs_human,
            "reason": strategy.reason,
            "suggestedElements": list(strategy.suggested_elements),
            "fallback": strategy.fallback,
        },
        "show_model_upload": show_model,
        "model_upload_override": session.model_upload_override,
        "generated": [
            {"style": g.style, "mime_type": g.mime_type, "image": g.image_base64} for g in session.generated
        ],
        "selected_style": session.selected_style,
        "style_loading": session.style_loading,
        "strategy_loading": session.strategy_loading,
        "is_generating": session.is_generating,
        "regenerating_style": session.regenerating_style,
        "loading_message": session.loading_message,
        "error": session.error,
        "advisory": session.advisory,
    }
