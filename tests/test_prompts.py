from __future__ import annotations

import re
import unicodedata

from brand_studio.prompts import (
    build_attachments,
    build_generation_prompt,
    build_strategy_prompt,
    build_style_prompt,
    detect_text_language,
)
from brand_studio.providers.base import AssetSet, GenerationParameters


def _section_titles(prompt: str) -> list[str]:
    return re.findall(r"^### \d+\. (.+)$", prompt, flags=re.MULTILINE)


def test_minimal_prompt_omits_optional_blocks(make_image) -> None:
    assets = AssetSet(product=make_image())
    prompt = build_generation_prompt(GenerationParameters(), "Modern & Minimalist", assets)

    assert "**ASPECT RATIO: 1:1**" in prompt
    assert "4096x4096" in prompt
    assert _section_titles(prompt) == ["Scene & Style", "Model (KOL)", "Product", "Image Quality"]
    assert "Logo Image" not in prompt
    assert "Overlay Text" not in prompt
    assert "Real-World Product Dimensions" not in prompt
    assert "Narrative Context" not in prompt
    assert prompt.rstrip().endswith("**ASPECT RATIO: 1:1** directive.")


def test_all_blocks_are_numbered_contiguously(make_image) -> None:
    assets = AssetSet(product=make_image(), model=make_image("model.png"), logo=make_image("logo.png"))
    params = GenerationParameters(
        aspect_ratio="9:16",
        quality="16K",
        overlay_text="Summer sale",
        product_dimensions="15cm tall",
        article_text="A beach picnic story.",
    )
    prompt = build_generation_prompt(params, "Beach Vibes", assets)

    titles = _section_titles(prompt)
    assert titles[3] == "Logo"
    assert titles[-2].startswith("Overlay Text")
    assert titles[-1].startswith("Real-World Product Dimensions")
    numbers = [int(n) for n in re.findall(r"^### (\d+)\.", prompt, flags=re.MULTILINE)]
    assert numbers == list(range(1, len(titles) + 1))
    assert "2304x4096" in prompt
    assert "16K" in prompt and "hyper-photorealism" in prompt
    assert '"15cm tall"' in prompt
    assert "A beach picnic story." in prompt


def test_model_image_preserves_identity_instead_of_persona(make_image) -> None:
    with_model = build_generation_prompt(
        GenerationParameters(model_selection="male-european"),
        "Urban",
        AssetSet(product=make_image(), model=make_image("model.png")),
    )
    assert "exact facial identity" in with_model
    assert "Male European model" not in with_model

    without_model = build_generation_prompt(
        GenerationParameters(model_selection="male-european"),
        "Urban",
        AssetSet(product=make_image()),
    )
    assert "**Male European model**" in without_model
    assert "facial identity" not in without_model
    for prompt in (with_model, without_model):
        assert "MUST NOT** cover or hide any part of the product" in prompt


def test_product_and_logo_directives(make_image) -> None:
    prompt = build_generation_prompt(
        GenerationParameters(), "Luxe", AssetSet(product=make_image(), logo=make_image("logo.png"))
    )
    assert "PIXEL-PERFECT" in prompt
    assert "digitally unbox" in prompt
    assert "**top-left corner**" in prompt
    assert "without its original background" in prompt


def test_vietnamese_overlay_text_requires_diacritic_fidelity(make_image) -> None:
    prompt = build_generation_prompt(
        GenerationParameters(overlay_text="Ưu đãi mùa hè"), "Hè", AssetSet(product=make_image())
    )
    assert '"Ưu đãi mùa hè"' in prompt
    assert "This is **Vietnamese** text" in prompt
    assert "**MUST NOT** cover the model's face or the main product" in prompt
    assert "20% of the total image area" in prompt
    assert "bottom of the image" in prompt


def test_ascii_overlay_text_has_no_language_mandate(make_image) -> None:
    prompt = build_generation_prompt(
        GenerationParameters(overlay_text="BIG SALE"), "Bold", AssetSet(product=make_image())
    )
    assert "Language & Font Mandate" not in prompt


def test_blank_optional_inputs_are_treated_as_absent(make_image) -> None:
    params = GenerationParameters(overlay_text="   ", product_dimensions="\n", article_text=" ")
    prompt = build_generation_prompt(params, "Calm", AssetSet(product=make_image()))
    assert len(_section_titles(prompt)) == 4


def test_detect_text_language() -> None:
    assert detect_text_language("Hello") is None
    assert detect_text_language("Giảm giá 50%") == "Vietnamese"
    assert detect_text_language("Sale mùa hè") == "Vietnamese"
    assert detect_text_language(unicodedata.normalize("NFD", "Sale mùa hè")) == "Vietnamese"
    assert detect_text_language("Rebajas de año") == "non-English"
    assert detect_text_language("Sommer Rabatt für alle") == "non-English"
    assert detect_text_language("SALE 🔥") == "non-English"


def test_overlay_with_only_tone_marks_gets_vietnamese_mandate(make_image) -> None:
    prompt = build_generation_prompt(
        GenerationParameters(overlay_text="Sale mùa hè"), "Hè", AssetSet(product=make_image())
    )
    assert "This is **Vietnamese** text" in prompt
    assert "This text is not in English" not in prompt


def test_attachments_follow_model_product_logo_order(make_image) -> None:
    product = make_image("product.png")
    assets = AssetSet(product=product, model=make_image("model.png"), logo=make_image("logo.png"))
    labels = [label for label, _ in build_attachments(assets)]
    assert labels == ["Model Image", "Product Image", "Logo Image"]

    only_product = build_attachments(AssetSet(product=product))
    assert only_product == [("Product Image", product)]


def test_style_prompt_ranks_article_over_model_over_product() -> None:
    prompt = build_style_prompt("Tết sum vầy", has_model=True, count=4)
    article_pos = prompt.index("reference article below is the PRIMARY source")
    model_pos = prompt.index("model image sets the vibe")
    product_pos = prompt.index("ONLY to identify what the product is")
    assert article_pos < model_pos < product_pos
    assert "Tết sum vầy" in prompt

    bare = build_style_prompt()
    assert "PRIMARY source" not in bare
    assert "model image" not in bare
    assert "1. The product image" in bare


def test_strategy_prompt_asks_for_json_keys() -> None:
    prompt = build_strategy_prompt("  Flash sale cuối tuần  ")
    for key in ("needsHuman", "reason", "suggestedElements"):
        assert key in prompt
    assert '"""Flash sale cuối tuần"""' in prompt
