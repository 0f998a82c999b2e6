from __future__ import annotations

import unicodedata

from brand_studio.providers.base import AssetSet, GenerationParameters, UploadedImage

ASPECT_GEOMETRY: dict[str, tuple[str, str]] = {
    "1:1": ("a perfect square", "4096x4096"),
    "9:16": ("tall portrait", "2304x4096"),
    "16:9": ("wide landscape", "4096x2304"),
}

QUALITY_DESCRIPTORS: dict[str, str] = {
    "4K": "crisp 4K commercial photography, sharp focus, clean realistic textures",
    "8K": "ultra-detailed 8K photorealism, studio-grade lighting, micro-detail on surfaces and skin",
    "16K": "maximum-fidelity 16K hyper-photorealism, flawless textures, print-ready clarity",
}

PERSONA_DESCRIPTIONS: dict[str, str] = {
    "female-asian": "Female Asian model",
    "male-asian": "Male Asian model",
    "female-european": "Female European model",
    "male-european": "Male European model",
}

# Every non-ASCII letter of the Vietnamese alphabet, lowercase.
_VIETNAMESE_LETTERS = set(
    "àáâãèéêìíòóôõùúýăđĩũơư"
    "ạảấầẩẫậắằẳẵặẹẻẽếềểễệỉịọỏốồổỗộớờởỡợụủứừửữựỳỵỷỹ"
)

LONG_TEXT_THRESHOLD = 60


def detect_text_language(text: str) -> str | None:
    """
    None when the text is plain ASCII (the model's default rendering language).
    "Vietnamese" when every accented letter belongs to the Vietnamese alphabet,
    so "Sale mùa hè" qualifies even without ă/đ/ơ/ư. "non-English" otherwise.
    """
    if all(ord(ch) < 128 for ch in text):
        return None
    accented = {ch for ch in unicodedata.normalize("NFC", text).lower() if ord(ch) >= 128 and ch.isalpha()}
    if accented and accented <= _VIETNAMESE_LETTERS:
        return "Vietnamese"
    return "non-English"


def build_attachments(assets: AssetSet) -> list[tuple[str, UploadedImage]]:
    out: list[tuple[str, UploadedImage]] = []
    if assets.model is not None:
        out.append(("Model Image", assets.model))
    out.append(("Product Image", assets.product))
    if assets.logo is not None:
        out.append(("Logo Image", assets.logo))
    return out


def _aspect_directive(aspect_ratio: str) -> str:
    shape, pixels = ASPECT_GEOMETRY.get(aspect_ratio, ("the requested shape", "the matching geometry"))
    return (
        "**[-- PRIMARY RENDER DIRECTIVE --]**\n"
        f"**ASPECT RATIO: {aspect_ratio}**\n"
        "This directive is the highest priority. The final output image geometry **MUST** match "
        "this aspect ratio exactly.\n"
        f"- The image must be {shape} (e.g., {pixels}).\n"
        "This is a non-negotiable technical requirement. Failure to adhere to this will result in a failed task.\n"
        "**[-- END DIRECTIVE --]**"
    )


def _scene_block(style: str, article_text: str) -> list[str]:
    lines = [f'- Create a visually stunning background scene that perfectly embodies the theme: "{style}".']
    article = article_text.strip()
    if article:
        lines += [
            "- **Narrative Context:** The scene must tell the story of the following reference article. "
            "Its setting, mood, and props take precedence over generic interpretations of the theme.",
            f'  - **ARTICLE:** """{article}"""',
        ]
    return lines


def _model_block(style: str, has_model: bool, model_selection: str) -> list[str]:
    if has_model:
        lines = [
            '- **Source:** Use the person from the "Model Image".',
            "- **Fidelity:** You **MUST** preserve the model's exact facial identity. "
            "This is the most critical instruction.",
            "- **Flexibility:** You **MAY** creatively adjust their pose, expression, hairstyle, and "
            "clothing to fit the theme naturally.",
        ]
    else:
        persona = PERSONA_DESCRIPTIONS.get(model_selection, PERSONA_DESCRIPTIONS["female-asian"])
        lines = [
            f"- **Action:** Generate a new, professional, and photorealistic **{persona}**.",
            "- **Context:** The generated model's appearance and style must be perfectly suited to the "
            f'product and the overall theme: "{style}".',
            "- **Style:** The model should look natural, engaging, and appealing to the target audience.",
        ]
    lines += [
        "- **Hand & Product Interaction:** If the model holds or touches the product, the grip must be "
        "elegant and natural.",
        "  - Hands and fingers **MUST NOT** cover or hide any part of the product, its label, or the logo.",
    ]
    return lines


def _product_block() -> list[str]:
    return [
        '- If the "Product Image" contains packaging, digitally unbox it and use **ONLY the product itself**. '
        "If it is not packaged, use it as-is.",
        "- The product in the final image **MUST BE a LOCKED, UNEDITABLE, PIXEL-PERFECT ELEMENT**. It must be "
        "an exact, unaltered representation of the original product. Do not redraw, embellish, or "
        "reinterpret it. Treat it as a pre-rendered asset to be perfectly composited into the scene.",
    ]


def _logo_block() -> list[str]:
    return [
        '- The "Logo Image" **MUST** be placed in the **top-left corner**.',
        "- The logo must be placed cleanly, without its original background.",
        "- Do not distort, recolor, or crop the logo; keep its original proportions.",
    ]


def _quality_block(quality: str) -> list[str]:
    descriptor = QUALITY_DESCRIPTORS.get(quality, QUALITY_DESCRIPTORS["4K"])
    return [
        f"- **Resolution:** Render the final image in the highest possible fidelity, corresponding to "
        f"**{quality}** quality: {descriptor}.",
    ]


def _overlay_text_block(text: str) -> list[str]:
    lines = [
        "- **Source Text:** The following string **MUST** be rendered exactly as written, without any "
        "character substitution or omission.",
        f'  - **TEXT:** "{text}"',
    ]
    language = detect_text_language(text)
    if language == "Vietnamese":
        lines.append(
            "- **Language & Font Mandate:** This is **Vietnamese** text. You **MUST** use a high-quality, "
            "professional font (such as Arial, Helvetica, or a similar clean sans-serif) that has **100% full "
            "support for Vietnamese diacritics (dấu)**. The rendering of accented characters (e.g., ă, â, đ, "
            "ê, ô, ơ, ư, à, á, ạ, ả, ã) must be perfect. Any font that cannot render these characters "
            "correctly is forbidden."
        )
    elif language is not None:
        lines.append(
            "- **Language & Font Mandate:** This text is not in English. You **MUST** use a professional font "
            "with full support for every accent, diacritic, and special character it contains, and render "
            "each of them exactly."
        )
    lines += [
        "- **Integrity:** The text is a core part of the design. Do not misspell, alter, or omit any part of it.",
        "- **Placement Rule:** Intelligently place the text in an open, non-distracting area of the image "
        "(e.g., a clear sky, a simple wall). The text **MUST NOT** cover the model's face or the main product.",
        "- **Sizing Rule:** The text block should occupy approximately 20% of the total image area.",
        "- **Long Text Fallback:** If the text is long and a suitable open area cannot be found, place the "
        "text block cleanly at the bottom of the image, below the model.",
    ]
    if len(text) > LONG_TEXT_THRESHOLD:
        lines.append("  - This text is long: prefer the bottom placement unless a large open area is available.")
    return lines


def _scale_block(dimensions: str) -> list[str]:
    return [
        f'- **User Specified Dimensions:** The user has explicitly stated the product\'s physical size is: "{dimensions}".',
        "- **Scaling Requirement:** You **MUST** scale the product in the generated image to match these "
        "real-world dimensions relative to the human model and the environment.",
        "- **Logic:**",
        '  - If the size is small (e.g., "5cm", "handheld"), it should fit naturally in a hand or look small on a table.',
        '  - If the size is large (e.g., "1 meter"), it should appear large.',
        "  - **Override:** Disregard any previous sizing assumptions. This dimension is the absolute truth.",
        "- **Perspective:** Ensure the depth of field and perspective respect this object size.",
    ]


def build_generation_prompt(params: GenerationParameters, style: str, assets: AssetSet) -> str:
    """
    Assemble the instruction document for one generated variant.

    Optional sections (logo, overlay text, real-world scale) are left out
    entirely when their input is absent, and the remaining sections are
    numbered contiguously.
    """
    sections: list[tuple[str, list[str]]] = [
        ("Scene & Style", _scene_block(style, params.article_text)),
        ("Model (KOL)", _model_block(style, assets.model is not None, params.model_selection)),
        ("Product", _product_block()),
    ]
    if assets.logo is not None:
        sections.append(("Logo", _logo_block()))
    sections.append(("Image Quality", _quality_block(params.quality)))

    overlay = params.overlay_text.strip()
    if overlay:
        sections.append(("Overlay Text (CRITICAL FIDELITY REQUIREMENT)", _overlay_text_block(overlay)))
    dimensions = params.product_dimensions.strip()
    if dimensions:
        sections.append(("Real-World Product Dimensions (MANDATORY PHYSICS & SCALE)", _scale_block(dimensions)))

    parts = [
        _aspect_directive(params.aspect_ratio),
        "You are a world-class AI art director creating a single, stunning, promotional image. "
        "Follow these instructions precisely.",
    ]
    for idx, (title, lines) in enumerate(sections, start=1):
        parts.append(f"### {idx}. {title}\n" + "\n".join(lines))

    inputs = "\n".join(f"- {label}" for label, _ in build_attachments(assets))
    parts.append(f"**Input Assets Provided:**\n{inputs}")
    parts.append("Combine all elements into one cohesive, beautiful, professional image.")
    parts.append(f"**Final Confirmation:** Acknowledge and apply the **ASPECT RATIO: {params.aspect_ratio}** directive.")
    return "\n\n".join(parts)


def build_strategy_prompt(article_text: str) -> str:
    return (
        "You are a social-media growth strategist. Read the marketing article below and decide how the "
        "promotional image for it should be built to go viral.\n"
        "Return STRICT JSON only (no markdown) with keys:\n"
        "- needsHuman: boolean, true if a human model (KOL) would make the post noticeably more engaging\n"
        "- reason: string, one or two sentences explaining the decision, written in Vietnamese\n"
        "- suggestedElements: [string], up to 5 concrete visual elements to include, written in Vietnamese\n"
        f'\nArticle:\n"""{article_text.strip()}"""\n'
    )


def build_style_prompt(reference_text: str = "", has_model: bool = False, count: int = 4) -> str:
    """
    Instruction for the style suggester. Priority: reference narrative, then
    the model photo's vibe, then the product photo (object class only).
    """
    priorities: list[str] = []
    reference = reference_text.strip()
    if reference:
        priorities.append(
            "The reference article below is the PRIMARY source. Styles must express its story, setting, and mood."
        )
    if has_model:
        priorities.append(
            "The model image sets the vibe (fashion, attitude, age group). It ranks below the article, "
            "above the product photo."
        )
    priorities.append(
        "The product image is used ONLY to identify what the product is and its category. Ignore its "
        "incidental lighting, background, and packaging."
    )
    ranked = "\n".join(f"{i}. {p}" for i, p in enumerate(priorities, start=1))

    prompt = (
        "You are a professional marketing and branding expert. Suggest "
        f"{count} distinct, highly creative, and commercially appealing style names for a promotional banner.\n"
        f"\n**Priority of inputs (highest first):**\n{ranked}\n"
        "\n**Output rules:**\n"
        "- Each style is a short, evocative phrase (2-4 words), written in Vietnamese.\n"
        "- Styles must be clearly different from each other.\n"
        'Return STRICT JSON only: {"styles": [string, ...]}\n'
    )
    if reference:
        prompt += f'\nReference article:\n"""{reference}"""\n'
    return prompt
