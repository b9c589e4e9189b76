"""
Final prompt text from the user prompt, creative filters, style preset and negative prompt.
Phrase order (Style, Environment, Subject Detail, Camera/Shot, Mood/Atmosphere) is fixed.
"""
from imagestudio.schemas.generation import GenerationRequest
from imagestudio.services.image_generation.catalog import FILTER_CATALOG, FilterCatalog

RAW_MODE_DIRECTIVE = "High fidelity, raw, exact adherence to prompt."

# (catalog category, request field, label)
FILTER_SLOTS = (
    ("technical", "technical_style", "Style"),
    ("environment", "environment", "Environment"),
    ("character", "character", "Subject Detail"),
    ("camera", "camera", "Camera/Shot"),
    ("mood", "mood", "Mood/Atmosphere"),
)


def compose_prompt(request: GenerationRequest, catalog: FilterCatalog = FILTER_CATALOG) -> str:
    """Pure: the same request and catalog always give the same string."""
    parts = [request.prompt]

    if request.raw_mode:
        parts.append(RAW_MODE_DIRECTIVE)
    else:
        for category, field_name, label in FILTER_SLOTS:
            phrase = catalog.phrase(category, getattr(request, field_name))
            if phrase:
                parts.append(f"{label}: {phrase}")
        if request.style_preset_suffix:
            parts.append(request.style_preset_suffix)

    final_prompt = ", ".join(parts)
    if request.negative_prompt:
        final_prompt += f" --no {request.negative_prompt}"
    return final_prompt
