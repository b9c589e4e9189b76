"""
Static catalogs: creative filters, style presets, aspect ratios, resolutions, prompt suggestions.
Configuration data only; nothing here is mutated at runtime.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class FilterOption:
    id: str
    label: str
    prompt: str


@dataclass(frozen=True)
class StylePreset:
    id: str
    label: str
    suffix: str


@dataclass(frozen=True)
class AspectRatioOption:
    value: str
    label: str


FILTER_CATEGORIES = ("environment", "character", "camera", "mood", "technical")

_NONE = FilterOption("none", "None", "")

FILTER_OPTIONS: Mapping[str, tuple[FilterOption, ...]] = MappingProxyType({
    "environment": (
        _NONE,
        FilterOption("studio", "Studio Lighting", "in a professional studio setting with 3-point lighting, clean backdrop"),
        FilterOption("golden_hour", "Golden Hour", "during golden hour with warm, soft sunlight, outdoor setting"),
        FilterOption("cyberpunk", "Cyberpunk City", "in a futuristic cyberpunk city with neon lights, rain-slicked streets, night time"),
        FilterOption("deep_space", "Deep Space", "in deep space with nebulae, stars, and cosmic dust in the background"),
        FilterOption("mystical_forest", "Mystical Forest", "in a dense, foggy forest with bioluminescent plants and ethereal atmosphere"),
        FilterOption("luxury_interior", "Luxury Interior", "inside a modern luxury penthouse with floor-to-ceiling windows and architectural details"),
        FilterOption("post_apoc", "Post-Apocalyptic", "in a gritty post-apocalyptic wasteland with ruins and overgrowth"),
    ),
    "character": (
        _NONE,
        FilterOption("candid", "Candid Moment", "caught in a candid moment, natural pose, unposed look"),
        FilterOption("heroic", "Heroic Pose", "standing in a dynamic heroic pose, looking confident and powerful, low angle shot"),
        FilterOption("silhouette", "Silhouette", "as a dramatic silhouette against a bright background, high contrast"),
        FilterOption("double_exposure", "Double Exposure", "artistic double exposure effect blending the subject with nature elements"),
        FilterOption("detailed_portrait", "Detailed Portrait", "extreme close-up portrait focusing on eyes and skin texture, pore-level detail"),
        FilterOption("ethereal", "Ethereal", "glowing with an ethereal aura, floating hair, magical presence"),
    ),
    "camera": (
        _NONE,
        FilterOption("dslr", "DSLR", "shot on a high-end DSLR, sharp focus, 85mm lens, f/1.8 aperture"),
        FilterOption("macro", "Macro Lens", "shot with a macro lens, extreme close-up, shallow depth of field, bokeh"),
        FilterOption("wide", "Wide Angle", "shot with a wide-angle 16mm lens, expansive view, slight distortion"),
        FilterOption("drone", "Drone View", "aerial view shot from a drone, high altitude, bird's eye perspective"),
        FilterOption("polaroid", "Polaroid", "vintage polaroid style, soft focus, film grain, nostalgic color grading"),
        FilterOption("fisheye", "Fisheye", "artistic fisheye lens effect, heavy distortion, circular framing"),
    ),
    "mood": (
        _NONE,
        FilterOption("cinematic", "Cinematic", "dramatic cinematic atmosphere, teal and orange color grading, movie-like"),
        FilterOption("dreamy", "Dreamy", "soft, dreamy atmosphere, pastel colors, bloom effect, romantic"),
        FilterOption("dark_gritty", "Dark & Gritty", "dark, gritty, noir-style atmosphere, high contrast, desaturated colors"),
        FilterOption("vibrant", "Vibrant", "explosive vibrant colors, high saturation, energetic atmosphere"),
        FilterOption("melancholic", "Melancholic", "sad, melancholic atmosphere, cool blue tones, rainy mood"),
        FilterOption("euphoric", "Euphoric", "bright, euphoric atmosphere, god rays, uplifting lighting"),
    ),
    "technical": (
        _NONE,
        FilterOption("photoreal", "Photorealistic", "hyper-realistic photography, 8k resolution, raw photo"),
        FilterOption("3d_render", "3D Render", "high-end 3D render, Octane render, Unreal Engine 5, ray tracing, global illumination"),
        FilterOption("oil_painting", "Oil Painting", "classic oil painting style, visible brush strokes, textured canvas"),
        FilterOption("anime", "Anime/Manga", "high quality anime art style, cel shading, vibrant colors, Studio Ghibli inspired"),
        FilterOption("line_art", "Line Art", "minimalist line art, clean strokes, black and white, ink drawing"),
        FilterOption("pixel_art", "Pixel Art", "retro 16-bit pixel art style, dithering, limited color palette"),
    ),
})


class FilterCatalog:
    """Read-only id -> phrase lookup per filter category."""

    def __init__(self, options: Mapping[str, tuple[FilterOption, ...]]) -> None:
        self._options = options
        self._phrases: Mapping[str, Mapping[str, str]] = MappingProxyType({
            category: MappingProxyType({opt.id: opt.prompt for opt in opts})
            for category, opts in options.items()
        })

    def phrase(self, category: str, option_id: str | None) -> str:
        """Phrase for an option id; "none", empty and unknown ids give ""."""
        if not option_id or option_id == "none":
            return ""
        return self._phrases.get(category, {}).get(option_id, "")

    def options(self, category: str) -> tuple[FilterOption, ...]:
        return self._options.get(category, ())

    @property
    def categories(self) -> tuple[str, ...]:
        return tuple(self._options.keys())


FILTER_CATALOG = FilterCatalog(FILTER_OPTIONS)

STYLE_PRESETS: tuple[StylePreset, ...] = (
    StylePreset("none", "Raw / Natural", ""),
    StylePreset("photorealistic", "Photorealistic", ", highly detailed, 8k resolution, photorealistic, cinematic lighting, photography"),
    StylePreset("cinematic", "Cinematic", ", cinematic shot, movie scene, color graded, dramatic lighting, depth of field"),
    StylePreset("studio", "Studio Headshot", ", studio lighting, professional photography, bokeh, sharp focus"),
    StylePreset("macro", "Macro Nature", ", macro photography, extreme detail, soft focus background, organic textures"),
)


def style_preset_suffix(preset_id: str | None) -> str:
    """Suffix for a style preset id; unknown ids give ""."""
    if not preset_id:
        return ""
    for preset in STYLE_PRESETS:
        if preset.id == preset_id:
            return preset.suffix
    return ""


ASPECT_RATIOS: tuple[AspectRatioOption, ...] = (
    AspectRatioOption("1:1", "Square"),
    AspectRatioOption("16:9", "Landscape"),
    AspectRatioOption("9:16", "Portrait"),
    AspectRatioOption("4:3", "Classic"),
    AspectRatioOption("3:4", "Mobile"),
)

RESOLUTIONS: tuple[str, ...] = ("1K", "2K", "4K")

PROMPT_SUGGESTIONS: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "Photorealistic": (
        "A close-up portrait of an elderly fisherman with deep wrinkles, wearing a yellow raincoat, stormy ocean background, cinematic lighting, 8k.",
        "A modern architectural glass house in a dense forest, morning mist, soft sunlight filtering through trees, hyper-realistic.",
        "A plate of gourmet sushi with water droplets, macro photography, depth of field, vibrant colors.",
    ),
    "Sci-Fi": (
        "A cyberpunk street food vendor in Tokyo, neon signs reflecting in rain puddles, futuristic cyborg customers, highly detailed.",
        "An astronaut discovering a glowing crystal monolith on Mars, red dust swirling, dramatic shadows, digital art.",
        "A futuristic flying car city in the clouds, golden hour, utopia, intricate mechanical details.",
    ),
    "Fantasy": (
        "A majestic dragon resting on a pile of gold in a dark cavern, glowing scales, smoke coming from nostrils, epic fantasy style.",
        "A magical library with floating books, spiral staircases, dust motes dancing in light beams, whimsical atmosphere.",
        "An elven warrior princess in silver armor, standing in a moonlit glade, magical forest background.",
    ),
    "Abstract": (
        "A swirling vortex of liquid paint, gold and turquoise colors, fluid simulation, 3D render, abstract art.",
        "Geometric shapes made of crystal floating in a void, refraction of light, prismatic colors, minimalism.",
    ),
})
