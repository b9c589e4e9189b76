"""Image Studio: resilient image generation on top of the Gemini API."""

__version__ = "1.0.0"
