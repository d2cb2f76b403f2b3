"""PosterAI: generate and edit poster images with Gemini image models."""

__version__ = "0.1.0"
