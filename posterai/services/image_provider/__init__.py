from .base import GeneratedImage, ImageClient, Part
from .factory import get_image_client, resolve_image_model

__all__ = ["GeneratedImage", "ImageClient", "Part", "get_image_client", "resolve_image_model"]
