"""
AI provider abstraction module.
Provides a unified interface for image generation providers.
"""
from app.ai.base import ImageGenerationProvider, build_prompt
from app.ai.factory import get_image_provider

__all__ = ["ImageGenerationProvider", "build_prompt", "get_image_provider"]
