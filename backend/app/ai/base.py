"""
Base class for image generation providers.
All providers must implement this interface so the generation pipeline can
use any of them without knowing which one.
"""
from abc import ABC, abstractmethod
from typing import List

# Prepended to every style prompt; the app renders results as 9:16 portraits.
ASPECT_RATIO_INSTRUCTION = (
    "Generate the image strictly in vertical 9:16 aspect ratio, full 2160x3840 pixels "
    "resolution. Do not crop, stretch, pad, or add borders. Keep the exact ratio.\n\n"
)


def build_prompt(style_prompt: str) -> str:
    """Full prompt sent to the provider for a style prompt."""
    return ASPECT_RATIO_INSTRUCTION + style_prompt


class ImageGenerationProvider(ABC):
    """
    Abstract base class for image generation providers.

    All providers must implement:
    - generate(): Turn a reference image and a prompt into result image URLs
    - test_connection(): Check whether an API key is accepted
    - is_configured(): Report whether an API key is available
    """

    name: str = "base"

    @abstractmethod
    async def generate(self, image_bytes: bytes, prompt: str) -> List[str]:
        """
        Generate styled images from a reference photo.

        Args:
            image_bytes: The user's source image
            prompt: Effective style prompt (without the aspect-ratio instruction)

        Returns:
            Non-empty list of result image URLs (hosted by the provider)

        Raises:
            GenerationFailed: Provider error, failed task or empty result
            GenerationTimeout: Task did not complete before the deadline
        """
        pass

    @abstractmethod
    async def test_connection(self) -> bool:
        """
        Check the configured API key against the provider.

        Returns:
            True if the key is accepted, False if rejected (401/403)
        """
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        pass
