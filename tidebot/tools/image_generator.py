"""
Image generation tool backed by LiteLLM's aimage_generation().

Provider failures are not raised. They go back to the model as an
``{"error": ...}`` result so it can tell the user what happened, and the
turn continues. A generated image is delivered as an ImageAttachment; the
model only sees the URL and the revised prompt.
"""

from typing import Any

from litellm import aimage_generation

from tidebot.config.logging import get_logger
from tidebot.conversation.models import ImageAttachment
from tidebot.tools.base import Tool, ToolDescriptor, ToolResult
from tidebot.tools.schema import SchemaDescriptor

logger = get_logger(__name__)


def _error(message: str) -> ToolResult:
    return ToolResult(result={"error": message})


class ImageGeneratorTool(Tool):
    """
    Generates an image from a prompt.

    Args:
        model: LiteLLM image model string (e.g. "openai/dall-e-3")
        api_key: Provider API key; empty uses LiteLLM's environment lookup
    """

    def __init__(self, model: str = "openai/dall-e-3", api_key: str = ""):
        self.model = model
        self._api_key = api_key

    def descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(
            name="image_generator",
            description="Generate an image with an AI image model from a text prompt. "
                        "Do not include the generated image URL in your reply.",
            parameters=SchemaDescriptor.object(
                "parameters",
                "arguments",
                [
                    SchemaDescriptor.string(
                        "prompt", "Prompt for an image generation model such as DALL-E 3."
                    ),
                ],
            ),
        )

    async def call(self, call_id: str, arguments: Any) -> ToolResult:
        prompt = ""
        if isinstance(arguments, dict):
            prompt = str(arguments.get("prompt") or "").strip()
        if not prompt:
            return _error("prompt is empty")

        logger.info(f"Generating image with prompt {prompt!r}")
        kwargs: dict[str, Any] = {"model": self.model, "prompt": prompt}
        if self._api_key:
            kwargs["api_key"] = self._api_key

        try:
            response = await aimage_generation(**kwargs)
        except Exception as e:
            logger.warning(f"Image generation failed: {e}")
            return _error(str(e))

        if not response.data:
            return _error("no image was generated")
        image = response.data[0]
        url = getattr(image, "url", None)
        if not url:
            return _error("invalid response generated")

        revised_prompt = getattr(image, "revised_prompt", None) or prompt
        return ToolResult(
            result={"image_url": url, "revised_prompt": revised_prompt},
            attachments=[ImageAttachment(url=url, description=revised_prompt)],
        )
