"""Service layer: prompt assembly, the model gateway and generation workflows."""

from .gateway import GatewayResponse, LLMGateway
from .generation import GenerationResult, generate_novel_content, generate_storyboard_content, get_gateway
from .prompt_assembly import build_novel_prompt, build_storyboard_prompt

__all__ = [
    "GatewayResponse",
    "GenerationResult",
    "LLMGateway",
    "build_novel_prompt",
    "build_storyboard_prompt",
    "generate_novel_content",
    "generate_storyboard_content",
    "get_gateway",
]
