from appforge.services.generation.provider import (
    AnthropicGenerativeService,
    ChunkCallback,
    GenerationResult,
    GenerativeService,
)

__all__ = ["AnthropicGenerativeService", "ChunkCallback", "GenerationResult", "GenerativeService"]
