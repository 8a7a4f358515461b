"""
LLM providers module.

This module contains LLM model implementations:
- Model: Abstract base class
- OpenAIModel: OpenAI (and OpenAI-compatible) chat models
"""

from deepagent.llm.base import Model, ModelResponse, StreamChunk, ToolCallAccumulator
from deepagent.llm.openai import OpenAIModel

__all__ = [
    "Model",
    "ModelResponse",
    "OpenAIModel",
    "StreamChunk",
    "ToolCallAccumulator",
]
