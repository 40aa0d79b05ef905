"""LLM clients and response decoding."""

from cruxboard.services.llm.decoding import decode_response, extract_json_object
from cruxboard.services.llm.factory import create_llm_client
from cruxboard.services.llm.llm_client import DeterministicLLMClient, LLMClient, ModelTier

__all__ = [
    "DeterministicLLMClient",
    "LLMClient",
    "ModelTier",
    "create_llm_client",
    "decode_response",
    "extract_json_object",
]
