from .base import Provider
from .bedrock import BedrockProvider
from .huggingface import HuggingFaceProvider

__all__ = ["Provider", "BedrockProvider", "HuggingFaceProvider"]
