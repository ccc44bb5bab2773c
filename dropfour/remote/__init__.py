"""
Remote Module - HTTP access to the inference endpoint.
"""

from .client import InferenceClient, InferenceRequest, InferenceResponse, DEFAULT_ENDPOINT

__all__ = [
    "InferenceClient",
    "InferenceRequest",
    "InferenceResponse",
    "DEFAULT_ENDPOINT",
]
