from .schema import (
    FeaturePayload,
    ResultPayload,
    decode_features,
    decode_results,
    encode_features,
    encode_results,
)
from .transport import Bridge, InProcessTransport, ProcessTransport, Transport, get_transport
from .worker import build_request, compute

__all__ = [
    "FeaturePayload",
    "ResultPayload",
    "decode_features",
    "decode_results",
    "encode_features",
    "encode_results",
    "Bridge",
    "InProcessTransport",
    "ProcessTransport",
    "Transport",
    "get_transport",
    "build_request",
    "compute",
]
