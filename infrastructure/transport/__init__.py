"""gRPC transports (in-memory, grpcurl subprocess)."""

from .inmemory import InMemoryTransport, RecordedCall
from .grpcurl import GrpcurlTransport

__all__ = [
    "InMemoryTransport",
    "RecordedCall",
    "GrpcurlTransport",
]
