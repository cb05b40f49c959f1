"""
Measurement transports for delivering hits.
Implements Strategy Pattern for flexible delivery targets.
"""

from .strategies import (
    TransportStrategy,
    TransportError,
    MeasurementProtocolTransport,
    InMemoryTransport,
    NullTransport,
    measurement_payload,
)
from .factory import TransportFactory, TransportBackend

__all__ = [
    "TransportStrategy",
    "TransportError",
    "MeasurementProtocolTransport",
    "InMemoryTransport",
    "NullTransport",
    "measurement_payload",
    "TransportFactory",
    "TransportBackend",
]
