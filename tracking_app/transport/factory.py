"""
Factory for creating measurement transports.
Simple, clean factory with singleton caching.
"""

from enum import Enum
import logging

from .strategies import TransportStrategy, MeasurementProtocolTransport, InMemoryTransport, NullTransport
from tracking_app.config import Settings, get_settings

logger = logging.getLogger(__name__)


class TransportBackend(Enum):
    """Available transport backends"""
    MEASUREMENT_PROTOCOL = "measurement_protocol"
    MEMORY = "memory"
    NULL = "null"


class TransportFactory:
    """
    Simple factory for creating transport instances.

    Gets configuration from settings (not passed as parameters).
    """

    _instance: TransportStrategy = None  # Single cached instance

    @classmethod
    def create(cls, backend: TransportBackend, settings: Settings = None) -> TransportStrategy:
        """
        Create or return cached transport instance.

        Args:
            backend: Type of transport backend (from enum)
            settings: Settings to read endpoint and credentials from

        Returns:
            Singleton transport instance
        """
        if cls._instance is not None:
            return cls._instance

        settings = settings or get_settings()

        if backend == TransportBackend.MEASUREMENT_PROTOCOL:
            cls._instance = MeasurementProtocolTransport(
                measurement_id=settings.google_analytics_measurement_id,
                api_secret=settings.google_analytics_measurement_api_secret,
                endpoint=settings.measurement_endpoint,
                timeout=(settings.transport_connect_timeout, settings.transport_read_timeout),
            )
            logger.info("Measurement Protocol transport initialized (%s)", settings.measurement_endpoint)

        elif backend == TransportBackend.MEMORY:
            cls._instance = InMemoryTransport()
            logger.info("In-memory transport initialized")

        elif backend == TransportBackend.NULL:
            cls._instance = NullTransport()
            logger.info("Null transport initialized")

        else:
            raise ValueError(f"Unknown transport backend: {backend}")

        return cls._instance

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
