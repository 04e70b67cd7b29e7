"""ServicePulse: cached HTTP API testing and health monitoring behind an async task protocol."""

__version__ = "0.1.0"
