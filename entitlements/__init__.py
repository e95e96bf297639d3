"""Entitlement and usage-metering engine."""

__version__ = "1.0.0"
