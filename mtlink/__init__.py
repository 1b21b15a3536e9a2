"""Async client for the Moneytree LINK API."""

from .config import MoneytreeConfig, load_config
from .core import APIError, ConfigurationError, DecodeError, MoneytreeClient, MoneytreeError, TransportError, sanitize_url

__all__ = [
    "MoneytreeConfig",
    "load_config",
    "MoneytreeClient",
    "MoneytreeError",
    "ConfigurationError",
    "TransportError",
    "APIError",
    "DecodeError",
    "sanitize_url",
]
