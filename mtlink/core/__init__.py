"""Core package exposing the Moneytree LINK client and its models."""

from .client import MoneytreeClient
from .data_models import (
    AccountBalances,
    AccountGroups,
    Institutions,
    PersonalAccounts,
    Profile,
    TokenResponse,
    Transaction,
    Transactions,
)
from .errors import APIError, ConfigurationError, DecodeError, MoneytreeError, TransportError
from .sanitizer import sanitize_url

__all__ = [
    "MoneytreeClient",
    "MoneytreeError",
    "ConfigurationError",
    "TransportError",
    "APIError",
    "DecodeError",
    "sanitize_url",
    "TokenResponse",
    "Profile",
    "AccountGroups",
    "PersonalAccounts",
    "AccountBalances",
    "Transaction",
    "Transactions",
    "Institutions",
]
