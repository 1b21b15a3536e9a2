from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

ENV_BASE_URL = "MONEYTREE_BASE_URL"
ENV_CLIENT_ID = "MONEYTREE_CLIENT_ID"
ENV_CLIENT_SECRET = "MONEYTREE_CLIENT_SECRET"


@dataclass(frozen=True)
class MoneytreeConfig:
    """Connection settings for one Moneytree LINK application."""

    base_url: str
    client_id: str
    client_secret: str

    @classmethod
    def for_account(cls, account_name: str, client_id: str, client_secret: str) -> "MoneytreeConfig":
        """Build the config for a hosted account, e.g. ``jp-api-staging``."""
        if not account_name:
            raise ValueError("account name is required")
        return cls(
            base_url=f"https://{account_name}.getmoneytree.com",
            client_id=client_id,
            client_secret=client_secret,
        )

    def __repr__(self) -> str:
        masked = "***" if self.client_secret else ""
        return (
            f"MoneytreeConfig(base_url={self.base_url!r}, client_id={self.client_id!r}, "
            f"client_secret={masked!r})"
        )


def load_config(env_file: Optional[Union[str, Path]] = None) -> MoneytreeConfig:
    """Read the config from the environment after loading ``env_file`` (default: ./.env)."""
    load_dotenv(env_file or BASE_DIR / ".env")
    return MoneytreeConfig(
        base_url=os.getenv(ENV_BASE_URL, ""),
        client_id=os.getenv(ENV_CLIENT_ID, ""),
        client_secret=os.getenv(ENV_CLIENT_SECRET, ""),
    )
