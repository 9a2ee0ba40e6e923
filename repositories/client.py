"""
Supabase client initialization.

This module contains *only* the database connection setup: a factory for the
privileged (service-role) client. There is no module-level client object;
repositories receive the client in their constructor.

Environment variables required:
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_SERVICE_ROLE_KEY: Service-role key (server-side only; bypasses RLS)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from supabase import Client, create_client

# Look for .env in the project root.
ENV_PATH: Path = Path(__file__).parent.parent / ".env"


def load_project_env() -> None:
    """Load the project's .env file without overriding variables already set."""

    load_dotenv(dotenv_path=ENV_PATH, override=False)


def create_privileged_client(url: Optional[str] = None, service_role_key: Optional[str] = None) -> Client:
    """
    Create a Supabase client authenticated with the service-role key.

    Args:
        url: Project URL (defaults to SUPABASE_URL)
        service_role_key: Service-role key (defaults to SUPABASE_SERVICE_ROLE_KEY)

    Raises:
        RuntimeError: if either setting is missing
    """

    load_project_env()

    url = url or os.getenv("SUPABASE_URL")
    service_role_key = service_role_key or os.getenv("SUPABASE_SERVICE_ROLE_KEY")

    if not url:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_URL. "
            "Set SUPABASE_URL to your Supabase project URL."
        )

    if not service_role_key:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_SERVICE_ROLE_KEY. "
            "Set SUPABASE_SERVICE_ROLE_KEY to your project's service-role key."
        )

    return create_client(url, service_role_key)


__all__ = ["ENV_PATH", "create_privileged_client", "load_project_env"]
