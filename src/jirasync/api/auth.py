"""HTTP basic auth credentials for Jira Cloud.

Jira Cloud REST calls authenticate with an account email and an API
token sent as HTTP basic auth. Unlike OAuth2 there is nothing to
refresh: a 401 means the credentials are wrong and the caller must stop.

Security Notes:
    - Credentials are held in memory only
    - The API token should come from the environment (JIRA_API_TOKEN)
    - Log output uses ``credential_id`` (SHA-256 prefix), never the token

Example:
    >>> credentials = JiraCredentials.from_env()
    >>> headers = credentials.auth_headers()
"""
import hashlib
import logging
import os
from dataclasses import dataclass, field
from typing import Optional

import aiohttp

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JiraCredentials:
    """Account email and API token used for basic auth.

    Attributes:
        email: Atlassian account email (env: JIRA_EMAIL)
        api_token: Atlassian API token (env: JIRA_API_TOKEN)
    """
    email: str
    api_token: str = field(repr=False)

    def __post_init__(self):
        missing = []
        if not self.email:
            missing.append("JIRA_EMAIL")
        if not self.api_token:
            missing.append("JIRA_API_TOKEN")
        if missing:
            raise ConfigurationError(
                f"Missing Jira credentials: {', '.join(missing)}",
                missing_keys=missing,
            )

    @classmethod
    def from_env(
        cls,
        email: Optional[str] = None,
        api_token: Optional[str] = None,
    ) -> "JiraCredentials":
        """Build credentials from arguments, falling back to the environment.

        Raises:
            ConfigurationError: If either value is missing
        """
        return cls(
            email=email or os.getenv("JIRA_EMAIL", ""),
            api_token=api_token or os.getenv("JIRA_API_TOKEN", ""),
        )

    @property
    def credential_id(self) -> str:
        """Safe identifier for logging (SHA-256 of email and token, first 8 chars)."""
        digest = hashlib.sha256(f"{self.email}:{self.api_token}".encode())
        return digest.hexdigest()[:8]

    def basic_auth(self) -> aiohttp.BasicAuth:
        return aiohttp.BasicAuth(self.email, self.api_token)

    def auth_headers(self) -> dict[str, str]:
        """Request headers carrying the basic auth credentials."""
        return {
            "Authorization": self.basic_auth().encode(),
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
