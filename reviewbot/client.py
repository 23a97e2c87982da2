"""
reviewbot platform client.

Provides the interface the governance engine uses to talk to GitLab.
"""

import os
from typing import Any

from reviewbot.clients import GroupsClient, MergeRequestsClient, ProjectsClient
from reviewbot.exceptions import ConfigurationError
from reviewbot.transport import HTTPTransport, RetryConfig


class GitLabClient:
    """
    Main client for interacting with the GitLab REST API.

    Aggregates all resource clients and handles authentication.

    Example:
        ```python
        from reviewbot import GitLabClient

        client = GitLabClient(token="glpat-...", base_url="https://gitlab.example.com/api/v4")

        # Or create from environment variables
        client = GitLabClient.from_env()

        mr = client.merge_requests.get(project_id=42, iid=7)
        client.merge_requests.add_labels(42, 7, ["lgtm"])
        ```
    """

    DEFAULT_BASE_URL = "https://gitlab.com/api/v4"
    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        retry_config: RetryConfig | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            token: Access token of the bot account
            base_url: Base URL of the API (default: https://gitlab.com/api/v4)
            timeout: Request timeout in seconds (default: 30.0)
            retry_config: Configuration for retry behavior (optional)
        """
        if not token:
            raise ConfigurationError("an access token is required")

        self.base_url = base_url
        self.timeout = timeout

        self._transport = HTTPTransport(
            base_url=base_url,
            token=token,
            timeout=timeout,
            retry_config=retry_config,
        )

        self.merge_requests = MergeRequestsClient(self._transport)
        self.projects = ProjectsClient(self._transport)
        self.groups = GroupsClient(self._transport)

    @classmethod
    def from_env(
        cls,
        timeout: float = DEFAULT_TIMEOUT,
        retry_config: RetryConfig | None = None,
    ) -> "GitLabClient":
        """
        Create a client from environment variables.

        Environment variables:
            GITLAB_TOKEN: Access token of the bot account (required)
            GITLAB_BASE_URL: Base URL of the API (optional, default: https://gitlab.com/api/v4)

        Raises:
            ConfigurationError: If required environment variables are missing
        """
        token = os.environ.get("GITLAB_TOKEN")
        base_url = os.environ.get("GITLAB_BASE_URL", cls.DEFAULT_BASE_URL)

        if not token:
            raise ConfigurationError("GITLAB_TOKEN environment variable not set")

        return cls(
            token=token,
            base_url=base_url,
            timeout=timeout,
            retry_config=retry_config,
        )

    @property
    def transport(self) -> HTTPTransport:
        """Get the underlying HTTP transport (for advanced use cases)."""
        return self._transport

    def close(self) -> None:
        """Close the client and release resources."""
        self._transport.close()

    def __enter__(self) -> "GitLabClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
