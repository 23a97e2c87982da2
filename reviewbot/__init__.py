"""reviewbot - merge request governance bot for GitLab."""

from reviewbot.client import GitLabClient
from reviewbot.config import (
    ConfigAgent,
    Configuration,
    FreezeFile,
    PolicyConfig,
    load_configuration,
)
from reviewbot.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    ConflictError,
    ErrorCollector,
    MultiError,
    NotFoundError,
    RateLimitedError,
    ReviewBotError,
    ServerError,
    ValidationError,
)
from reviewbot.freeze import FreezeGate, FreezeRule
from reviewbot.labels import LabelStateMachine, gen_lgtm_label
from reviewbot.logging import configure_logging, get_logger
from reviewbot.merge import Decision, MergeEligibilityEngine
from reviewbot.ownership import PathOwnershipResolver
from reviewbot.permission import PermissionResolver
from reviewbot.robot import Robot
from reviewbot.trailers import generate_trailers
from reviewbot.transport import HTTPTransport, RetryConfig
from reviewbot.types.events import MergeRequestEvent, NoteEvent, parse_event

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Client
    "GitLabClient",
    # Governance
    "Robot",
    "PathOwnershipResolver",
    "PermissionResolver",
    "LabelStateMachine",
    "gen_lgtm_label",
    "FreezeGate",
    "FreezeRule",
    "MergeEligibilityEngine",
    "Decision",
    "generate_trailers",
    # Events
    "MergeRequestEvent",
    "NoteEvent",
    "parse_event",
    # Configuration
    "ConfigAgent",
    "Configuration",
    "PolicyConfig",
    "FreezeFile",
    "load_configuration",
    # Exceptions
    "ReviewBotError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "RateLimitedError",
    "ValidationError",
    "ServerError",
    "ConfigurationError",
    "MultiError",
    "ErrorCollector",
    # Transport
    "HTTPTransport",
    "RetryConfig",
    # Logging
    "configure_logging",
    "get_logger",
]
