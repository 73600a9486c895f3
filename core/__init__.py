"""
core — 框架核心

統一匯出所有核心元件，方便外部 import。

用法：
    from core import SessionManager, SessionConfig, PageActions, LocatorSpec
    from core import CredentialVault, ScenarioOutcome
    from core import event_bus, plugin_manager, env
    from core import UnknownRoleError, WaitTimeoutError
"""

from core.credential_vault import CredentialVault, DataProtector, UserKeyProtector
from core.env_manager import env
from core.event_bus import Event, Events, event_bus
from core.exceptions import (
    AmbiguousLocatorError,
    BrowserFrameworkError,
    CredentialStateCorruptError,
    CredentialStateError,
    DriverLaunchError,
    LocatorError,
    PluginError,
    SessionError,
    SessionNotReadyError,
    TeardownResourceError,
    UnknownRoleError,
    UnknownStrategyError,
    WaitTimeoutError,
)
from core.failure_capture import FailureArtifactCapturer, ScenarioOutcome
from core.locator import LocatorSpec, Strategy
from core.page_actions import PageActions
from core.plugin_manager import Plugin, plugin_manager
from core.roles import AriaRole, supported_roles, to_aria_role
from core.session_manager import (
    BrowserSession,
    SessionConfig,
    SessionManager,
    SessionState,
)
from core.teardown import TeardownPipeline

__all__ = [
    # Session / Page
    "SessionManager",
    "SessionConfig",
    "SessionState",
    "BrowserSession",
    "PageActions",
    "TeardownPipeline",
    # Locator
    "LocatorSpec",
    "Strategy",
    "AriaRole",
    "to_aria_role",
    "supported_roles",
    # Credential / Artifact
    "CredentialVault",
    "DataProtector",
    "UserKeyProtector",
    "FailureArtifactCapturer",
    "ScenarioOutcome",
    # Infrastructure
    "Event",
    "Events",
    "event_bus",
    "plugin_manager",
    "Plugin",
    "env",
    # Exceptions
    "BrowserFrameworkError",
    "SessionError",
    "SessionNotReadyError",
    "DriverLaunchError",
    "TeardownResourceError",
    "LocatorError",
    "UnknownRoleError",
    "UnknownStrategyError",
    "AmbiguousLocatorError",
    "WaitTimeoutError",
    "CredentialStateError",
    "CredentialStateCorruptError",
    "PluginError",
]
