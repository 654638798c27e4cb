"""
Credential, preference and usage stores
"""

from .local import LocalCredentialStore, LocalPreferenceStore, LocalUsageLog
from .memory import InMemoryCredentialStore, InMemoryPreferenceStore, InMemoryUsageLog

__all__ = [
    "InMemoryCredentialStore",
    "InMemoryPreferenceStore",
    "InMemoryUsageLog",
    "LocalCredentialStore",
    "LocalPreferenceStore",
    "LocalUsageLog",
]
