"""
In-memory collaborator stores
Suitable for testing, the CLI and single-process deployments
"""

import asyncio
from typing import Dict, List, Optional, Tuple

from ..core.interfaces import CredentialStore, PreferenceStore, UsageLogStore
from ..core.models import UsageRecord


class InMemoryCredentialStore(CredentialStore):
    """Encrypted secrets keyed by (user, provider)"""

    def __init__(self):
        self._secrets: Dict[Tuple[str, str], str] = {}
        self._lock = asyncio.Lock()

    async def get(self, user_id: str, provider: str) -> Optional[str]:
        async with self._lock:
            return self._secrets.get((user_id, provider))

    async def put(self, user_id: str, provider: str, encrypted_secret: str) -> None:
        async with self._lock:
            self._secrets[(user_id, provider)] = encrypted_secret

    async def delete(self, user_id: str, provider: str) -> bool:
        async with self._lock:
            return self._secrets.pop((user_id, provider), None) is not None

    async def list_providers(self, user_id: str) -> List[str]:
        async with self._lock:
            return sorted(provider for owner, provider in self._secrets if owner == user_id)


class InMemoryPreferenceStore(PreferenceStore):
    def __init__(self):
        self._preferences: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def get_preferred_provider(self, user_id: str) -> Optional[str]:
        async with self._lock:
            return self._preferences.get(user_id)

    async def set_preferred_provider(self, user_id: str, provider: str) -> None:
        async with self._lock:
            self._preferences[user_id] = provider


class InMemoryUsageLog(UsageLogStore):
    def __init__(self):
        self._records: List[UsageRecord] = []
        self._lock = asyncio.Lock()

    async def append(self, record: UsageRecord) -> None:
        async with self._lock:
            self._records.append(record)

    async def list_for_user(self, user_id: str) -> List[UsageRecord]:
        async with self._lock:
            return [record for record in self._records if record.user_id == user_id]

    @property
    def records(self) -> List[UsageRecord]:
        return list(self._records)
