"""
Local filesystem implementations of the collaborator stores
"""

import asyncio
import json
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..core.exceptions import StorageError
from ..core.interfaces import CredentialStore, PreferenceStore, UsageLogStore
from ..core.logging import get_logger
from ..core.models import UsageRecord

logger = get_logger(__name__)

# File I/O runs here so the event loop never blocks on disk
executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="stt-storage")


async def _run_blocking(func, *args):
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(executor, func, *args)


class _JSONDocument:
    """
    A single JSON object persisted under the base directory

    Writes go to a temporary file first and are renamed into place.
    """

    def __init__(self, base_path: Path, file_name: str):
        self.path = base_path / file_name
        self._lock = asyncio.Lock()

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read {self.path}: {e}")

    def _write(self, data: Dict[str, Any]):
        temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            with open(temp_path, "w") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            temp_path.replace(self.path)
        except OSError as e:
            raise StorageError(f"Failed to write {self.path}: {e}")

    async def load(self) -> Dict[str, Any]:
        async with self._lock:
            return await _run_blocking(self._read)

    async def update(self, mutate) -> Any:
        """Apply mutate(data) under the lock and persist the result"""
        async with self._lock:
            data = await _run_blocking(self._read)
            result = mutate(data)
            await _run_blocking(self._write, data)
            return result


def _ensure_base_path(base_path: Optional[str]) -> Path:
    path = Path(base_path) if base_path else Path.cwd() / "local_storage"
    path.mkdir(parents=True, exist_ok=True)
    return path


class LocalCredentialStore(CredentialStore):
    """
    Encrypted secrets in credentials.json

    Layout: {user_id: {provider: encrypted_secret}}
    """

    def __init__(self, base_path: Optional[str] = None, file_name: str = "credentials.json"):
        self.base_path = _ensure_base_path(base_path)
        self._document = _JSONDocument(self.base_path, file_name)

        logger.info(f"Initialized LocalCredentialStore: {self._document.path}")

    async def get(self, user_id: str, provider: str) -> Optional[str]:
        data = await self._document.load()
        return data.get(user_id, {}).get(provider)

    async def put(self, user_id: str, provider: str, encrypted_secret: str) -> None:
        def mutate(data):
            data.setdefault(user_id, {})[provider] = encrypted_secret

        await self._document.update(mutate)

    async def delete(self, user_id: str, provider: str) -> bool:
        def mutate(data):
            user_secrets = data.get(user_id, {})
            existed = user_secrets.pop(provider, None) is not None
            if not user_secrets:
                data.pop(user_id, None)
            return existed

        return await self._document.update(mutate)

    async def list_providers(self, user_id: str) -> List[str]:
        data = await self._document.load()
        return sorted(data.get(user_id, {}))


class LocalPreferenceStore(PreferenceStore):
    """User preferences in preferences.json"""

    def __init__(self, base_path: Optional[str] = None, file_name: str = "preferences.json"):
        self.base_path = _ensure_base_path(base_path)
        self._document = _JSONDocument(self.base_path, file_name)

    async def get_preferred_provider(self, user_id: str) -> Optional[str]:
        data = await self._document.load()
        return data.get(user_id, {}).get("preferred_provider")

    async def set_preferred_provider(self, user_id: str, provider: str) -> None:
        def mutate(data):
            data.setdefault(user_id, {})["preferred_provider"] = provider

        await self._document.update(mutate)


class LocalUsageLog(UsageLogStore):
    """Usage records appended as JSON lines to usage.jsonl"""

    def __init__(self, base_path: Optional[str] = None, file_name: str = "usage.jsonl"):
        self.base_path = _ensure_base_path(base_path)
        self.path = self.base_path / file_name
        self._lock = asyncio.Lock()

    def _append_line(self, line: str):
        try:
            with open(self.path, "a") as f:
                f.write(line + "\n")
        except OSError as e:
            raise StorageError(f"Failed to append usage record: {e}")

    def _read_for_user(self, user_id: str) -> List[UsageRecord]:
        if not self.path.exists():
            return []
        records = []
        try:
            with open(self.path, "r") as f:
                for line_number, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        data = json.loads(line)
                    except json.JSONDecodeError:
                        logger.warning(f"Skipping corrupt usage line {line_number} in {self.path}")
                        continue
                    if data.get("user_id") == user_id:
                        records.append(UsageRecord.from_dict(data))
        except OSError as e:
            raise StorageError(f"Failed to read usage records: {e}")
        return records

    async def append(self, record: UsageRecord) -> None:
        line = json.dumps(record.to_dict())
        async with self._lock:
            await _run_blocking(self._append_line, line)

    async def list_for_user(self, user_id: str) -> List[UsageRecord]:
        async with self._lock:
            return await _run_blocking(self._read_for_user, user_id)
