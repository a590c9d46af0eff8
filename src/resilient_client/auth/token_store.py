"""
Resilient Client: Auth - Token Store

Stockages clé-valeur pour le bearer token:
- JsonFileTokenStore: fichier JSON durable, I/O hors de la boucle asyncio
- InMemoryTokenStore: stockage volatil (tests, processus éphémères)
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Union

from .interfaces import ITokenStore


class TokenStoreError(Exception):
    """Stockage illisible ou corrompu."""

    def __init__(self, path: Union[str, Path], reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Token store '{self.path}' unreadable: {reason}")


class InMemoryTokenStore(ITokenStore):
    """Stockage clé-valeur en mémoire."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    async def set(self, key: str, value: str) -> None:
        self._values[key] = value

    async def remove(self, key: str) -> bool:
        return self._values.pop(key, None) is not None


class JsonFileTokenStore(ITokenStore):
    """
    Stockage clé-valeur dans un fichier JSON (objet plat str → str).

    Un fichier absent équivaut à un stockage vide. Les écritures sont
    atomiques (fichier temporaire puis os.replace).

    Example:
        store = JsonFileTokenStore("~/.resilient_client/storage.json")
        token = await store.get("auth_token")
    """

    def __init__(self, path: Union[str, Path]) -> None:
        """
        Args:
            path: Chemin du fichier (le ~ est résolu)
        """
        self.path = Path(path).expanduser()

    async def get(self, key: str) -> Optional[str]:
        """
        Raises:
            TokenStoreError: Si le fichier existe mais n'est pas un objet JSON
        """
        values = await asyncio.to_thread(self._read)
        value = values.get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            raise TokenStoreError(self.path, f"value for '{key}' is not a string")
        return value

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._update, key, value)

    async def remove(self, key: str) -> bool:
        return await asyncio.to_thread(self._update, key, None)

    def _read(self) -> Dict[str, object]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                content = f.read()
        except OSError as e:
            raise TokenStoreError(self.path, str(e)) from e

        if not content.strip():
            return {}

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise TokenStoreError(self.path, f"invalid JSON ({e.msg})") from e

        if not isinstance(data, dict):
            raise TokenStoreError(self.path, "top-level value must be an object")
        return data

    def _update(self, key: str, value: Optional[str]) -> bool:
        data = self._read()
        existed = key in data
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".tokens-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        return existed
