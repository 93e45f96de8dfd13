"""
Object storage for uploaded docket files
"""

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from scheduler import config

logger = logging.getLogger(__name__)

class StorageProvider:
    def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        """Store bytes under key and return a URL for them"""
        raise NotImplementedError
    
    def delete(self, key: str) -> None:
        raise NotImplementedError

class LocalStorageProvider(StorageProvider):
    """Filesystem storage served from /files/local"""
    
    def __init__(self, base_dir: str = None, public_base_url: str = None):
        self.base_dir = Path(base_dir or config.STORAGE_DIR)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url or config.PUBLIC_BASE_URL
    
    def _get_path(self, key: str) -> Path:
        clean_key = key.lstrip("/").replace("..", "").replace("\\", "/")
        return self.base_dir / clean_key
    
    def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        path = self._get_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)
        logger.info(f"Stored {len(data)} bytes at {key}")
        return f"{self.public_base_url}/files/local/{quote(key.lstrip('/'))}"
    
    def delete(self, key: str) -> None:
        path = self._get_path(key)
        if path.exists():
            path.unlink()

_storage: Optional[StorageProvider] = None

def get_storage() -> StorageProvider:
    """FastAPI dependency returning the configured storage provider"""
    global _storage
    if _storage is None:
        _storage = LocalStorageProvider()
    return _storage
