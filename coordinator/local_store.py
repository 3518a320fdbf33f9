import logging
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)


class LocalPersistError(Exception):
    """The coordinator could not write an object to its own store."""
    pass


class LocalFileStore:
    def __init__(self, root: str):
        self.root = Path(root).resolve()

    def path_for(self, name: str) -> Path:
        return self.root / name

    def save(self, name: str, content: bytes) -> Path:
        path = self.path_for(name)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            with path.open("wb") as f:
                f.write(content)
        except OSError as e:
            raise LocalPersistError(f"Cannot save file {name}: {e}") from e
        return path

    def remove(self, name: str) -> bool:
        """Delete the local copy; returns False (and logs) when that fails."""
        path = self.path_for(name)
        try:
            path.unlink()
        except OSError as e:
            logger.warning(f"Local delete of {name} failed: {e}")
            return False
        return True

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def list_names(self) -> List[str]:
        if not self.root.is_dir():
            return []
        return sorted(p.name for p in self.root.iterdir() if p.is_file())
