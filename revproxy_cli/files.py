"""
File access used by the backup store and the lifecycle manager.

LocalFileAccess touches the real filesystem. MemoryFileAccess keeps
everything in a dict so the manager can be driven without real paths.
"""

import shutil
from pathlib import Path, PurePath


class LocalFileAccess:
    """Read and write files on disk"""

    def read_text(self, path: Path) -> str:
        # newline="" keeps \r\n line endings as they are on disk
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()

    def write_text(self, path: Path, content: str) -> None:
        """Write content atomically, keeping the original file mode.

        Symlinks are followed so the link target is updated, not the link.
        """
        path = Path(path).resolve()
        tmp = path.with_name(path.name + ".tmp")
        with open(tmp, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        if path.exists():
            shutil.copymode(path, tmp)
        tmp.replace(path)

    def exists(self, path: Path) -> bool:
        return Path(path).is_file()

    def ensure_dir(self, path: Path) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)

    def copy(self, src: Path, dst: Path) -> None:
        """Byte-for-byte copy, overwriting dst"""
        shutil.copyfile(src, dst)

    def list_dir(self, path: Path) -> list[Path]:
        path = Path(path)
        if not path.is_dir():
            return []
        return sorted(p for p in path.iterdir() if p.is_file())


class MemoryFileAccess:
    """In-memory stand-in for LocalFileAccess"""

    def __init__(self, files: dict[str, str] | None = None):
        self.files: dict[str, bytes] = {}
        self.dirs: set[str] = set()
        for path, content in (files or {}).items():
            self.files[self._key(path)] = content.encode("utf-8")

    @staticmethod
    def _key(path) -> str:
        return str(PurePath(path))

    def _get(self, path) -> bytes:
        key = self._key(path)
        if key not in self.files:
            raise FileNotFoundError(f"No such file: {key}")
        return self.files[key]

    def read_text(self, path) -> str:
        return self._get(path).decode("utf-8")

    def write_text(self, path, content: str) -> None:
        self.files[self._key(path)] = content.encode("utf-8")

    def exists(self, path) -> bool:
        return self._key(path) in self.files

    def ensure_dir(self, path) -> None:
        self.dirs.add(self._key(path))

    def copy(self, src, dst) -> None:
        self.files[self._key(dst)] = self._get(src)

    def list_dir(self, path) -> list[Path]:
        prefix = self._key(path)
        return sorted(Path(key) for key in self.files if self._key(PurePath(key).parent) == prefix)
