import random
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath, PureWindowsPath

from medgenius.logging.logger import Log
from medgenius.storage.exceptions import FileReadError, FileWriteError

URL_PREFIX = "/uploads"


@dataclass(frozen=True)
class StoredFile:
    """Location of an upload on disk and under the static URL prefix."""

    stored_name: str
    path: Path
    url: str


def unique_file_name(original_name: str, now_ms: int, suffix: int) -> str:
    """Build ``{epoch_ms}-{random}-{basename}`` for an uploaded file."""
    basename = PureWindowsPath(PurePosixPath(original_name).name).name or "upload"
    return f"{now_ms}-{suffix}-{basename}"


class FileStore:
    """Writes uploads to a local directory and reads them back."""

    def __init__(self, upload_dir: Path, rng: random.Random | None = None) -> None:
        self._upload_dir = upload_dir
        self._rng = rng or random.Random()

    @property
    def upload_dir(self) -> Path:
        return self._upload_dir

    def save(self, original_name: str, content: bytes) -> StoredFile:
        """Persist content under a generated unique name.

        Raises:
            FileWriteError: if the directory or file cannot be written.
        """
        stored_name = unique_file_name(
            original_name,
            now_ms=int(time.time() * 1000),
            suffix=self._rng.randint(0, 999_999_999),
        )
        path = self._upload_dir / stored_name
        try:
            self._upload_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        except OSError as exc:
            raise FileWriteError(f"Failed to store {original_name}: {exc}") from exc
        return StoredFile(stored_name=stored_name, path=path, url=f"{URL_PREFIX}/{stored_name}")

    def load(self, stored_name: str) -> bytes:
        """Read a stored upload.

        Raises:
            FileReadError: if the file does not exist or cannot be read.
        """
        path = self.path_for(stored_name)
        if not path.exists():
            raise FileReadError(f"File not found: {path}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise FileReadError(f"Failed to read {path}: {exc}") from exc

    def path_for(self, stored_name: str) -> Path:
        return self._upload_dir / PurePosixPath(stored_name).name

    def delete(self, stored_name: str) -> None:
        """Remove a stored upload if present; failures are logged, not raised."""
        path = self.path_for(stored_name)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            Log.warning(f"Failed to remove {path}: {exc}")
