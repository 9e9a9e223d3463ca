import os
import tempfile
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path, PurePath

from medgenius.logging.logger import Log
from medgenius.scanner.models import ReportFile


@contextmanager
def preview_file(file: ReportFile) -> Generator[Path, None, None]:
    """Write the file to a private temporary path and remove it on exit.

    The path is owned by the caller for the duration of the block only.
    """
    suffix = PurePath(file.name).suffix
    fd, name = tempfile.mkstemp(prefix="medgenius-", suffix=suffix)
    path = Path(name)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(file.content)
        yield path
    finally:
        path.unlink(missing_ok=True)
        Log.debug(f"Released preview file for {file.name}")
