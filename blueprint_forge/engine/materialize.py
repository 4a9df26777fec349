"""Writing the merged tree to storage.

Both modes are all-or-nothing: a directory is assembled next to the target
and renamed into place, and an archive is written to a temporary file and
then moved over the target.  A failure leaves the target untouched.

The rename is the commit point.  A run cancelled before it writes nothing;
once it has happened the output stays.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import threading
import zipfile
from pathlib import Path

from blueprint_forge.engine.merger import VirtualFileTree
from blueprint_forge.errors import MaterializationError

logger = logging.getLogger(__name__)

# Fixed timestamp so identical trees produce identical archives.
ZIP_DATE_TIME = (1980, 1, 1, 0, 0, 0)


def _encode(content: str | bytes) -> bytes:
    return content.encode("utf-8") if isinstance(content, str) else content


class Materializer:
    """Writes a :class:`VirtualFileTree` as a directory or a zip archive.

    Args:
        overwrite: Replace a non-empty target directory or an existing archive.
        cancelled: Set from another thread to abandon the write before the
            final rename.
    """

    def __init__(self, overwrite: bool = False, cancelled: threading.Event | None = None) -> None:
        self.overwrite = overwrite
        self.cancelled = cancelled or threading.Event()

    def _check_cancelled(self, target: Path) -> None:
        if self.cancelled.is_set():
            raise MaterializationError(f"Write to {target} cancelled before completion")

    def write_directory(self, tree: VirtualFileTree, target: str | Path) -> Path:
        """Write *tree* under *target*.

        Raises:
            MaterializationError: *target* exists and is not empty while
                ``overwrite`` is off, or the filesystem write failed.
        """
        target = Path(target).resolve()
        if target.exists() and not target.is_dir():
            raise MaterializationError(f"Output path exists and is not a directory: {target}")
        if target.is_dir() and any(target.iterdir()) and not self.overwrite:
            raise MaterializationError(
                f"Output directory {target} is not empty (pass overwrite to replace it)"
            )

        target.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{target.name}-", dir=target.parent))
        try:
            for path, entry in tree.items():
                destination = staging / path.lstrip("/")
                destination.parent.mkdir(parents=True, exist_ok=True)
                destination.write_bytes(_encode(entry.content))
            self._check_cancelled(target)
            self._swap(staging, target)
        except OSError as exc:
            shutil.rmtree(staging, ignore_errors=True)
            raise MaterializationError(f"Failed to write {target}: {exc}") from exc
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        logger.info("Wrote %d file(s) to %s", len(tree), target)
        return target

    def _swap(self, staging: Path, target: Path) -> None:
        if not target.exists():
            staging.rename(target)
            return
        retired = target.with_name(f".{target.name}-old-{os.getpid()}")
        target.rename(retired)
        try:
            staging.rename(target)
        except OSError:
            retired.rename(target)
            raise
        shutil.rmtree(retired, ignore_errors=True)

    def write_archive(self, tree: VirtualFileTree, target: str | Path) -> Path:
        """Write *tree* as a zip archive at *target*.

        Entries are sorted and carry a fixed timestamp, so the same tree
        always produces the same bytes.
        """
        target = Path(target).resolve()
        if target.exists() and not self.overwrite:
            raise MaterializationError(f"Archive {target} already exists (pass overwrite to replace it)")

        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}-", suffix=".tmp", dir=target.parent)
        os.close(fd)
        try:
            with zipfile.ZipFile(tmp_name, "w", compression=zipfile.ZIP_DEFLATED) as archive:
                for path, entry in tree.items():
                    info = zipfile.ZipInfo(path.lstrip("/"), date_time=ZIP_DATE_TIME)
                    info.compress_type = zipfile.ZIP_DEFLATED
                    info.external_attr = 0o644 << 16
                    archive.writestr(info, _encode(entry.content))
            self._check_cancelled(target)
            os.replace(tmp_name, target)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            raise MaterializationError(f"Failed to write archive {target}: {exc}") from exc
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info("Wrote archive with %d file(s) to %s", len(tree), target)
        return target
