from __future__ import annotations

import logging
import os
from pathlib import Path, PureWindowsPath
from uuid import uuid4

from core.errors import validation_failed
from core.storage.resolver import LOCAL_URI_PREFIX
from core.storage.types import DeleteOutcome, StoredFile

logger = logging.getLogger(__name__)

_MAX_DISAMBIGUATION_ATTEMPTS = 1000


def sanitize_filename(filename: str) -> str:
    """Return ``filename`` unchanged if it is a single safe path segment.

    Raises a validation error otherwise; callers must not touch the
    filesystem before this passes.
    """
    if not isinstance(filename, str) or not filename.strip():
        raise validation_failed("Attachment filename is empty")
    if "\x00" in filename:
        raise validation_failed("Attachment filename contains a NUL byte", {"filename": filename})
    if filename.startswith(("/", "\\")) or PureWindowsPath(filename).drive:
        raise validation_failed("Absolute attachment paths are not allowed", {"filename": filename})

    segments = filename.replace("\\", "/").split("/")
    if any(segment == ".." for segment in segments):
        raise validation_failed("Parent directory segments are not allowed", {"filename": filename})
    if len(segments) > 1:
        raise validation_failed("Attachment filename must not contain path separators", {"filename": filename})
    if filename in {".", ".."} or ".." in filename:
        raise validation_failed("Attachment filename is not allowed", {"filename": filename})
    return filename


class LocalAttachmentStore:
    def __init__(self, root_dir: str) -> None:
        self._root = Path(root_dir)
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def canonical_uri(self, path: str) -> str:
        return f"{LOCAL_URI_PREFIX}{path}"

    def _candidates(self, filename: str):
        yield filename
        stem, suffix = os.path.splitext(filename)
        for attempt in range(1, _MAX_DISAMBIGUATION_ATTEMPTS):
            yield f"{stem}-{attempt}{suffix}"

    def store(self, payload: bytes, filename: str, *, replace: bool = False) -> StoredFile:
        """Write ``payload`` under ``filename``.

        By default an existing file is never touched and the payload lands at
        the first free ``<stem>-N<ext>`` name. With ``replace=True`` the file at
        exactly ``filename`` is swapped in atomically; callers use this only for
        names they own (e.g. one derived from a document title).
        """
        safe_name = sanitize_filename(filename)
        if replace:
            return self._replace(payload, safe_name)
        for candidate in self._candidates(safe_name):
            file_path = self._root / candidate
            try:
                with open(file_path, "xb") as handle:
                    handle.write(payload)
            except FileExistsError:
                continue
            logger.debug("Stored local attachment %s (%d bytes)", file_path, len(payload))
            return StoredFile(path=candidate, canonical_uri=self.canonical_uri(candidate), size=len(payload))
        raise validation_failed("Too many attachments share this filename", {"filename": safe_name})

    def _replace(self, payload: bytes, safe_name: str) -> StoredFile:
        file_path = self._root / safe_name
        tmp_path = self._root / f".{safe_name}.{uuid4().hex}.tmp"
        try:
            with open(tmp_path, "xb") as handle:
                handle.write(payload)
            os.replace(tmp_path, file_path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
        logger.debug("Replaced local attachment %s (%d bytes)", file_path, len(payload))
        return StoredFile(path=safe_name, canonical_uri=self.canonical_uri(safe_name), size=len(payload))

    def delete(self, path: str) -> DeleteOutcome:
        safe_name = sanitize_filename(path)
        file_path = self._root / safe_name
        try:
            file_path.unlink()
        except FileNotFoundError:
            logger.info("Local attachment already absent: %s", file_path)
            return DeleteOutcome.NOT_FOUND
        except OSError as exc:
            logger.warning("Failed to delete local attachment %s: %s", file_path, exc)
            return DeleteOutcome.UNAVAILABLE
        logger.info("Deleted local attachment %s", file_path)
        return DeleteOutcome.DELETED
