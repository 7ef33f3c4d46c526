# SPDX-License-Identifier: MIT
"""Deterministic on-disk storage for generated images.

Images are keyed by the caller-supplied subject identifier rather than by a
content hash: ``<root>/<subject_id>.png``. The same identifier always resolves
to the same path, which lets the client reuse an existing portrait instead of
generating a new one.

Concurrent writes for the same subject are not locked; the last writer wins.
Writes go through a temporary file and :func:`os.replace` so readers never see
a partially written image. Callers regenerating the same subject concurrently
must serialise those calls themselves.
"""

from __future__ import annotations

import os
import uuid
from pathlib import Path

import logfire

ASSET_SUFFIX = ".png"


class AssetStore:
    """Filesystem store mapping subject ids to image paths."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def path_for(self, subject_id: str) -> Path:
        """Return the deterministic path for ``subject_id``.

        Raises:
            ValueError: If ``subject_id`` is empty or would escape ``root``.
        """
        if not subject_id or subject_id in {".", ".."}:
            raise ValueError("subject_id must be a non-empty file name")
        if "/" in subject_id or "\\" in subject_id or "\x00" in subject_id:
            raise ValueError(f"subject_id contains a path separator: {subject_id!r}")
        return self.root / f"{subject_id}{ASSET_SUFFIX}"

    def existing(self, subject_id: str) -> Path | None:
        """Return the stored path for ``subject_id`` if a file exists."""
        path = self.path_for(subject_id)
        found = path.is_file()
        logfire.debug("Checked for existing asset", path=str(path), found=found)
        return path if found else None

    def write(self, subject_id: str, data: bytes) -> Path:
        """Persist ``data`` for ``subject_id`` and return its path."""
        path = self.path_for(subject_id)
        with logfire.span("assets.write", attributes={"path": str(path)}):
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
            try:
                with open(tmp_path, "wb") as handle:
                    handle.write(data)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_path, path)
            finally:
                tmp_path.unlink(missing_ok=True)
            logfire.debug("Asset written", path=str(path), bytes=len(data))
            return path

    def delete(self, subject_id: str) -> bool:
        """Remove the asset for ``subject_id``; absent files are ignored.

        Returns:
            ``True`` when a file was removed.
        """
        path = self.path_for(subject_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logfire.info("Deleted asset", path=str(path))
        return True


def file_url(path_or_url: Path | str) -> str:
    """Return a URL suitable for image loaders.

    Remote ``http(s)://`` URLs and existing ``file://`` URLs are returned
    unchanged; plain filesystem paths gain a ``file://`` prefix.
    """
    value = str(path_or_url)
    if value.startswith(("http://", "https://", "file://")):
        return value
    return f"file://{value}"


__all__ = ["ASSET_SUFFIX", "AssetStore", "file_url"]
