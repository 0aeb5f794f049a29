"""Primary file selection for stream sessions.

The primary file is what ``/`` streams. It is resolved once when the engine
reports its file list and only changes through :meth:`FileSelector.set_primary`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Sequence

from peerstream.models import FileSortKey
from peerstream.utils.exceptions import FileSelectionError

if TYPE_CHECKING:  # pragma: no cover
    from peerstream.engine.protocol import SwarmEngine, SwarmFile

FilePredicate = Callable[["SwarmFile"], bool]

_SORT_KEYS: dict[FileSortKey, Callable[[SwarmFile], object]] = {
    FileSortKey.PATH: lambda f: f.path,
    FileSortKey.NAME: lambda f: f.name,
    FileSortKey.LENGTH: lambda f: f.length,
}


def include_all(_file: SwarmFile) -> bool:
    """Default inclusion predicate for listings."""
    return True


def resolve_primary(
    files: Sequence[SwarmFile],
    explicit_index: int | None = None,
) -> SwarmFile:
    """Pick the primary file and mark it selected.

    Args:
        files: Engine files in enumeration order
        explicit_index: File index requested by the user

    Returns:
        The explicitly requested file, or else the largest one (first wins on ties)

    Raises:
        FileSelectionError: If there are no files or the index is out of range

    """
    if not files:
        msg = "Torrent has no files"
        raise FileSelectionError(msg)

    if explicit_index is not None:
        if isinstance(explicit_index, bool) or not isinstance(explicit_index, int):
            msg = f"File index must be an integer, got {explicit_index!r}"
            raise FileSelectionError(msg)
        if not 0 <= explicit_index < len(files):
            msg = f"File index {explicit_index} out of range"
            raise FileSelectionError(msg, details={"file_count": len(files)})
        primary = files[explicit_index]
    else:
        primary = files[0]
        for candidate in files[1:]:
            if candidate.length > primary.length:
                primary = candidate

    primary.select()
    return primary


class FileSelector:
    """Owns the primary file reference and the display order of the listing."""

    def __init__(self, engine: SwarmEngine, sort: FileSortKey = FileSortKey.NONE):
        """Initialize selector.

        Args:
            engine: Engine whose files are selected
            sort: Display order used by :meth:`listing`

        """
        self.engine = engine
        self.sort = sort
        self.all_selected = False
        self._primary: SwarmFile | None = None
        self.logger = logging.getLogger(__name__)

    @property
    def primary(self) -> SwarmFile:
        """The current primary file."""
        if self._primary is None:
            msg = "Primary file not resolved yet"
            raise FileSelectionError(msg)
        return self._primary

    @property
    def primary_index(self) -> int:
        """Index of the current primary file."""
        return self.primary.index

    @property
    def resolved(self) -> bool:
        return self._primary is not None

    def resolve(self, explicit_index: int | None = None) -> SwarmFile:
        """Resolve the primary file from the engine's file list."""
        self._primary = resolve_primary(self.engine.files, explicit_index)
        self.logger.info(
            "Primary file %d: %s (%d bytes)",
            self._primary.index,
            self._primary.path,
            self._primary.length,
        )
        return self._primary

    def set_primary(self, index: int) -> SwarmFile:
        """Make another file primary.

        The previous primary is deselected unless every file was selected.
        """
        previous = self._primary
        primary = resolve_primary(self.engine.files, index)
        if previous is not None and previous is not primary and not self.all_selected:
            previous.deselect()
        self._primary = primary
        self.logger.info("Primary file changed to %d: %s", primary.index, primary.path)
        return primary

    def select_all(self) -> None:
        """Select every file in the torrent."""
        for f in self.engine.files:
            f.select()
        self.all_selected = True
        self.logger.info("Selected all %d files", len(self.engine.files))

    def pause(self) -> None:
        """Deselect the primary file so the engine loses interest."""
        self.primary.deselect()

    def resume(self) -> None:
        """Reselect the primary file."""
        self.primary.select()

    def listing(self, predicate: FilePredicate = include_all) -> list[SwarmFile]:
        """Files passing ``predicate`` in display order.

        Sorting only affects the order of the returned list; file indices and
        the primary file are unchanged.
        """
        files = [f for f in self.engine.files if predicate(f)]
        key = _SORT_KEYS.get(self.sort)
        if key is not None:
            files.sort(key=key)
        return files
