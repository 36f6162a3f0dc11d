"""
Match-settings playlist file

Format: UTF-8 text, one map path per line. Lines starting with '#' and blank
lines are ignored. The file is always rewritten in full, header first.
"""
import logging
import threading
from pathlib import Path
from typing import List, Union

from elimination_chamber.errors import StorageFailure
from elimination_chamber.services.storage import write_bytes_atomic


logger = logging.getLogger(__name__)

PLAYLIST_HEADER = "# EliminationChamber Matchsettings"


def parse_playlist(content: str) -> List[str]:
    """
    Extract map paths from playlist content

    Example:
        >>> parse_playlist("# header\\nMaps/a.Map.Gbx\\n\\n")
        ['Maps/a.Map.Gbx']
    """
    paths = []
    for line in content.splitlines():
        line = line.strip()
        if line and not line.startswith('#'):
            paths.append(line)
    return paths


def render_playlist(paths: List[str]) -> str:
    return PLAYLIST_HEADER + "\n" + "".join(f"{path}\n" for path in paths)


class MatchSettingsPlaylist:
    """Playlist file the game mode rotates through"""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def read(self) -> List[str]:
        """
        Map paths currently in the playlist (empty if the file is missing)

        Raises:
            StorageFailure: If the file exists but cannot be read
        """
        if not self.path.exists():
            return []
        try:
            content = self.path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageFailure("Failed to read playlist", path=str(self.path), cause=repr(exc)) from exc
        return parse_playlist(content)

    def append(self, map_path: str) -> bool:
        """
        Add a map path unless already present

        Returns:
            True if the file was rewritten, False if the path was already there

        Raises:
            StorageFailure: If reading or rewriting the file fails
        """
        with self._lock:
            paths = self.read()
            if map_path in paths:
                return False

            paths.append(map_path)
            try:
                write_bytes_atomic(self.path, render_playlist(paths).encode('utf-8'))
            except OSError as exc:
                raise StorageFailure("Failed to write playlist", path=str(self.path), cause=repr(exc)) from exc

        logger.info(f"Added {map_path} to playlist {self.path}")
        return True
