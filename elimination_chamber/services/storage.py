"""
Local map storage - maps directory plus a catalog of playable maps
"""
import logging
import os
import stat
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional, Union

from elimination_chamber.errors import StorageFailure
from elimination_chamber.models import LocalMap, MAP_FILE_SUFFIX


logger = logging.getLogger(__name__)

DEFAULT_FILE_MODE = 0o644


def write_bytes_atomic(path: Path, data: bytes) -> None:
    """
    Write to a temporary sibling file, then rename it over the target

    The result keeps the mode of the file it replaces, or gets
    DEFAULT_FILE_MODE when new, so the game server can read it.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        mode = stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        mode = DEFAULT_FILE_MODE

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class LocalMapStorage:
    """
    Index of maps available on the host server

    Args:
        maps_path: Directory downloaded maps are written to
    """

    def __init__(self, maps_path: Union[str, Path]) -> None:
        self.maps_path = Path(maps_path)
        self._catalog: Dict[str, LocalMap] = {}
        self._lock = threading.Lock()

    def path_for(self, filename: str) -> Path:
        return self.maps_path / filename

    def scan(self) -> int:
        """
        Register maps already resident in the maps directory

        Returns:
            Number of maps in the catalog after the scan
        """
        if self.maps_path.is_dir():
            for path in sorted(self.maps_path.glob(f"*{MAP_FILE_SUFFIX}")):
                self.register(path)
        with self._lock:
            count = len(self._catalog)
        logger.info(f"Local storage has {count} maps in {self.maps_path}")
        return count

    def exists(self, filename: str) -> Optional[LocalMap]:
        """Known map with this filename, or None"""
        with self._lock:
            known = self._catalog.get(filename)
        if known is not None:
            return known

        path = self.path_for(filename)
        if path.is_file():
            return self.register(path)
        return None

    def save(self, path: Union[str, Path], data: bytes) -> None:
        """
        Write map bytes to disk

        Raises:
            StorageFailure: On any filesystem error (disk full, permissions)
        """
        try:
            write_bytes_atomic(Path(path), data)
        except OSError as exc:
            raise StorageFailure("Failed to save map file", path=str(path), cause=repr(exc)) from exc

    def register(self, path: Union[str, Path], display_name: Optional[str] = None) -> LocalMap:
        """Add a map file to the catalog"""
        path = Path(path)
        local_map = LocalMap(
            filename=path.name,
            display_name=display_name or path.name[: -len(MAP_FILE_SUFFIX)],
            storage_path=path.as_posix(),
        )
        with self._lock:
            self._catalog[local_map.filename] = local_map
        return local_map

    def count(self) -> int:
        with self._lock:
            return len(self._catalog)
