"""
Map acquisition pipeline

Turns queued map descriptors into maps the game server can play:

  queue head -> local dedup check -> download -> save -> register -> playlist

A map already present in local storage is never downloaded again, and the
playlist never lists a map twice.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, Optional

from elimination_chamber.errors import RemoteUnavailable, StorageFailure
from elimination_chamber.models import LocalMap, MapDescriptor, SearchFilters
from elimination_chamber.services.exchange_client import MapExchangeClient
from elimination_chamber.services.map_queue import MapQueue
from elimination_chamber.services.playlist import MatchSettingsPlaylist
from elimination_chamber.services.storage import LocalMapStorage


logger = logging.getLogger(__name__)


class MapAcquisitionPipeline:
    """
    Resolves queue entries into local, playlisted maps

    Args:
        client: Map exchange client
        queue: Backlog of descriptors to consume
        storage: Local map storage index
        playlist: Match-settings playlist file
        filters: Search filters used by refill()
    """

    def __init__(
        self,
        client: MapExchangeClient,
        queue: MapQueue,
        storage: LocalMapStorage,
        playlist: MatchSettingsPlaylist,
        filters: Optional[SearchFilters] = None,
    ) -> None:
        self.client = client
        self.queue = queue
        self.storage = storage
        self.playlist = playlist
        self.filters = filters or SearchFilters()
        self._id_locks: Dict[int, list] = {}    # id -> [lock, holders and waiters]
        self._id_locks_guard = threading.Lock()

    def use_filters(self, filters: SearchFilters) -> None:
        self.filters = filters

    def refill(self, target_count: int) -> int:
        """
        Search the exchange and queue the results

        Args:
            target_count: Number of maps to ask for

        Returns:
            Number of descriptors added to the queue (0 is not an error)

        Raises:
            RemoteUnavailable, InvalidResponse: Propagated from the search,
                in which case nothing is queued
        """
        descriptors = self.client.search(self.filters, target_count)
        added = self.queue.enqueue_many(descriptors)
        logger.info(f"Queued {added} maps from exchange ({self.queue.size()} in queue)")
        return added

    def resolve_next(self, guard: Optional[Callable[[], bool]] = None) -> Optional[LocalMap]:
        """
        Materialize the next queued map and make sure it is in the playlist

        Never refills the queue itself. A descriptor whose download or save
        fails is dropped, not re-queued.

        Args:
            guard: Checked just before the playlist is touched; when it returns
                False the result is discarded (the requesting session ended)

        Returns:
            The LocalMap, or None if the queue is empty or resolution failed
        """
        descriptor = self.queue.dequeue_one()
        if descriptor is None:
            logger.warning("Map queue is empty")
            return None

        local_map = self._materialize(descriptor)
        if local_map is None:
            return None

        if guard is not None and not guard():
            logger.info(f"Session ended while resolving map {descriptor.external_id}, result discarded")
            return None

        try:
            self.playlist.append(local_map.storage_path)
        except StorageFailure as exc:
            logger.error(f"Failed to add map {descriptor.external_id} to playlist: {exc}")
            return None

        return local_map

    @contextmanager
    def _locked(self, external_id: int) -> Iterator[None]:
        """Hold the lock for one map id; the entry is dropped once unused"""
        with self._id_locks_guard:
            entry = self._id_locks.setdefault(external_id, [threading.Lock(), 0])
            entry[1] += 1

        try:
            with entry[0]:
                yield
        finally:
            with self._id_locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._id_locks[external_id]

    def _materialize(self, descriptor: MapDescriptor) -> Optional[LocalMap]:
        filename = descriptor.filename

        # check, download and register must not interleave for the same id
        with self._locked(descriptor.external_id):
            existing = self.storage.exists(filename)
            if existing is not None:
                logger.info(f"Map {descriptor.name} ({descriptor.external_id}) already exists, reusing it")
                descriptor.materialized = True
                return existing

            try:
                data = self.client.download(descriptor.external_id)
            except RemoteUnavailable as exc:
                logger.error(f"Failed to download map {descriptor.external_id}: {exc}")
                return None

            path = self.storage.path_for(filename)
            try:
                self.storage.save(path, data)
            except StorageFailure as exc:
                logger.error(f"Failed to save map {descriptor.external_id}: {exc}")
                return None

            local_map = self.storage.register(path, display_name=descriptor.name)
            descriptor.materialized = True

        logger.info(f"Downloaded map {descriptor.name} ({descriptor.external_id}) by {descriptor.author}")
        return local_map
