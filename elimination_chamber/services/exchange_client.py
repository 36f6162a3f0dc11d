"""
Map exchange client - randomized map search and map downloads

Remote API (Trackmania Exchange):
  GET /mapsearch2/search?api=on&format=json&limit=N&random=1&...
      -> {"results": [{"TrackID", "Name", "Username", "AuthorTime"}, ...]}
  GET /maps/download/<id>
      -> raw .Map.Gbx bytes

The remote "random" flag is not trusted: results are shuffled locally and
successive searches may return the same maps.
"""
import logging
import random
from typing import Any, Dict, List, Optional

import httpx

from elimination_chamber.errors import InvalidResponse, RemoteUnavailable
from elimination_chamber.models import ExchangeSettings, MapDescriptor, SearchFilters


logger = logging.getLogger(__name__)

SEARCH_PATH = "/mapsearch2/search"
DOWNLOAD_PATH = "/maps/download/{external_id}"


def build_search_params(filters: SearchFilters, desired_count: int) -> Dict[str, Any]:
    """
    Build query parameters for a randomized search

    Twice the desired count is requested so the local shuffle has room.

    Example:
        >>> build_search_params(SearchFilters(), 10)["length"]
        '30,90'
    """
    params = {
        "api": "on",
        "format": "json",
        "limit": desired_count * 2,
        "random": "1",
        "style": filters.style,
        "lengthop": "1",    # between
        "length": f"{filters.length_min},{filters.length_max}",
        "uploaded": f"since:{filters.uploaded_after}",
    }
    if filters.difficulty:
        params["difficulty"] = filters.difficulty
    return params


def parse_search_result(entry: Dict[str, Any]) -> MapDescriptor:
    """Convert one search result entry to a MapDescriptor"""
    try:
        return MapDescriptor(
            external_id=int(entry["TrackID"]),
            name=str(entry["Name"]),
            author=str(entry["Username"]),
            author_time_ms=int(entry["AuthorTime"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidResponse("Malformed search result entry", cause=repr(exc)) from exc


class MapExchangeClient:
    """
    Thin client over the map exchange HTTP API

    Holds no state besides its settings and the HTTP connection pool.
    """

    def __init__(
        self,
        settings: Optional[ExchangeSettings] = None,
        *,
        http_client: Optional[httpx.Client] = None,
        rng: Optional[random.Random] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.settings = settings or ExchangeSettings()
        self._rng = rng or random.Random()
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(
            base_url=self.settings.base_url,
            timeout=self.settings.timeout_sec,
            verify=self.settings.verify_tls,
            headers={"User-Agent": self.settings.user_agent},
            follow_redirects=True,
            transport=transport,
        )

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def search(self, filters: SearchFilters, desired_count: int) -> List[MapDescriptor]:
        """
        Search random maps matching the filters

        Args:
            filters: Style, length range, upload date and optional difficulty
            desired_count: Number of maps wanted

        Returns:
            At most desired_count descriptors (materialized=False), possibly empty

        Raises:
            RemoteUnavailable: Transport error, timeout or non-2xx status
            InvalidResponse: Payload absent, not JSON or without "results"

        Malformed entries inside "results" are skipped.
        """
        params = build_search_params(filters, desired_count)
        logger.info(f"Searching map exchange: {params}")

        try:
            response = self._http.get(SEARCH_PATH, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise RemoteUnavailable(
                "Map search failed", status=exc.response.status_code
            ) from exc
        except httpx.HTTPError as exc:
            raise RemoteUnavailable("Map search request failed", cause=repr(exc)) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise InvalidResponse("Map search returned invalid JSON") from exc

        if not isinstance(data, dict) or not isinstance(data.get("results"), list):
            raise InvalidResponse("Map search response has no results")

        # parse everything first so a bad entry is skipped whatever the shuffle order
        descriptors = []
        for entry in data["results"]:
            try:
                descriptors.append(parse_search_result(entry))
            except InvalidResponse as exc:
                logger.warning(f"Skipping search result: {exc}")

        self._rng.shuffle(descriptors)
        selected = descriptors[:desired_count]

        logger.info(
            f"Map search returned {len(data['results'])} results "
            f"({len(descriptors)} usable), selected {len(selected)}"
        )
        return selected

    def download(self, external_id: int) -> bytes:
        """
        Download the .Map.Gbx file of a map

        Raises:
            RemoteUnavailable: Non-200 status, transport error or timeout
        """
        path = DOWNLOAD_PATH.format(external_id=external_id)
        try:
            response = self._http.get(path)
        except httpx.HTTPError as exc:
            raise RemoteUnavailable(
                "Map download request failed", external_id=external_id, cause=repr(exc)
            ) from exc

        if response.status_code != 200:
            raise RemoteUnavailable(
                "Map download failed", external_id=external_id, status=response.status_code
            )

        return response.content
