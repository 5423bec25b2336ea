"""Mapbox geocoding client: free-text address to coordinates."""

from __future__ import annotations

from urllib.parse import quote

import requests

from parkscrape.common.errors import GeocodingError
from parkscrape.common.models import Coordinates

MAPBOX_PLACES_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places"


class MapboxGeocoder:
    def __init__(
        self,
        access_token: str | None,
        *,
        base_url: str = MAPBOX_PLACES_URL,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def close(self) -> None:
        self.session.close()

    def geocode(self, address: str) -> Coordinates:
        if not address or not address.strip():
            raise GeocodingError("Address cannot be empty")
        if not self.access_token:
            raise GeocodingError("Mapbox access token is not configured")

        url = f"{self.base_url}/{quote(address.strip(), safe='')}.json"
        try:
            response = self.session.get(
                url,
                params={"access_token": self.access_token, "limit": 1},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise GeocodingError(f"Geocoding request failed for {address!r}: {exc}") from exc

        if response.status_code != 200:
            raise GeocodingError(f"Geocoding API returned status {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise GeocodingError("Failed to decode geocoding response") from exc

        features = payload.get("features") or []
        if not features:
            raise GeocodingError(f"No geocoding results found for address: {address}")

        # Mapbox centers are [longitude, latitude].
        center = features[0].get("center") or []
        if len(center) < 2:
            raise GeocodingError("Invalid coordinates in geocoding response")
        try:
            return Coordinates(latitude=float(center[1]), longitude=float(center[0]))
        except (TypeError, ValueError) as exc:
            raise GeocodingError("Invalid coordinates in geocoding response") from exc
