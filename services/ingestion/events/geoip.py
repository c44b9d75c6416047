"""GeoIP client implementations."""

from __future__ import annotations

import geoip2.database
import geoip2.errors

from packages.tally_shared.logging import get_logger
from services.ingestion.events.domain import ClientLocation
from services.ingestion.events.interfaces import GeoIPClient

_LOGGER = get_logger(__name__)


class NullGeoIPClient(GeoIPClient):
    """GeoIP client used when no database is configured."""

    def locate(self, client_ip: str) -> ClientLocation:
        del client_ip
        return ClientLocation()


class MaxMindGeoIPClient(GeoIPClient):
    """GeoIP client over a local MaxMind City database."""

    def __init__(self, *, database_path: str) -> None:
        self._reader = geoip2.database.Reader(database_path)

    def locate(self, client_ip: str) -> ClientLocation:
        """Resolve country, most specific subdivision and city for one address."""
        if not client_ip:
            return ClientLocation()
        try:
            response = self._reader.city(client_ip)
        except (geoip2.errors.AddressNotFoundError, ValueError):
            return ClientLocation()
        except geoip2.errors.GeoIP2Error as exc:
            _LOGGER.warning(
                "GeoIP lookup failed: exception_type=%s",
                type(exc).__name__,
                exc_info=exc,
            )
            return ClientLocation()
        country = response.country.iso_code or response.registered_country.iso_code
        return ClientLocation(
            country_code=country or "",
            region_name=response.subdivisions.most_specific.name or "",
            city=response.city.name or "",
        )

    def close(self) -> None:
        self._reader.close()
