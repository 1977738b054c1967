"""
DevCamper Backend — Abstract Geocoder Interface
=================================================

What:  Contract for address → coordinates providers.
Why:   BootcampService and the seeder only need "geocode this address";
       which provider answers (MapQuest today) is a configuration detail.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class GeocodeResult:
    """One geocoded address."""
    latitude: float
    longitude: float
    formatted_address: str
    street: Optional[str] = None
    city: Optional[str] = None
    state_code: Optional[str] = None
    zipcode: Optional[str] = None
    country_code: Optional[str] = None

    def to_point(self) -> Dict[str, Any]:
        """
        GeoJSON-style point document stored in Bootcamp.location.

        Coordinates are [longitude, latitude], GeoJSON order.
        """
        return {
            "type": "Point",
            "coordinates": [self.longitude, self.latitude],
            "formatted_address": self.formatted_address,
            "street": self.street,
            "city": self.city,
            "state": self.state_code,
            "zipcode": self.zipcode,
            "country": self.country_code,
        }


class Geocoder(ABC):
    """
    Abstract geocoding provider.

    Contract:
        - geocode() returns the best match for an address
        - an address with no match raises ValidationError (the client can fix it)
        - provider failures are wrapped in GeocoderError after retries
    """

    @abstractmethod
    async def geocode(self, address: str) -> GeocodeResult:
        """
        Resolve an address (or a bare zipcode) to coordinates.

        Raises:
            ValidationError: No location matches the address.
            GeocoderError: The provider failed after all retries.
            CircuitBreakerOpenError: Too many recent provider failures.
        """
        ...

    @abstractmethod
    def health_status(self) -> str:
        """Cheap, local status for /health: "available" or "circuit_open"."""
        ...
