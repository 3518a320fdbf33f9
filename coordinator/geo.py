"""
Client address extraction and approximate geolocation.

PrefixGeoResolver is a stand-in for a real geo-IP lookup: it knows a few
address prefixes and sends everything else to one default location.
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

from fastapi import Request
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class ClientPosition(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float


SINGAPORE = ClientPosition(latitude=1.3521, longitude=103.8198)
NEW_YORK = ClientPosition(latitude=40.7128, longitude=-74.0060)
LONDON = ClientPosition(latitude=51.5074, longitude=-0.1278)

DEFAULT_PREFIXES: Tuple[Tuple[str, ClientPosition], ...] = (
    ("127.", SINGAPORE),
    ("192.168.1.", NEW_YORK),
)


class GeoResolver(ABC):
    """Maps a client network address to an approximate position."""

    @abstractmethod
    def resolve(self, address: str) -> ClientPosition:
        pass


class PrefixGeoResolver(GeoResolver):
    def __init__(self,
                 prefixes: Sequence[Tuple[str, ClientPosition]] = DEFAULT_PREFIXES,
                 default: ClientPosition = LONDON):
        self.prefixes = tuple(prefixes)
        self.default = default

    def resolve(self, address: str) -> ClientPosition:
        for prefix, position in self.prefixes:
            if address.startswith(prefix):
                return position
        logger.debug(f"No prefix matched {address!r}, using default position")
        return self.default


def client_address(request: Request) -> str:
    """Best guess at the caller's address, honouring proxy headers."""
    forwarded: Optional[str] = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else ""
