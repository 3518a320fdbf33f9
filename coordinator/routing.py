"""
Nearest storage node selection by great-circle distance.
"""
import math
from typing import List, Sequence

from pydantic import BaseModel

from coordinator.config import StorageNode
from coordinator.geo import ClientPosition

EARTH_RADIUS_KM = 6371.0


class NodeDistance(BaseModel):
    node_id: str
    base_url: str
    port: str
    distance_km: float
    is_nearest: bool = False


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_to(position: ClientPosition, node: StorageNode) -> float:
    return haversine_km(position.latitude, position.longitude, node.latitude, node.longitude)


def nearest(position: ClientPosition, roster: Sequence[StorageNode]) -> StorageNode:
    """
    Return the roster node closest to position.

    Only a strictly smaller distance replaces the current best, so on a tie
    the node listed first wins.
    """
    best = None
    min_dist = math.inf
    for node in roster:
        d = distance_to(position, node)
        if d < min_dist:
            min_dist = d
            best = node

    if best is None:
        raise ValueError("Cannot select a nearest node from an empty roster")
    return best


def distance_table(position: ClientPosition, roster: Sequence[StorageNode]) -> List[NodeDistance]:
    chosen = nearest(position, roster)
    return [
        NodeDistance(
            node_id=node.node_id,
            base_url=node.base_url,
            port=node.port,
            distance_km=round(distance_to(position, node), 3),
            is_nearest=node.node_id == chosen.node_id,
        )
        for node in roster
    ]
