from typing import List, Optional, Type, TypeVar

from pydantic import BaseModel

from daansetu.core.geo import calculate_distance, valid_location
from daansetu.services.documents import parse

M = TypeVar("M", bound=BaseModel)


def filter_nearby(docs: List[dict], lat: float, lng: float, radius_km: float) -> List[dict]:
    """
    Keep documents within ``radius_km`` of (lat, lng), annotated with
    ``distance``. Documents without a location are kept with distance None.
    Located results come first, nearest first; unlocated keep their order.
    """
    located, unlocated = [], []
    for d in docs:
        loc = d.get("location")
        if not valid_location(loc):
            unlocated.append({**d, "distance": None})
            continue
        dist = calculate_distance(lat, lng, float(loc["lat"]), float(loc["lng"]))
        if dist <= radius_km:
            located.append({**d, "distance": dist})
    located.sort(key=lambda d: d["distance"])
    return located + unlocated


async def find_nearby(repo, collection: str, model: Type[M], status: Optional[str],
                      lat: float, lng: float, radius_km: float) -> List[M]:
    filters = {"status": status} if status else None
    candidates = await repo.find_near(collection, filters, lat, lng, radius_km,
                                      sort=[("created_at", -1)])
    return [parse(model, d) for d in filter_nearby(candidates, lat, lng, radius_km)]
