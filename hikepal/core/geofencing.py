import math
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from hikepal.models.geo import Annotation, Coordinate, HazardZone

def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate distance between two points using Haversine formula
    Returns distance in kilometers
    """
    R = 6371  # Earth's radius in kilometers
    
    lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    
    a = math.sin(dlat/2)**2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon/2)**2
    c = 2 * math.asin(math.sqrt(a))
    
    return R * c

def distance_meters(a: Coordinate, b: Coordinate) -> float:
    return calculate_distance(a.latitude, a.longitude, b.latitude, b.longitude) * 1000

def path_length_meters(path: Sequence[Coordinate]) -> float:
    """Sum of great-circle segment lengths along an ordered path"""
    return sum(
        distance_meters(path[i - 1], path[i])
        for i in range(1, len(path))
    )

def is_within_hazard(coordinate: Coordinate, zone: HazardZone) -> bool:
    return distance_meters(coordinate, zone.position) <= zone.radius_meters

def get_nearby_annotations(
    coordinate: Coordinate,
    annotations: Iterable[Annotation],
    radius_m: float = 500
) -> List[Tuple[Annotation, float]]:
    """
    Get all annotations within the given radius, nearest first
    Args:
        coordinate: Center point
        annotations: Candidates to filter
        radius_m: Search radius in meters
    """
    nearby = []
    
    for annotation in annotations:
        distance = distance_meters(coordinate, annotation.position)
        if distance <= radius_m:
            nearby.append((annotation, round(distance, 0)))
    
    # Sort by distance
    nearby.sort(key=lambda x: x[1])
    return nearby

def validate_coordinates(latitude: float, longitude: float) -> Dict[str, Any]:
    """
    Coordinate validation
    Returns validation result with details
    """
    result: Dict[str, Any] = {
        "valid": False,
        "errors": []
    }
    
    if not (-90 <= latitude <= 90):
        result["errors"].append("Invalid latitude: must be between -90 and 90")
    
    if not (-180 <= longitude <= 180):
        result["errors"].append("Invalid longitude: must be between -180 and 180")
    
    result["valid"] = not result["errors"]
    return result
