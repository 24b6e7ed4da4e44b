from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GenerateRouteRequest(CamelModel):
    country: str = Field(..., min_length=1, max_length=100, description="Destination country")
    trip_type: Literal["cycling", "trekking"] = Field(..., description="Activity type")
    city: Optional[str] = Field(default=None, max_length=100, description="Optional city to centre the route on")


class DailyRoute(CamelModel):
    day: int
    start_point: str
    end_point: str
    distance_km: float
    coordinates: List[List[float]]
    waypoints: List[str] = []


class RouteData(CamelModel):
    coordinates: List[List[float]]
    waypoints: List[str] = []
    daily_routes: List[DailyRoute]
    total_distance_km: float
    estimated_duration: str
    difficulty: str


class GeocodedWaypoint(CamelModel):
    name: str
    lat: float
    lon: float
    source: str
    accuracy: str = "unknown"


class RoutingMetadata(CamelModel):
    source: str
    profile: str
    measured_distance_km: Optional[float] = None
    measured_duration_min: Optional[float] = None
    fallback_tier: int = Field(default=0, ge=0, le=3)
    geocoded_waypoints: List[GeocodedWaypoint] = []
    loop_quality_score: Optional[float] = None
    path_type: Optional[str] = None
    overlap_percentage: Optional[float] = None


class GenerationMetadata(CamelModel):
    llm_model: str
    prompt: str
    processing_time_ms: int
    generated_at: datetime
    attempt_number: int
    image_retrieved: bool = False


class SynthesizedRoute(CamelModel):
    country: str
    city: Optional[str] = None
    trip_type: Literal["cycling", "trekking"]
    route_data: RouteData
    image_url: Optional[str] = None
    routing_metadata: RoutingMetadata
    generation_metadata: GenerationMetadata


class GenerateRouteResponse(CamelModel):
    message: str
    route: SynthesizedRoute
    generated: bool = True
    saved: bool = False


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
