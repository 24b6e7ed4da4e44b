import logging

from fastapi import APIRouter, HTTPException, Request

from tripsmith.domain.route_synthesis.exceptions import RouteSynthesisError
from tripsmith.domain.route_synthesis.service import RouteSynthesizer
from tripsmith.models.schemas import GenerateRouteRequest, GenerateRouteResponse

router = APIRouter()
logger = logging.getLogger(__name__)


def get_synthesizer(request: Request) -> RouteSynthesizer:
    return request.app.state.route_synthesizer


@router.post("/generate", response_model=GenerateRouteResponse)
async def generate_route(payload: GenerateRouteRequest, request: Request) -> GenerateRouteResponse:
    """Generate a cycling or trekking route for a country (and optional city)."""

    synthesizer = get_synthesizer(request)
    try:
        route = await synthesizer.synthesize(payload.country, payload.trip_type, payload.city)
    except RouteSynthesisError as exc:
        logger.error("Route generation failed: %s", exc.message)
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc

    return GenerateRouteResponse(message="Route generated successfully", route=route)
