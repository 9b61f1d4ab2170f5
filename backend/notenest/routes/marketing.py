"""
NoteNest Backend — Marketing Route
===================================

GET /api/marketing/heroes returns the decorative landing-page images.
The list is static, so responses are cacheable for a day.
"""

from fastapi import APIRouter, Response

from notenest.schemas.views import HeroesResponse
from notenest.views.heroes import heroes

router = APIRouter(prefix="/api/marketing", tags=["Marketing"])


@router.get("/heroes", response_model=HeroesResponse, summary="Landing page hero images")
async def get_heroes(response: Response) -> HeroesResponse:
    response.headers["Cache-Control"] = "public, max-age=86400"
    return heroes()
