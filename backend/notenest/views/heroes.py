"""Decorative images of the marketing landing page."""

from notenest.schemas.views import HeroImage, HeroesResponse

HERO_IMAGES = (
    HeroImage(src="/file.svg", dark_src="/filedark.svg", alt="Files"),
    HeroImage(
        src="/airplane.svg",
        dark_src="/airplane-dark.svg",
        alt="Airplane",
        hide_on_mobile=True,
    ),
)


def heroes() -> HeroesResponse:
    return HeroesResponse(images=list(HERO_IMAGES))
