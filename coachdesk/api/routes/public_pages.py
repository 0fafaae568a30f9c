"""
Public marketing page API endpoints.

Each coach has one page, served to visitors at /pages/{slug}.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from ...core.coaching.models import Testimonial
from ..dependencies import ApiKey, CurrentCoach, PublicPageRepositoryDep
from ..schemas import CreatedResponse, DomainResponse

logger = logging.getLogger(__name__)

router = APIRouter()


class TestimonialModel(DomainResponse):
    name: str = Field(min_length=1)
    text: str = Field(min_length=1)
    image: Optional[str] = None


class PublicPageRequest(BaseModel):
    slug: str = Field(
        min_length=1,
        max_length=100,
        description="Lowercased; characters other than a-z, 0-9 and '-' become '-'"
    )
    title: str = Field(min_length=1, max_length=200)
    contact_email: str = Field(min_length=3, max_length=320)
    theme: str = "default"
    primary_color: str = Field("#3b82f6", pattern=r"^#[0-9a-fA-F]{6}$")
    hero_title: str = ""
    hero_subtitle: Optional[str] = None
    about_text: Optional[str] = None
    testimonials: list[TestimonialModel] = Field(default_factory=list)
    logo: Optional[str] = None
    client_images: list[str] = Field(default_factory=list)
    is_active: bool = True


class PublicPageResponse(DomainResponse):
    id: str
    slug: str
    title: str
    contact_email: str
    theme: str
    primary_color: str
    hero_title: str
    hero_subtitle: Optional[str] = None
    about_text: Optional[str] = None
    testimonials: list[TestimonialModel]
    logo: Optional[str] = None
    client_images: list[str]
    is_active: bool


@router.get(
    "/public-page",
    response_model=PublicPageResponse,
    summary="Get my public page",
    responses={404: {"description": "No page yet"}},
)
async def get_my_page(
    coach_id: CurrentCoach,
    repository: PublicPageRepositoryDep,
) -> PublicPageResponse:
    page = repository.get_mine(coach_id)
    if page is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Public page not found"
        )
    return PublicPageResponse.model_validate(page, from_attributes=True)


@router.put(
    "/public-page",
    response_model=CreatedResponse,
    summary="Create or update my public page",
    responses={409: {"description": "Slug already taken by another coach"}},
)
async def save_my_page(
    request: PublicPageRequest,
    coach_id: CurrentCoach,
    repository: PublicPageRepositoryDep,
) -> CreatedResponse:
    fields = request.model_dump(exclude={"testimonials"})
    fields["testimonials"] = [Testimonial(**t.model_dump()) for t in request.testimonials]

    page_id = repository.create_or_update(coach_id, **fields)

    logger.info("Public page saved", extra={"coach_id": coach_id, "page_id": page_id})

    return CreatedResponse(id=page_id)


@router.get(
    "/pages/{slug}",
    response_model=PublicPageResponse,
    summary="View a coach's page",
    responses={404: {"description": "No active page with this slug"}},
)
async def get_page_by_slug(
    slug: str,
    api_key: ApiKey,
    repository: PublicPageRepositoryDep,
) -> PublicPageResponse:
    page = repository.get_by_slug(slug)
    if page is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Page not found"
        )
    return PublicPageResponse.model_validate(page, from_attributes=True)
