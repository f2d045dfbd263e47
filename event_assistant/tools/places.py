"""Venue tools: search approved places and read their reviews."""

from __future__ import annotations

import logging
from typing import Any

from .formatting import place_to_dict
from .params import GetAvailablePlacesParams, GetPlaceReviewsParams
from .registry import ToolContext, ToolDescriptor
from .results import PLACE_NOT_FOUND, failure

logger = logging.getLogger(__name__)


async def get_available_places(
    params: GetAvailablePlacesParams, ctx: ToolContext
) -> list[dict[str, Any]]:
    places = await ctx.store.search_places(
        params.city,
        place_type=params.type,
        min_capacity=params.min_capacity,
        limit=params.limit,
    )
    logger.info("Found %d places in '%s' (type=%s)", len(places), params.city, params.type)
    return [place_to_dict(place) for place in places]


async def get_place_reviews(params: GetPlaceReviewsParams, ctx: ToolContext) -> dict[str, Any]:
    place = await ctx.store.get_place(params.place_id)
    if place is None:
        return failure(
            PLACE_NOT_FOUND,
            f"No se encontró el lugar con ID {params.place_id}. "
            "Por favor busca lugares disponibles primero.",
            {"placeId": params.place_id},
        )

    reviews = await ctx.store.list_place_reviews(place.id, limit=params.limit)
    average = (
        round(sum(r.calification for r in reviews) / len(reviews), 1) if reviews else None
    )
    return {
        "success": True,
        "place": place_to_dict(place),
        "averageRating": average,
        "reviews": [
            {
                "rating": r.calification,
                "comment": r.comment,
                "author": r.author_name,
                "date": r.created_at.date().isoformat(),
            }
            for r in reviews
        ],
        "message": (
            f"{len(reviews)} reseñas para {place.name}"
            if reviews
            else f"{place.name} todavía no tiene reseñas."
        ),
    }


PLACE_TOOLS = [
    ToolDescriptor(
        name="get_available_places",
        description=(
            "Get a list of available places/venues where events can be created. "
            "City is REQUIRED: use the user's registered city, or ask for it if there "
            "is none. Returns multiple options for the user to choose from."
        ),
        parameters=GetAvailablePlacesParams,
        handler=get_available_places,
    ),
    ToolDescriptor(
        name="get_place_reviews",
        description=(
            "Get user reviews and the average rating of a place. Use it when the user "
            "asks for more details or opinions about a place you already listed."
        ),
        parameters=GetPlaceReviewsParams,
        handler=get_place_reviews,
    ),
]
