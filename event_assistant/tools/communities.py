"""Community tools: events of the caller's communities and joining one."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from .formatting import event_to_dict
from .params import EventWindowParams, JoinCommunityParams
from .registry import ToolContext, ToolDescriptor
from .results import ALREADY_MEMBER, COMMUNITY_NOT_FOUND, failure

logger = logging.getLogger(__name__)


async def get_community_events(
    params: EventWindowParams, ctx: ToolContext
) -> list[dict[str, Any]]:
    now = ctx.resolver.now()
    events = await ctx.store.list_community_events(
        ctx.user_id, now, now + timedelta(days=params.days)
    )
    return [event_to_dict(e, ctx.resolver.timezone) for e in events]


async def join_community(params: JoinCommunityParams, ctx: ToolContext) -> dict[str, Any]:
    community = await ctx.store.get_community(params.community_id)
    if community is None:
        return failure(
            COMMUNITY_NOT_FOUND,
            f"No encontré la comunidad con ID {params.community_id}.",
            {"communityId": params.community_id},
        )

    if await ctx.store.is_community_member(community.id, ctx.user_id):
        return failure(
            ALREADY_MEMBER,
            f'Ya eres miembro de la comunidad "{community.name}".',
            {"communityId": community.id},
        )

    await ctx.store.add_community_member(community.id, ctx.user_id)
    logger.info("User %d joined community %d", ctx.user_id, community.id)
    return {
        "success": True,
        "community": {"id": community.id, "name": community.name},
        "message": f'Te uniste a la comunidad "{community.name}".',
    }


COMMUNITY_TOOLS = [
    ToolDescriptor(
        name="get_community_events",
        description=(
            "Lists upcoming events of the communities the user belongs to, "
            "in the next N days (default 30)."
        ),
        parameters=EventWindowParams,
        handler=get_community_events,
    ),
    ToolDescriptor(
        name="join_community",
        description="Adds the user as a member of a community by its ID.",
        parameters=JoinCommunityParams,
        handler=join_community,
    ),
]
