"""Campaign route handlers."""

from threatgraph.features.graph.dtos.entity_dto import CampaignCreateRequest
from threatgraph.features.graph.models import EntityKind
from threatgraph.features.graph.routes.entities import build_entity_router

router = build_entity_router(EntityKind.CAMPAIGN, CampaignCreateRequest)
