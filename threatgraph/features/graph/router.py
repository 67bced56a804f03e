"""Graph API routes - main router that includes all entity-specific route modules."""

from fastapi import APIRouter

from threatgraph.features.graph.routes.campaigns import router as campaigns_router
from threatgraph.features.graph.routes.external_references import (
    router as external_references_router,
)

router = APIRouter()

# Include all route handlers
router.include_router(campaigns_router, prefix="/campaigns", tags=["campaigns"])
router.include_router(
    external_references_router,
    prefix="/external-references",
    tags=["external-references"],
)
