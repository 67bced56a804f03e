"""Entity route handlers shared by every STIX entity kind.

`build_entity_router` returns the list, lookup, search, time series,
create, delete and edit endpoints for one entity kind. Reads need any
authenticated user, writes need the analyst or admin role.
"""

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, Protocol

from fastapi import APIRouter, Depends, status

from threatgraph.core.authentication import is_any_user, is_writer
from threatgraph.core.schemas import AuthenticatedUser
from threatgraph.core.settings import get_settings
from threatgraph.features.graph.dtos.entity_dto import (
    AddRelationRequest,
    DeleteEntityResponse,
    EditContextRequest,
    EditContextsResponse,
    EditFieldRequest,
    EntityCreateRequest,
    EntityDto,
    PageDto,
    RelationDto,
    RelationEditResponse,
    TimeSeriesPointDto,
)
from threatgraph.features.graph.models import (
    EntityKind,
    GraphEntity,
    RelationRef,
    RelationType,
)
from threatgraph.features.graph.repositories.protocols import (
    GraphStore,
    OrderMode,
    Page,
    PaginationArgs,
    TimeSeriesArgs,
    TimeSeriesPoint,
)
from threatgraph.features.graph.repositories.query_utils import Interval
from threatgraph.features.graph.routes.dependencies import (
    get_edit_contexts,
    get_graph_store,
    get_notifier,
)
from threatgraph.features.graph.routes.errors import HANDLED_ERRORS, http_error
from threatgraph.features.graph.services.edit_context import EditContextStore
from threatgraph.features.graph.services.event_bus import Notifier
from threatgraph.features.graph.usecases import (
    CreateEntityUseCaseImpl,
    DeleteEntityUseCaseImpl,
    EditEntityUseCaseImpl,
    QueryEntitiesUseCaseImpl,
    RelationEdit,
)


class CreateEntityUseCase(Protocol):
    """Protocol for the create entity use case."""

    async def execute(
        self,
        actor: AuthenticatedUser | None,
        entity_kind: EntityKind | str,
        attributes: Mapping[str, Any],
        relations: Sequence[RelationRef] = (),
    ) -> GraphEntity:
        """Create an entity and its relations atomically."""
        ...


class DeleteEntityUseCase(Protocol):
    """Protocol for the delete entity use case."""

    async def execute(
        self, entity_id: int, entity_kind: EntityKind | None = None
    ) -> bool:
        """Delete an entity by id, optionally only if it is of `entity_kind`."""
        ...


class QueryEntitiesUseCase(Protocol):
    """Protocol for the entity query use cases."""

    async def find_all(self, args: PaginationArgs) -> Page: ...

    async def find_by_id(self, entity_id: int) -> GraphEntity: ...

    async def find_by_entity(self, object_id: int, args: PaginationArgs) -> Page: ...

    async def search(self, term: str, args: PaginationArgs) -> Page: ...

    async def time_series(self, args: TimeSeriesArgs) -> list[TimeSeriesPoint]: ...

    async def time_series_by_entity(
        self, object_id: int, args: TimeSeriesArgs
    ) -> list[TimeSeriesPoint]: ...


class EditEntityUseCase(Protocol):
    """Protocol for the entity edit use cases."""

    async def edit_field(
        self,
        actor: AuthenticatedUser | None,
        entity_id: int,
        key: str,
        value: Any,
    ) -> GraphEntity: ...

    async def add_relation(
        self,
        actor: AuthenticatedUser | None,
        entity_id: int,
        relation_type: RelationType,
        to_id: int,
    ) -> RelationEdit: ...

    async def delete_relation(
        self, actor: AuthenticatedUser | None, entity_id: int, relation_id: int
    ) -> RelationEdit: ...

    async def set_edit_context(
        self, actor: AuthenticatedUser, entity_id: int, focus_on: str | None
    ) -> GraphEntity: ...

    async def clean_edit_context(
        self, actor: AuthenticatedUser, entity_id: int
    ) -> GraphEntity: ...

    def get_edit_contexts(self, entity_id: int) -> dict[str, str | None]: ...


async def get_create_entity_use_case(
    store: GraphStore = Depends(get_graph_store),
    notifier: Notifier = Depends(get_notifier),
) -> CreateEntityUseCase:
    """Dependency injection for the create entity use case."""
    settings = get_settings()
    return CreateEntityUseCaseImpl(
        store=store,
        notifier=notifier,
        refetch_attempts=settings.refetch_attempts,
        refetch_delay=settings.refetch_delay,
    )


async def get_delete_entity_use_case(
    store: GraphStore = Depends(get_graph_store),
) -> DeleteEntityUseCase:
    """Dependency injection for the delete entity use case."""
    return DeleteEntityUseCaseImpl(store=store)


def _relation_edit_response(edit: RelationEdit) -> RelationEditResponse:
    return RelationEditResponse(
        relation=RelationDto.from_relation(edit.relation),
        node=EntityDto.from_entity(edit.node),
    )


def build_entity_router(
    entity_kind: EntityKind, create_model: type[EntityCreateRequest]
) -> APIRouter:
    """Create the router serving one entity kind."""

    async def get_query_use_case(
        store: GraphStore = Depends(get_graph_store),
    ) -> QueryEntitiesUseCase:
        return QueryEntitiesUseCaseImpl(store=store, entity_kind=entity_kind)

    async def get_edit_use_case(
        store: GraphStore = Depends(get_graph_store),
        notifier: Notifier = Depends(get_notifier),
        edit_contexts: EditContextStore = Depends(get_edit_contexts),
    ) -> EditEntityUseCase:
        return EditEntityUseCaseImpl(
            store=store,
            notifier=notifier,
            edit_contexts=edit_contexts,
            entity_kind=entity_kind,
        )

    router = APIRouter(dependencies=[Depends(is_any_user)])

    @router.get("", response_model=PageDto)
    async def list_entities(
        first: int = 25,
        after: str | None = None,
        order_by: str | None = None,
        order_mode: OrderMode = OrderMode.ASC,
        use_case: QueryEntitiesUseCase = Depends(get_query_use_case),
    ) -> PageDto:
        """List entities of this kind, one page at a time."""
        args = PaginationArgs(
            first=first, after=after, order_by=order_by, order_mode=order_mode
        )
        try:
            return PageDto.from_page(await use_case.find_all(args))
        except HANDLED_ERRORS as e:
            raise http_error(e) from e

    @router.get("/search", response_model=PageDto)
    async def search_entities(
        term: str,
        first: int = 25,
        after: str | None = None,
        order_by: str | None = None,
        order_mode: OrderMode = OrderMode.ASC,
        use_case: QueryEntitiesUseCase = Depends(get_query_use_case),
    ) -> PageDto:
        """Case-insensitive substring search over the kind's text attributes."""
        args = PaginationArgs(
            first=first, after=after, order_by=order_by, order_mode=order_mode
        )
        try:
            return PageDto.from_page(await use_case.search(term, args))
        except HANDLED_ERRORS as e:
            raise http_error(e) from e

    @router.get("/time-series", response_model=list[TimeSeriesPointDto])
    async def entities_time_series(
        field: str,
        interval: Interval,
        start_date: datetime,
        end_date: datetime,
        use_case: QueryEntitiesUseCase = Depends(get_query_use_case),
    ) -> list[TimeSeriesPointDto]:
        """Count entities of this kind per day, month or year."""
        args = TimeSeriesArgs(
            field=field, interval=interval, start_date=start_date, end_date=end_date
        )
        try:
            points = await use_case.time_series(args)
        except HANDLED_ERRORS as e:
            raise http_error(e) from e
        return [TimeSeriesPointDto.from_point(point) for point in points]

    @router.get("/by-entity/{object_id}", response_model=PageDto)
    async def list_entities_by_entity(
        object_id: int,
        first: int = 25,
        after: str | None = None,
        order_by: str | None = None,
        order_mode: OrderMode = OrderMode.ASC,
        use_case: QueryEntitiesUseCase = Depends(get_query_use_case),
    ) -> PageDto:
        """List entities of this kind linked to another entity."""
        args = PaginationArgs(
            first=first, after=after, order_by=order_by, order_mode=order_mode
        )
        try:
            return PageDto.from_page(await use_case.find_by_entity(object_id, args))
        except HANDLED_ERRORS as e:
            raise http_error(e) from e

    @router.get(
        "/by-entity/{object_id}/time-series", response_model=list[TimeSeriesPointDto]
    )
    async def entities_time_series_by_entity(
        object_id: int,
        field: str,
        interval: Interval,
        start_date: datetime,
        end_date: datetime,
        use_case: QueryEntitiesUseCase = Depends(get_query_use_case),
    ) -> list[TimeSeriesPointDto]:
        args = TimeSeriesArgs(
            field=field, interval=interval, start_date=start_date, end_date=end_date
        )
        try:
            points = await use_case.time_series_by_entity(object_id, args)
        except HANDLED_ERRORS as e:
            raise http_error(e) from e
        return [TimeSeriesPointDto.from_point(point) for point in points]

    @router.get("/{entity_id}", response_model=EntityDto)
    async def get_entity(
        entity_id: int,
        use_case: QueryEntitiesUseCase = Depends(get_query_use_case),
    ) -> EntityDto:
        try:
            return EntityDto.from_entity(await use_case.find_by_id(entity_id))
        except HANDLED_ERRORS as e:
            raise http_error(e) from e

    @router.post("", response_model=EntityDto, status_code=status.HTTP_201_CREATED)
    async def create_entity(
        request: create_model,  # pyright: ignore[reportInvalidTypeForm]
        current_user: AuthenticatedUser = Depends(is_writer),
        use_case: CreateEntityUseCase = Depends(get_create_entity_use_case),
    ) -> EntityDto:
        """Create an entity and link it to its creator and markings."""
        try:
            entity = await use_case.execute(
                current_user,
                entity_kind,
                request.attributes(),
                request.relations(),
            )
        except HANDLED_ERRORS as e:
            raise http_error(e) from e
        return EntityDto.from_entity(entity)

    @router.delete("/{entity_id}", response_model=DeleteEntityResponse)
    async def delete_entity(
        entity_id: int,
        _current_user: AuthenticatedUser = Depends(is_writer),
        use_case: DeleteEntityUseCase = Depends(get_delete_entity_use_case),
    ) -> DeleteEntityResponse:
        """Delete an entity of this kind and every edge touching it."""
        try:
            deleted = await use_case.execute(entity_id, entity_kind)
        except HANDLED_ERRORS as e:
            raise http_error(e) from e
        message = "Entity deleted" if deleted else "Entity did not exist"
        return DeleteEntityResponse(message=message, id=entity_id)

    @router.put("/{entity_id}/field", response_model=EntityDto)
    async def edit_entity_field(
        entity_id: int,
        request: EditFieldRequest,
        current_user: AuthenticatedUser = Depends(is_writer),
        use_case: EditEntityUseCase = Depends(get_edit_use_case),
    ) -> EntityDto:
        """Replace one attribute value."""
        try:
            entity = await use_case.edit_field(
                current_user, entity_id, request.key, request.value
            )
        except HANDLED_ERRORS as e:
            raise http_error(e) from e
        return EntityDto.from_entity(entity)

    @router.post(
        "/{entity_id}/relations",
        response_model=RelationEditResponse,
        status_code=status.HTTP_201_CREATED,
    )
    async def add_entity_relation(
        entity_id: int,
        request: AddRelationRequest,
        current_user: AuthenticatedUser = Depends(is_writer),
        use_case: EditEntityUseCase = Depends(get_edit_use_case),
    ) -> RelationEditResponse:
        try:
            edit = await use_case.add_relation(
                current_user, entity_id, request.relation_type, request.to_id
            )
        except HANDLED_ERRORS as e:
            raise http_error(e) from e
        return _relation_edit_response(edit)

    @router.delete(
        "/{entity_id}/relations/{relation_id}", response_model=RelationEditResponse
    )
    async def delete_entity_relation(
        entity_id: int,
        relation_id: int,
        current_user: AuthenticatedUser = Depends(is_writer),
        use_case: EditEntityUseCase = Depends(get_edit_use_case),
    ) -> RelationEditResponse:
        try:
            edit = await use_case.delete_relation(current_user, entity_id, relation_id)
        except HANDLED_ERRORS as e:
            raise http_error(e) from e
        return _relation_edit_response(edit)

    @router.get("/{entity_id}/context", response_model=EditContextsResponse)
    async def get_entity_edit_contexts(
        entity_id: int,
        use_case: EditEntityUseCase = Depends(get_edit_use_case),
    ) -> EditContextsResponse:
        """Who is editing the entity, and which attribute."""
        return EditContextsResponse(contexts=use_case.get_edit_contexts(entity_id))

    @router.post("/{entity_id}/context", response_model=EntityDto)
    async def set_entity_edit_context(
        entity_id: int,
        request: EditContextRequest,
        current_user: AuthenticatedUser = Depends(is_any_user),
        use_case: EditEntityUseCase = Depends(get_edit_use_case),
    ) -> EntityDto:
        try:
            entity = await use_case.set_edit_context(
                current_user, entity_id, request.focus_on
            )
        except HANDLED_ERRORS as e:
            raise http_error(e) from e
        return EntityDto.from_entity(entity)

    @router.delete("/{entity_id}/context", response_model=EntityDto)
    async def clean_entity_edit_context(
        entity_id: int,
        current_user: AuthenticatedUser = Depends(is_any_user),
        use_case: EditEntityUseCase = Depends(get_edit_use_case),
    ) -> EntityDto:
        try:
            entity = await use_case.clean_edit_context(current_user, entity_id)
        except HANDLED_ERRORS as e:
            raise http_error(e) from e
        return EntityDto.from_entity(entity)

    return router
