"""
FastAPI router exposing a federated schema over HTTP.

Endpoints:
- POST /graphql - Executes a GraphQL operation
- GET /__sdl - Returns the service SDL (what `_service { sdl }` returns)

Request format:
    {"query": "...", "variables": {...}, "operationName": "..."}

Response format:
    {"data": {...}, "errors": [...]}   # "errors" omitted when empty
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from ..federation.schema import FederatedSchema
from ..runtime.context import ExecutionContext
from .database import get_session


logger = logging.getLogger(__name__)


class GraphQLRequest(BaseModel):
    """Body of a GraphQL HTTP request."""
    query: str
    variables: Optional[dict[str, Any]] = None
    operation_name: Optional[str] = Field(default=None, alias="operationName")

    model_config = {"populate_by_name": True}


def create_graphql_router(
    schema: FederatedSchema,
    *,
    path: str = "/graphql",
    session_dependency: Callable = get_session,
) -> APIRouter:
    """
    Create a router serving the schema.

    Args:
        schema: Schema built by build_federated_schema
        path: URL path of the GraphQL endpoint
        session_dependency: FastAPI dependency yielding the request session

    Returns:
        APIRouter to include in a FastAPI app
    """
    router = APIRouter()

    @router.post(path)
    async def graphql_endpoint(
        request: GraphQLRequest,
        session: AsyncSession = Depends(session_dependency),
    ) -> JSONResponse:
        context = ExecutionContext(session=session, config=schema.config)
        result = await schema.execute(
            request.query,
            variables=request.variables,
            context=context,
            operation_name=request.operation_name,
        )

        body: dict[str, Any] = {"data": result.data}
        if result.errors:
            for error in result.errors:
                if error.original_error is not None and not error.path:
                    logger.error(f"GraphQL request failed: {error.message}", exc_info=error.original_error)
            body["errors"] = [error.formatted for error in result.errors]

        # Operations that fail validation never start executing
        status_code = 400 if result.data is None and result.errors else 200
        return JSONResponse(body, status_code=status_code)

    @router.get("/__sdl", response_class=PlainTextResponse)
    async def sdl_endpoint() -> str:
        return schema.sdl

    return router
