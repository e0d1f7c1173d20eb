"""
Execution context for GraphQL requests.

Passed as `context_value` to graphql-core. Holds the request's database
session and the request-scoped relation loaders, so parents resolved in
the same execution tick share one merged relation fetch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Hashable, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from strawberry.dataloader import DataLoader

from ..core.config import FedgraphConfig
from ..loaders.paginated import PaginatedModelsLoader, QueryDecorator
from ..loaders.provider import SQLAlchemyRelationProvider
from ..pagination.args import PaginationArgs
from ..pagination.paginator import LengthAwarePage


@dataclass
class ExecutionContext:
    """
    Context passed through GraphQL execution.

    Contains:
    - session: Database session for the request (None for schemas without relations)
    - config: fedgraph configuration
    - extra: Free-form values for user resolvers
    - entity_typenames: Representation typename of each resolved entity, by object id
    """
    session: Optional[AsyncSession] = None
    config: FedgraphConfig = field(default_factory=FedgraphConfig)
    extra: dict[str, Any] = field(default_factory=dict)
    entity_typenames: dict[int, str] = field(default_factory=dict)
    _relation_loaders: dict[Hashable, DataLoader] = field(default_factory=dict, repr=False)

    def get_session(self) -> AsyncSession:
        """Get the request session."""
        if self.session is None:
            raise RuntimeError("ExecutionContext has no database session")
        return self.session

    def relation_loader(
        self,
        key: Hashable,
        relation: str,
        decorate: QueryDecorator,
        pagination_args: PaginationArgs,
    ) -> DataLoader:
        """
        Get or create the batching loader for one paginated relation field.

        Args:
            key: Identifies the field and its arguments within the request
            relation: Relationship name on the parent model
            decorate: Query decorator for the field
            pagination_args: Page window requested by the client
        """
        loader = self._relation_loaders.get(key)
        if loader is None:
            session = self.get_session()
            models_loader = PaginatedModelsLoader(
                relation=relation,
                decorate=decorate,
                pagination_args=pagination_args,
                provider_factory=lambda model, name: SQLAlchemyRelationProvider(session, model, name),
            )

            async def load_pages(parents: list[Any]) -> list[LengthAwarePage]:
                await models_loader.load(parents)
                return [models_loader.extract(parent) for parent in parents]

            loader = DataLoader(load_fn=load_pages)
            self._relation_loaders[key] = loader
        return loader
