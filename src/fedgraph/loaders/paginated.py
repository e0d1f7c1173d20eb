"""
Paginated relation loader.

Loads one page of a to-many relation for many parents with a single
merged query:

1. Count related rows per parent (ignoring pagination)
2. Build one relation query per parent, decorate it, apply its page window
3. UNION ALL the per-parent queries and fetch once
4. Hydrate pivot data and default eager loads of the related rows
5. Match rows back to their parents and wrap each parent's rows in a
   LengthAwarePage carrying the counted total

Usage:
    loader = PaginatedModelsLoader(
        relation="posts",
        decorate=lambda query, parent: query.order_by(Post.id),
        pagination_args=PaginationArgs(page=2, first=10),
        provider_factory=lambda model, relation: SQLAlchemyRelationProvider(session, model, relation),
    )
    await loader.load(users)
    page = loader.extract(users[0])
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Sequence

from sqlalchemy import Select, inspect as sa_inspect
from sqlalchemy.orm.attributes import set_committed_value

from ..pagination.args import PaginationArgs
from ..pagination.paginator import LengthAwarePage
from .count import load_count
from .provider import ParentKey, RelatedRow, RelationalQueryProvider


logger = logging.getLogger(__name__)


QueryDecorator = Callable[[Select, Any], Select]
ProviderFactory = Callable[[type, str], RelationalQueryProvider]


def no_decoration(query: Select, parent: Any) -> Select:
    return query


def _page_key(relation: str) -> tuple[str, str]:
    return ("page", relation)


class PaginatedModelsLoader:
    """Loads one page of a relation for a collection of parents."""

    def __init__(
        self,
        relation: str,
        decorate: QueryDecorator,
        pagination_args: PaginationArgs,
        provider_factory: ProviderFactory,
    ):
        """
        Initialize loader.

        Args:
            relation: Relationship name on the parent model
            decorate: Called exactly once per parent query, before paging;
                returns the decorated query
            pagination_args: Page window applied to every parent
            provider_factory: Builds the provider for (parent model, relation)
        """
        self.relation = relation
        self.decorate = decorate
        self.pagination_args = pagination_args
        self.provider_factory = provider_factory

    async def load(self, parents: Sequence[Any]) -> None:
        """
        Load and attach one page of the relation to every parent.

        Args:
            parents: Loaded parent entities of one model, must not be empty

        Raises:
            DataFetchError: the relational store failed
        """
        assert parents, "PaginatedModelsLoader.load() requires at least one parent"

        provider = self.provider_factory(type(parents[0]), self.relation)

        queries = [
            (parent, self._decorated_query(provider, parent))
            for parent in parents
        ]

        totals = await load_count(provider, queries)

        rows = await self._load_related_rows(provider, queries)

        provider.hydrate_pivot(rows)
        await self._load_default_with(provider, rows)
        related = self._associate_related_rows(provider, parents, rows)
        self._convert_relation_to_pages(provider, parents, related, totals)

    def extract(self, parent: Any) -> LengthAwarePage:
        """Get the page attached to a parent by load()."""
        return sa_inspect(parent).info[_page_key(self.relation)]

    def _decorated_query(self, provider: RelationalQueryProvider, parent: Any) -> Select:
        query = self.decorate(provider.relation_query(parent), parent)
        if query is None:
            raise TypeError(f"Query decorator for {self.relation!r} must return the decorated query")
        return query

    async def _load_related_rows(
        self,
        provider: RelationalQueryProvider,
        queries: Sequence[tuple[Any, Select]],
    ) -> list[RelatedRow]:
        """Fetch the page of every parent with one UNION ALL query."""
        windowed = []
        for _, query in queries:
            query = query.add_columns(*provider.should_select_columns(query))

            # Negative page size fetches every related row
            if not self.pagination_args.unbounded:
                query = query.limit(self.pagination_args.first).offset(self.pagination_args.offset)

            windowed.append(query)

        rows = await provider.execute_union(windowed)
        logger.debug(
            f"Fetched {len(rows)} {self.relation} row(s) for {len(queries)} parent(s) "
            f"(page={self.pagination_args.page}, first={self.pagination_args.first})"
        )
        return rows

    async def _load_default_with(self, provider: RelationalQueryProvider, rows: Sequence[RelatedRow]) -> None:
        """Load default eager relationships that the merged fetch left unloaded."""
        items = list({id(row.item): row.item for row in rows}.values())
        if not items:
            return

        unloaded = [
            name
            for name in provider.default_eager_loads()
            if any(name in sa_inspect(item).unloaded for item in items)
        ]
        if unloaded:
            await provider.load_defaults(items, unloaded)

    def _associate_related_rows(
        self,
        provider: RelationalQueryProvider,
        parents: Sequence[Any],
        rows: Sequence[RelatedRow],
    ) -> dict[ParentKey, list[Any]]:
        """Set each parent's relation to its matched rows."""
        matched = provider.match(parents, rows)
        related: dict[ParentKey, list[Any]] = {}
        for parent in parents:
            key = provider.parent_key(parent)
            related[key] = [row.item for row in matched.get(key, [])]
            set_committed_value(parent, self.relation, related[key])
        return related

    def _convert_relation_to_pages(
        self,
        provider: RelationalQueryProvider,
        parents: Sequence[Any],
        related: dict[ParentKey, list[Any]],
        totals: dict[ParentKey, int],
    ) -> None:
        # Pages come from this load's own rows and totals, never from the
        # relation attribute, which another load may have replaced
        for parent in parents:
            key = provider.parent_key(parent)
            sa_inspect(parent).info[_page_key(self.relation)] = LengthAwarePage(
                items=list(related.get(key, [])),
                total=totals.get(key, 0),
                per_page=self.pagination_args.first,
                current_page=self.pagination_args.page,
            )
