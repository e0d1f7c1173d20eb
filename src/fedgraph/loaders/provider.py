"""
Relational query provider - the storage collaborator of the relation loaders.

The loaders never build SQL themselves. They talk to a provider that can:
- build a relation query scoped to one parent
- report which columns a relation query must select
- count related rows per parent
- execute many relation queries as one UNION ALL fetch
- hydrate join-table ("pivot") data and default eager loads
- match fetched rows back to their parents

SQLAlchemyRelationProvider implements this for one-to-many and
many-to-many relationships of SQLAlchemy models on an AsyncSession.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Hashable, Protocol, Sequence

from sqlalchemy import ColumnElement, Select, func, inspect as sa_inspect, literal, select, tuple_, union_all
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import DeclarativeBase, aliased, selectinload, with_parent

from ..core.errors import DataFetchError, SchemaConfigError


logger = logging.getLogger(__name__)


# Labels of the helper columns added to every relation query
PARENT_KEY_LABEL = "__fg_parent_{}"
PIVOT_LABEL = "__fg_pivot_{}"
COUNT_LABEL = "__fg_count"
INDEX_LABEL = "__fg_index"

# Eager loading strategies that load a relationship without being asked to
EAGER_STRATEGIES = {"joined", "selectin", "subquery", "immediate"}


ParentKey = tuple[Hashable, ...]


@dataclass
class RelatedRow:
    """One row of a merged relation fetch."""
    item: Any
    parent_key: ParentKey
    extra: dict[str, Any] = field(default_factory=dict)
    pivot: dict[str, Any] | None = None


class RelationalQueryProvider(Protocol):
    """Contract the paginated relation loader relies on."""

    relation: str

    def parent_key(self, parent: Any) -> ParentKey:
        ...

    def relation_query(self, parent: Any) -> Select:
        ...

    def should_select_columns(self, query: Select) -> list[ColumnElement]:
        ...

    async def count_related(self, queries: Sequence[tuple[Any, Select]]) -> dict[ParentKey, int]:
        ...

    async def execute_union(self, queries: Sequence[Select]) -> list[RelatedRow]:
        ...

    def hydrate_pivot(self, rows: Sequence[RelatedRow]) -> None:
        ...

    def default_eager_loads(self) -> list[str]:
        ...

    async def load_defaults(self, items: Sequence[Any], names: Sequence[str]) -> None:
        ...

    def match(self, parents: Sequence[Any], rows: Sequence[RelatedRow]) -> dict[ParentKey, list[RelatedRow]]:
        ...


class SQLAlchemyRelationProvider:
    """
    Relational query provider for a to-many SQLAlchemy relationship.

    Usage:
        provider = SQLAlchemyRelationProvider(session, User, "posts")
        query = provider.relation_query(user)
    """

    def __init__(
        self,
        session: AsyncSession,
        parent_model: type[DeclarativeBase],
        relation: str,
    ):
        """
        Initialize provider.

        Args:
            session: Database session for the current request
            parent_model: Mapped class owning the relationship
            relation: Relationship attribute name on parent_model

        Raises:
            SchemaConfigError: the relationship does not exist or is not to-many
        """
        self.session = session
        self.parent_model = parent_model
        self.relation = relation

        mapper = sa_inspect(parent_model)
        prop = mapper.relationships.get(relation)
        if prop is None:
            raise SchemaConfigError(f"{parent_model.__name__} has no relationship {relation!r}")
        if not prop.uselist:
            raise SchemaConfigError(f"{parent_model.__name__}.{relation} is not a to-many relationship")

        self.prop = prop
        self.parent_mapper = mapper
        self.target_model = prop.mapper.class_
        self.target_mapper = prop.mapper
        self.secondary = prop.secondary

        # Pairs of (parent column, column on the related side holding the parent key)
        self._key_pairs = list(prop.synchronize_pairs)
        self._parent_attrs = [
            mapper.get_property_by_column(parent_col).key
            for parent_col, _ in self._key_pairs
        ]

        # Join-table columns that are not keys become pivot data
        self._pivot_columns = []
        if self.secondary is not None:
            key_columns = {col for _, col in self._key_pairs}
            key_columns.update(col for _, col in prop.secondary_synchronize_pairs)
            self._pivot_columns = [col for col in self.secondary.c if col not in key_columns]

    # ------------------------------------------------------------------
    # Query building
    # ------------------------------------------------------------------

    def parent_key(self, parent: Any) -> ParentKey:
        """Values of the parent columns the relationship joins on."""
        return tuple(getattr(parent, attr) for attr in self._parent_attrs)

    def relation_query(self, parent: Any) -> Select:
        """Select of the related entities for a single parent."""
        if self.secondary is None:
            stmt = select(self.target_model).where(
                with_parent(parent, getattr(self.parent_model, self.relation))
            )
        else:
            # with_parent aliases the join table, so join it explicitly to
            # keep its columns selectable as pivot data
            stmt = (
                select(self.target_model)
                .join(self.secondary, self.prop.secondaryjoin)
                .where(*(
                    secondary_col == value
                    for (_, secondary_col), value in zip(self._key_pairs, self.parent_key(parent))
                ))
            )
        if self.prop.order_by:
            stmt = stmt.order_by(*self.prop.order_by)
        return stmt

    def _required_columns(self) -> list[ColumnElement]:
        columns: list[ColumnElement] = [
            related_col.label(PARENT_KEY_LABEL.format(position))
            for position, (_, related_col) in enumerate(self._key_pairs)
        ]
        columns.extend(
            col.label(PIVOT_LABEL.format(col.name))
            for col in self._pivot_columns
        )
        return columns

    def should_select_columns(self, query: Select) -> list[ColumnElement]:
        """
        Relation-required columns the query does not select yet.

        These are the columns holding the parent key and, for join tables,
        the pivot columns.
        """
        selected = {col.key for col in query.selected_columns}
        return [col for col in self._required_columns() if col.key not in selected]

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def count_related(self, queries: Sequence[tuple[Any, Select]]) -> dict[ParentKey, int]:
        """
        Count related rows for every parent in one round trip.

        Args:
            queries: (parent, decorated relation query) pairs, without page window

        Returns:
            Dict mapping parent key to its total related row count
        """
        count_selects = [
            select(
                literal(position).label(INDEX_LABEL),
                func.count().label(COUNT_LABEL),
            ).select_from(query.order_by(None).subquery())
            for position, (_, query) in enumerate(queries)
        ]
        stmt = count_selects[0] if len(count_selects) == 1 else union_all(*count_selects)

        result = await self._execute(stmt)
        by_index = {row._mapping[INDEX_LABEL]: row._mapping[COUNT_LABEL] for row in result}

        return {
            self.parent_key(parent): int(by_index.get(position, 0))
            for position, (parent, _) in enumerate(queries)
        }

    async def execute_union(self, queries: Sequence[Select]) -> list[RelatedRow]:
        """
        Run every relation query as a single UNION ALL fetch.

        Each query keeps its own ORDER BY / LIMIT / OFFSET: it is wrapped in
        a subquery before being unioned.
        """
        members = []
        for query in queries:
            windowed = query.subquery()
            members.append(select(*windowed.c))

        merged = (members[0] if len(members) == 1 else union_all(*members)).subquery("fg_merged")
        target = aliased(self.target_model, merged)
        extra_labels = [col.key for col in self._required_columns()]
        stmt = select(target, *(merged.c[label] for label in extra_labels))

        result = await self._execute(stmt)
        rows = []
        for row in result:
            values = row._mapping
            parent_key = tuple(
                values[PARENT_KEY_LABEL.format(position)]
                for position in range(len(self._key_pairs))
            )
            extra = {label: values[label] for label in extra_labels}
            rows.append(RelatedRow(item=row[0], parent_key=parent_key, extra=extra))
        return rows

    async def _execute(self, stmt):
        try:
            return await self.session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Relation fetch for {self.parent_model.__name__}.{self.relation} failed: {e}", exc_info=True)
            raise DataFetchError(str(e), relation=self.relation) from e

    # ------------------------------------------------------------------
    # Hydration
    # ------------------------------------------------------------------

    def hydrate_pivot(self, rows: Sequence[RelatedRow]) -> None:
        """Attach join-table columns of many-to-many relations to each row."""
        if self.secondary is None:
            return
        for row in rows:
            row.pivot = {
                col.name: row.extra.get(PIVOT_LABEL.format(col.name))
                for col in self._pivot_columns
            }
            pivots = sa_inspect(row.item).info.setdefault(("pivot", self.relation), {})
            pivots[row.parent_key] = row.pivot

    def pivot_for(self, item: Any, parent: Any) -> dict[str, Any] | None:
        """Pivot data of `item` as related to `parent`, if hydrated."""
        pivots = sa_inspect(item).info.get(("pivot", self.relation), {})
        return pivots.get(self.parent_key(parent))

    def default_eager_loads(self) -> list[str]:
        """Relationships of the related model that load eagerly by default."""
        return [
            rel.key
            for rel in self.target_mapper.relationships
            if rel.lazy in EAGER_STRATEGIES
        ]

    async def load_defaults(self, items: Sequence[Any], names: Sequence[str]) -> None:
        """Load the given relationships on items in one query each."""
        if not items or not names:
            return

        pk_columns = list(self.target_mapper.primary_key)
        identities = [self.target_mapper.primary_key_from_instance(item) for item in items]
        if len(pk_columns) == 1:
            criteria = pk_columns[0].in_([identity[0] for identity in identities])
        else:
            criteria = tuple_(*pk_columns).in_(identities)

        stmt = (
            select(self.target_model)
            .where(criteria)
            .options(*(selectinload(getattr(self.target_model, name)) for name in names))
            .execution_options(populate_existing=True)
        )
        await self._execute(stmt)

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def match(self, parents: Sequence[Any], rows: Sequence[RelatedRow]) -> dict[ParentKey, list[RelatedRow]]:
        """Group fetched rows by the parent key they carry."""
        matched: dict[ParentKey, list[RelatedRow]] = {
            self.parent_key(parent): [] for parent in parents
        }
        for row in rows:
            if row.parent_key in matched:
                matched[row.parent_key].append(row)
        return matched
