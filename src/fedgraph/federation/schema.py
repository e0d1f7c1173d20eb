"""
Federated schema builder.

Builds an executable graphql-core schema from SDL annotated with federation
and pagination directives:

- `@key(fields: "...")` marks entity types; `@external` marks fields owned
  by another service
- `@paginate(...)` turns list fields into paginated relation fields
- `_entities(representations: [_Any!]!): [_Entity]!` and `_service` are
  added to the Query type

Usage:
    registry = EntityResolverRegistry()
    registry.register_batched("Product", load_products)

    schema = build_federated_schema(SDL, registry, config)
    result = await schema.execute(
        "query ($r: [_Any!]!) { _entities(representations: $r) { ... on Product { upc } } }",
        variables={"r": [{"__typename": "Product", "upc": "1"}]},
    )
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from graphql import (
    DocumentNode,
    ExecutionResult,
    GraphQLResolveInfo,
    GraphQLSchema,
    GraphQLUnionType,
    ObjectTypeDefinitionNode,
    ObjectTypeExtensionNode,
    build_ast_schema,
    graphql,
    parse,
    print_ast,
    value_from_ast_untyped,
)

from ..core.config import FedgraphConfig
from ..core.defs import EntityDef, KeySet, PaginatedField, PaginationType
from ..core.errors import SchemaConfigError
from ..core.utils import to_snake_case
from ..loaders.paginated import no_decoration
from ..pagination.args import PaginationArgs
from ..pagination.manipulator import apply_pagination_directives
from ..pagination.paginator import Connection, LengthAwarePage, SimplePage
from ..runtime.context import ExecutionContext
from .engine import EntityResolutionEngine
from .registry import EntityResolverRegistry


logger = logging.getLogger(__name__)


FEDERATION_DIRECTIVES_SDL = '''
scalar _Any
scalar _FieldSet

directive @key(fields: _FieldSet!, resolvable: Boolean = true) repeatable on OBJECT | INTERFACE
directive @external on FIELD_DEFINITION | OBJECT
directive @requires(fields: _FieldSet!) on FIELD_DEFINITION
directive @provides(fields: _FieldSet!) on FIELD_DEFINITION
directive @extends on OBJECT | INTERFACE
directive @shareable repeatable on OBJECT | FIELD_DEFINITION
'''

SERVICE_TYPE_SDL = '''
type _Service {
  sdl: String
}
'''

ENTITIES_FIELD_SDL = '''
  _entities(representations: [_Any!]!): [_Entity]!
  _service: _Service!
'''

# (query, parent, field arguments) -> decorated query
FieldQueryDecorator = Callable[[Any, Any, dict[str, Any]], Any]

_MISSING = object()


def snake_case_field_resolver(source: Any, info: GraphQLResolveInfo, **args: Any) -> Any:
    """
    Default resolver reading `field` then `to_snake_case(field)`.

    Lets camelCase GraphQL fields resolve against snake_case model attributes.
    """
    name = info.field_name
    if isinstance(source, Mapping):
        return source.get(name)

    value = getattr(source, name, _MISSING)
    if value is _MISSING:
        value = getattr(source, to_snake_case(name), None)
    if callable(value):
        return value(info, **args)
    return value


def _directive_args(node, name: str) -> list[dict[str, Any]]:
    return [
        {
            argument.name.value: value_from_ast_untyped(argument.value)
            for argument in directive.arguments or ()
        }
        for directive in node.directives or ()
        if directive.name.value == name
    ]


def collect_entities(document: DocumentNode) -> dict[str, EntityDef]:
    """
    Read `@key` and `@external` declarations from object types.

    Definitions and extensions of the same type are merged; key sets keep
    their declaration order.
    """
    entities: dict[str, EntityDef] = {}

    for definition in document.definitions:
        if not isinstance(definition, (ObjectTypeDefinitionNode, ObjectTypeExtensionNode)):
            continue

        keys = _directive_args(definition, "key")
        typename = definition.name.value
        entity = entities.get(typename)
        if not keys and entity is None:
            continue
        if entity is None:
            entity = entities[typename] = EntityDef(typename=typename)

        for key in keys:
            fields = key.get("fields")
            if not isinstance(fields, str):
                raise SchemaConfigError(f"@key on {typename} requires a fields string")
            entity.key_sets.append(KeySet.parse(fields))
            if key.get("resolvable") is False:
                entity.resolvable = False

        for field_definition in definition.fields or ():
            if _directive_args(field_definition, "external"):
                entity.external_fields.add(field_definition.name.value)

    return entities


def _has_query_type(document: DocumentNode) -> bool:
    return any(
        isinstance(definition, ObjectTypeDefinitionNode) and definition.name.value == "Query"
        for definition in document.definitions
    )


def _shape_page(page: LengthAwarePage, pagination_type: PaginationType) -> dict[str, Any]:
    """Shape a page for the wrapper type of its pagination style."""
    if pagination_type.is_connection():
        connection = Connection.from_page(page)
        return {"pageInfo": connection.page_info, "edges": connection.edges}
    if pagination_type.is_simple():
        simple = SimplePage.from_page(page)
        return {"paginatorInfo": simple.paginator_info(), "data": simple.items}
    return {**page.paginator_info(), "data": page.items}


def paginated_field_resolver(
    paginated: PaginatedField,
    relation: str,
    decorate: Optional[FieldQueryDecorator] = None,
) -> Callable:
    """
    Build the resolver of a paginated relation field.

    Parents resolved in the same execution tick are batched into one
    merged relation fetch through the request's ExecutionContext.
    """
    async def resolve(parent: Any, info: GraphQLResolveInfo, **args: Any) -> dict[str, Any]:
        pagination_args = PaginationArgs.extract(args, paginated.type, paginated.max_count)
        context: ExecutionContext = info.context

        if decorate is None:
            query_decorator = no_decoration
        else:
            def query_decorator(query, parent_entity):
                return decorate(query, parent_entity, args)

        key = (
            paginated.parent_type,
            paginated.name,
            pagination_args,
            json.dumps(args, sort_keys=True, default=str),
        )
        loader = context.relation_loader(key, relation, query_decorator, pagination_args)
        page = await loader.load(parent)
        return _shape_page(page, paginated.type)

    return resolve


@dataclass
class FederatedSchema:
    """An executable schema plus what was declared in its SDL."""
    schema: GraphQLSchema
    sdl: str
    entities: dict[str, EntityDef]
    registry: EntityResolverRegistry
    engine: EntityResolutionEngine
    paginated_fields: list[PaginatedField] = field(default_factory=list)
    config: FedgraphConfig = field(default_factory=FedgraphConfig)

    async def execute(
        self,
        query: str,
        variables: Optional[dict[str, Any]] = None,
        context: Optional[ExecutionContext] = None,
        operation_name: Optional[str] = None,
    ) -> ExecutionResult:
        """Execute a GraphQL operation against the schema."""
        if context is None:
            context = ExecutionContext(config=self.config)
        return await graphql(
            self.schema,
            query,
            variable_values=variables,
            context_value=context,
            operation_name=operation_name,
            field_resolver=snake_case_field_resolver,
        )


def _definition_names(document: DocumentNode) -> set[str]:
    return {
        definition.name.value
        for definition in document.definitions
        if getattr(definition, "name", None) is not None
    }


def _federation_definitions(document: DocumentNode) -> tuple:
    """Federation scalars and directives the author has not declared already."""
    declared = _definition_names(document)
    return tuple(
        definition
        for definition in parse(FEDERATION_DIRECTIVES_SDL).definitions
        if definition.name.value not in declared
    )


def build_federated_schema(
    sdl: str,
    registry: Optional[EntityResolverRegistry] = None,
    config: Optional[FedgraphConfig] = None,
    resolvers: Optional[Mapping[str, Callable]] = None,
    decorators: Optional[Mapping[str, FieldQueryDecorator]] = None,
) -> FederatedSchema:
    """
    Build an executable federated schema from SDL.

    Args:
        sdl: Schema authored with @key/@external/@paginate directives
        registry: Entity resolvers for `_entities`
        config: fedgraph configuration
        resolvers: "Type.field" -> resolver for ordinary fields
        decorators: "Type.field" -> query decorator for paginated fields

    Returns:
        FederatedSchema ready for execution

    Raises:
        SchemaConfigError: declarations are invalid
    """
    config = config or FedgraphConfig()
    registry = registry or EntityResolverRegistry()
    resolvers = dict(resolvers or {})
    decorators = dict(decorators or {})

    document = parse(sdl)
    entities = collect_entities(document) if config.federation else {}

    document, paginated_fields, relations = apply_pagination_directives(document, config)
    printed_sdl = print_ast(document)

    extra_sdl = []
    if config.federation:
        extra_sdl.append(SERVICE_TYPE_SDL)
        resolvable = [name for name, entity in entities.items() if entity.resolvable]
        if resolvable:
            extra_sdl.append(f"union _Entity = {' | '.join(resolvable)}")
            root_fields = ENTITIES_FIELD_SDL
        else:
            root_fields = "  _service: _Service!\n"
        keyword = "extend type" if _has_query_type(document) else "type"
        extra_sdl.append(f"{keyword} Query {{\n{root_fields}}}")

    definitions = _federation_definitions(document) + tuple(document.definitions)
    if extra_sdl:
        definitions += tuple(parse("\n".join(extra_sdl)).definitions)
    schema = build_ast_schema(DocumentNode(definitions=definitions))

    engine = EntityResolutionEngine(entities, registry)

    if config.federation:
        _install_federation_resolvers(schema, engine, printed_sdl)

    for paginated in paginated_fields:
        coordinate = f"{paginated.parent_type}.{paginated.name}"
        relation = relations.get((paginated.parent_type, paginated.name), to_snake_case(paginated.name))
        resolvers.setdefault(
            coordinate,
            paginated_field_resolver(paginated, relation, decorators.get(coordinate)),
        )

    for coordinate, resolver in resolvers.items():
        _install_resolver(schema, coordinate, resolver)

    logger.info(
        f"Built schema with {len(entities)} entity type(s) and {len(paginated_fields)} paginated field(s)"
    )
    return FederatedSchema(
        schema=schema,
        sdl=printed_sdl,
        entities=entities,
        registry=registry,
        engine=engine,
        paginated_fields=paginated_fields,
        config=config,
    )


def _install_resolver(schema: GraphQLSchema, coordinate: str, resolver: Callable) -> None:
    type_name, _, field_name = coordinate.partition(".")
    graphql_type = schema.get_type(type_name)
    fields = getattr(graphql_type, "fields", None)
    if not fields or field_name not in fields:
        raise SchemaConfigError(f"Cannot install resolver: {coordinate} is not a field of the schema")
    fields[field_name].resolve = resolver


def _install_federation_resolvers(schema: GraphQLSchema, engine: EntityResolutionEngine, sdl: str) -> None:
    query_type = schema.query_type

    async def resolve_entities(_root: Any, info: GraphQLResolveInfo, representations: list) -> list:
        # Failed positions hold the exception, which graphql-core turns into
        # null plus a located error at that index
        entities = await engine.resolve(representations, info.context)
        if isinstance(info.context, ExecutionContext):
            for representation, entity in zip(representations, entities):
                if entity is not None and not isinstance(entity, Exception):
                    info.context.entity_typenames[id(entity)] = representation["__typename"]
        return entities

    def resolve_service(_root: Any, _info: GraphQLResolveInfo) -> dict[str, str]:
        return {"sdl": sdl}

    if "_entities" in query_type.fields:
        query_type.fields["_entities"].resolve = resolve_entities
        schema.get_type("_Entity").resolve_type = _resolve_entity_type
    query_type.fields["_service"].resolve = resolve_service


def _resolve_entity_type(value: Any, info: GraphQLResolveInfo, abstract_type: GraphQLUnionType) -> Optional[str]:
    """Pick the concrete `_Entity` member for a resolved entity."""
    if isinstance(value, dict) and value.get("__typename"):
        return value["__typename"]

    typename = getattr(value, "__graphql_typename__", None)
    if typename:
        return typename

    class_name = type(value).__name__
    if any(member.name == class_name for member in abstract_type.types):
        return class_name

    # Fall back to the typename of the representation the entity came from
    if isinstance(info.context, ExecutionContext):
        return info.context.entity_typenames.get(id(value))
    return None
