"""
Pagination manipulator - turns list fields into paginated fields.

A field declared as

    posts: [Post!]! @paginate(type: PAGINATOR, defaultCount: 10, maxCount: 50)

becomes `posts(first: Int = 10, page: Int): PaginatedPosts` and the wrapper
types it needs are added to the document:

- PAGINATOR  -> Paginated{Plural} with count/currentPage/.../total and data
- SIMPLE     -> {Type}SimplePaginator with paginatorInfo and data
- CONNECTION -> {Type}Connection with pageInfo and edges, plus {Type}Edge

The wrapper is nullable unless `pagination.non_null_results` is configured.
"""

from __future__ import annotations

import logging
from typing import Optional

from graphql import (
    DocumentNode,
    FieldDefinitionNode,
    InputValueDefinitionNode,
    ListTypeNode,
    NonNullTypeNode,
    ObjectTypeDefinitionNode,
    ObjectTypeExtensionNode,
    TypeDefinitionNode,
    TypeNode,
    parse,
    parse_type,
    value_from_ast_untyped,
)

from ..core.config import FedgraphConfig
from ..core.defs import PaginatedField, PaginationType
from ..core.errors import SchemaConfigError
from ..core.utils import pluralize


logger = logging.getLogger(__name__)


PAGINATE_DIRECTIVE = "paginate"

PAGINATE_DIRECTIVE_SDL = '''
"Paginate a list field of related entities."
directive @paginate(
  "Pagination style of the field."
  type: PaginateType = PAGINATOR
  "Page size used when the client omits `first`."
  defaultCount: Int
  "Maximum page size a client may request."
  maxCount: Int
  "Relationship name on the parent model, defaults to the field name in snake_case."
  relation: String
) on FIELD_DEFINITION

"Pagination styles supported by @paginate."
enum PaginateType {
  PAGINATOR
  SIMPLE
  CONNECTION
}
'''

SIMPLE_PAGINATOR_INFO_SDL = '''
"Information about pagination using a simple paginator."
type SimplePaginatorInfo {
  "Number of items in the current page."
  count: Int!
  "Index of the current page."
  currentPage: Int!
  "Index of the first item in the current page."
  firstItem: Int
  "Index of the last item in the current page."
  lastItem: Int
  "Number of items per page."
  perPage: Int!
  "Are there more pages after this one?"
  hasMorePages: Boolean!
}
'''

PAGE_INFO_SDL = '''
"Information about pagination using a Relay style cursor connection."
type PageInfo {
  "When paginating forwards, are there more items?"
  hasNextPage: Boolean!
  "When paginating backwards, are there more items?"
  hasPreviousPage: Boolean!
  "The cursor to continue paginating backwards."
  startCursor: String
  "The cursor to continue paginating forwards."
  endCursor: String
  "Total number of nodes in the paginated connection."
  total: Int!
  "Number of nodes in the current page."
  count: Int!
  "Index of the current page."
  currentPage: Int!
  "Index of the last available page."
  lastPage: Int!
}
'''


def underlying_type_name(type_node: TypeNode) -> str:
    """Unwrap list and non-null wrappers down to the named type."""
    while isinstance(type_node, (NonNullTypeNode, ListTypeNode)):
        type_node = type_node.type
    return type_node.name.value


def _input_value(sdl: str) -> InputValueDefinitionNode:
    document = parse(f"type _ {{ f({sdl}): Int }}")
    return document.definitions[0].fields[0].arguments[0]


def _with_fields(definition, fields):
    """Rebuild an object type definition or extension with new fields."""
    # AST nodes are immutable on newer graphql-core releases
    if isinstance(definition, ObjectTypeExtensionNode):
        return ObjectTypeExtensionNode(
            name=definition.name,
            interfaces=definition.interfaces,
            directives=definition.directives,
            fields=fields,
            loc=definition.loc,
        )
    return ObjectTypeDefinitionNode(
        name=definition.name,
        description=definition.description,
        interfaces=definition.interfaces,
        directives=definition.directives,
        fields=fields,
        loc=definition.loc,
    )


def _count_argument(default_count: Optional[int], max_count: Optional[int]) -> InputValueDefinitionNode:
    description = "Limits number of fetched items."
    if max_count:
        description += f" Maximum allowed value: {max_count}."
    definition = f"first: Int = {default_count}" if default_count else "first: Int!"
    return _input_value(f'"{description}"\n{definition}')


class PaginationManipulator:
    """
    Transforms field definitions of a document into paginated fields.

    Usage:
        manipulator = PaginationManipulator(document, config)
        manipulator.transform_to_paginated_field(
            PaginationType.PAGINATOR, "User", field_definition, default_count=10,
        )
        document = manipulator.document()
    """

    def __init__(self, document: DocumentNode, config: Optional[FedgraphConfig] = None):
        self.config = config or FedgraphConfig()
        self.definitions = list(document.definitions)
        self.types: dict[str, TypeDefinitionNode] = {
            definition.name.value: definition
            for definition in self.definitions
            if isinstance(definition, TypeDefinitionNode)
        }

    def document(self) -> DocumentNode:
        return DocumentNode(definitions=tuple(self.definitions))

    def transform_to_paginated_field(
        self,
        pagination_type: PaginationType,
        parent_type: str,
        field_definition: FieldDefinitionNode,
        default_count: Optional[int] = None,
        max_count: Optional[int] = None,
    ) -> tuple[FieldDefinitionNode, PaginatedField]:
        """
        Build the paginated version of a field and register its wrapper types.

        Returns:
            The new field definition and its pagination metadata
        """
        node_type = underlying_type_name(field_definition.type)

        if pagination_type.is_connection():
            wrapper, arguments = self._register_connection(node_type, default_count, max_count)
        elif pagination_type.is_simple():
            wrapper, arguments = self._register_simple_paginator(node_type, default_count, max_count)
        else:
            wrapper, arguments = self._register_paginator(node_type, default_count, max_count)

        paginated = FieldDefinitionNode(
            name=field_definition.name,
            description=field_definition.description,
            arguments=tuple(field_definition.arguments or ()) + tuple(arguments),
            type=self._pagination_result_type(wrapper),
            directives=field_definition.directives,
            loc=field_definition.loc,
        )

        logger.debug(f"Paginated {parent_type}.{field_definition.name.value} as {wrapper}")
        return paginated, PaginatedField(
            parent_type=parent_type,
            name=field_definition.name.value,
            type=pagination_type,
            node_type=node_type,
            wrapper_type=wrapper,
            default_count=default_count,
            max_count=max_count,
        )

    def _register_paginator(self, node_type, default_count, max_count):
        wrapper = f"Paginated{pluralize(node_type)}"
        self._add_wrapper_type(f'''
            "A paginated list of {node_type} items."
            type {wrapper} {{
              "Number of items in the current page."
              count: Int!
              "Index of the current page."
              currentPage: Int!
              "Index of the first item in the current page."
              firstItem: Int
              "Are there more pages after this one?"
              hasMorePages: Boolean!
              "Index of the last item in the current page."
              lastItem: Int
              "Index of the last available page."
              lastPage: Int!
              "Number of items per page."
              perPage: Int!
              "Number of total available items."
              total: Int!
              "A list of {node_type} items."
              data: [{node_type}!]!
            }}
        ''')
        return wrapper, [
            _count_argument(default_count, max_count),
            _input_value('"The offset from which items are returned."\npage: Int'),
        ]

    def _register_simple_paginator(self, node_type, default_count, max_count):
        wrapper = f"{node_type}SimplePaginator"
        self._add_shared_type("SimplePaginatorInfo", SIMPLE_PAGINATOR_INFO_SDL)
        self._add_wrapper_type(f'''
            "A paginated list of {node_type} items."
            type {wrapper} {{
              "Pagination information about the list of items."
              paginatorInfo: SimplePaginatorInfo!
              "A list of {node_type} items."
              data: [{node_type}!]!
            }}
        ''')
        return wrapper, [
            _count_argument(default_count, max_count),
            _input_value('"The offset from which items are returned."\npage: Int'),
        ]

    def _register_connection(self, node_type, default_count, max_count):
        edge = f"{node_type}Edge"
        wrapper = f"{node_type}Connection"
        self._add_shared_type("PageInfo", PAGE_INFO_SDL)
        self._add_wrapper_type(f'''
            "A paginated list of {node_type} edges."
            type {wrapper} {{
              "Pagination information about the list of edges."
              pageInfo: PageInfo!
              "A list of {node_type} edges."
              edges: [{edge}!]!
            }}
        ''')
        self._add_wrapper_type(f'''
            "An edge that contains a node of type {node_type} and a cursor."
            type {edge} {{
              "The {node_type} node."
              node: {node_type}!
              "A unique cursor that can be used for pagination."
              cursor: String!
            }}
        ''')
        return wrapper, [
            _count_argument(default_count, max_count),
            _input_value('"A cursor after which elements are returned."\nafter: String'),
        ]

    def _add_shared_type(self, name: str, sdl: str) -> None:
        if name not in self.types:
            self._append(parse(sdl).definitions[0])

    def _add_wrapper_type(self, sdl: str) -> None:
        """Add a wrapper type, reusing an existing object type of the same name."""
        definition = parse(sdl).definitions[0]
        name = definition.name.value

        existing = self.types.get(name)
        if existing is not None:
            if not isinstance(existing, ObjectTypeDefinitionNode):
                raise SchemaConfigError(
                    f"Expected object type for pagination wrapper {name}, found {existing.kind} instead."
                )
            return

        self._append(definition)

    def _append(self, definition: TypeDefinitionNode) -> None:
        self.definitions.append(definition)
        self.types[definition.name.value] = definition

    def _pagination_result_type(self, wrapper: str) -> TypeNode:
        non_null = "!" if self.config.non_null_pagination_results else ""
        return parse_type(f"{wrapper}{non_null}")


def _directive_arguments(field_definition: FieldDefinitionNode) -> Optional[dict]:
    for directive in field_definition.directives or ():
        if directive.name.value == PAGINATE_DIRECTIVE:
            return {
                argument.name.value: value_from_ast_untyped(argument.value)
                for argument in directive.arguments or ()
            }
    return None


def apply_pagination_directives(
    document: DocumentNode,
    config: Optional[FedgraphConfig] = None,
) -> tuple[DocumentNode, list[PaginatedField], dict[tuple[str, str], str]]:
    """
    Transform every `@paginate` field of a document.

    Args:
        document: Parsed SDL document
        config: Pagination defaults and result nullability

    Returns:
        The transformed document, metadata of every paginated field and
        the relationship name of each (type, field) pair
    """
    config = config or FedgraphConfig()

    defined = {
        definition.name.value
        for definition in document.definitions
        if hasattr(definition, "name") and definition.name is not None
    }
    if PAGINATE_DIRECTIVE not in defined:
        document = DocumentNode(
            definitions=tuple(parse(PAGINATE_DIRECTIVE_SDL).definitions) + tuple(document.definitions)
        )

    manipulator = PaginationManipulator(document, config)
    paginated_fields: list[PaginatedField] = []
    relations: dict[tuple[str, str], str] = {}

    for position, definition in enumerate(list(manipulator.definitions)):
        if not isinstance(definition, (ObjectTypeDefinitionNode, ObjectTypeExtensionNode)):
            continue

        fields = []
        changed = False
        for field_definition in definition.fields or ():
            arguments = _directive_arguments(field_definition)
            if arguments is None:
                fields.append(field_definition)
                continue

            pagination_type = PaginationType.parse(arguments.get("type") or "PAGINATOR")
            default_count = arguments.get("defaultCount", config.pagination.default_count)
            max_count = arguments.get("maxCount", config.pagination.max_count)
            if default_count and max_count and default_count > max_count:
                raise SchemaConfigError(
                    f"{definition.name.value}.{field_definition.name.value}: "
                    f"defaultCount {default_count} exceeds maxCount {max_count}"
                )

            paginated, meta = manipulator.transform_to_paginated_field(
                pagination_type,
                definition.name.value,
                field_definition,
                default_count=default_count,
                max_count=max_count,
            )
            fields.append(paginated)
            paginated_fields.append(meta)
            if arguments.get("relation"):
                relations[(meta.parent_type, meta.name)] = arguments["relation"]
            changed = True

        if changed:
            manipulator.definitions[position] = _with_fields(definition, tuple(fields))

    return manipulator.document(), paginated_fields, relations
