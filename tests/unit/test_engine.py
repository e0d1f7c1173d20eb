"""Unit tests for the entity resolution engine."""

from __future__ import annotations

import pytest

from fedgraph.core.defs import EntityDef, KeySet
from fedgraph.core.errors import DataFetchError, EntityNotFoundError, EntityResolutionError
from fedgraph.federation.engine import EntityResolutionEngine
from fedgraph.federation.registry import EntityResolverRegistry


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _entities(*typenames: str) -> dict[str, EntityDef]:
    return {
        typename: EntityDef(typename=typename, key_sets=[KeySet.parse("id")])
        for typename in typenames
    }


def _rep(typename: str, **fields) -> dict:
    return {"__typename": typename, **fields}


class FooMissing(EntityNotFoundError):
    def __init__(self, foo_id):
        self.foo_id = foo_id
        super().__init__(f"Foo {foo_id} does not exist")


@pytest.fixture()
def calls():
    return {"single": [], "batched": []}


@pytest.fixture()
def engine(calls) -> EntityResolutionEngine:
    registry = EntityResolverRegistry()

    @registry.single("Foo")
    def resolve_foo(representation):
        calls["single"].append(representation["id"])
        return {"typename": "Foo", "id": representation["id"]}

    @registry.batched("BatchedFoo")
    async def resolve_batched_foo(representations):
        calls["batched"].append([representation["id"] for representation in representations])
        return [{"typename": "BatchedFoo", "id": representation["id"]} for representation in representations]

    return EntityResolutionEngine(_entities("Foo", "BatchedFoo", "Unregistered"), registry)


# ---------------------------------------------------------------------------
# Ordering and batching
# ---------------------------------------------------------------------------


class TestOrdering:
    async def test_results_follow_representation_order(self, engine):
        results = await engine.resolve([
            _rep("BatchedFoo", id=1),
            _rep("Foo", id=2),
            _rep("BatchedFoo", id=3),
            _rep("Foo", id=4),
        ])

        assert [(result["typename"], result["id"]) for result in results] == [
            ("BatchedFoo", 1),
            ("Foo", 2),
            ("BatchedFoo", 3),
            ("Foo", 4),
        ]

    async def test_batched_resolver_called_once_per_typename(self, engine, calls):
        await engine.resolve([
            _rep("BatchedFoo", id=1),
            _rep("Foo", id=2),
            _rep("BatchedFoo", id=3),
        ])

        assert calls["batched"] == [[1, 3]]
        assert calls["single"] == [2]

    async def test_empty_input(self, engine):
        assert await engine.resolve([]) == []

    async def test_none_result_is_kept(self):
        registry = EntityResolverRegistry()
        registry.register_single("Foo", lambda representation: None)
        engine = EntityResolutionEngine(_entities("Foo"), registry)

        assert await engine.resolve([_rep("Foo", id=1)]) == [None]


# ---------------------------------------------------------------------------
# Per-position failures
# ---------------------------------------------------------------------------


class TestFailures:
    async def test_unknown_typename(self, engine):
        results = await engine.resolve([_rep("Foo", id=1), _rep("Bar", id=2)])

        assert results[0] == {"typename": "Foo", "id": 1}
        assert isinstance(results[1], EntityResolutionError)
        assert results[1].message == 'Unknown type: "Bar".'
        assert results[1].index == 1

    async def test_unsatisfied_key(self, engine, calls):
        results = await engine.resolve([_rep("Foo"), _rep("Foo", id=2)])

        assert results[0].message == EntityResolutionError.UNSATISFIED_KEYS_MESSAGE
        assert results[0].index == 0
        assert results[1] == {"typename": "Foo", "id": 2}
        assert calls["single"] == [2]

    async def test_missing_resolver(self, engine):
        results = await engine.resolve([_rep("Unregistered", id=1), _rep("Foo", id=2)])

        assert results[0].message == 'No entity resolver found for type "Unregistered".'
        assert results[1]["id"] == 2

    async def test_single_failure_is_scoped_to_its_position(self):
        def resolve(representation):
            if representation["id"] == 2:
                raise EntityNotFoundError("Foo 2 does not exist")
            return representation["id"]

        registry = EntityResolverRegistry()
        registry.register_single("Foo", resolve)
        engine = EntityResolutionEngine(_entities("Foo"), registry)

        results = await engine.resolve([_rep("Foo", id=1), _rep("Foo", id=2), _rep("Foo", id=3)])

        assert results[0] == 1
        assert isinstance(results[1], EntityNotFoundError)
        assert results[1].index == 1
        assert results[2] == 3

    async def test_unexpected_single_exception_is_wrapped(self):
        registry = EntityResolverRegistry()
        registry.register_single("Foo", lambda representation: 1 / 0)
        engine = EntityResolutionEngine(_entities("Foo"), registry)

        results = await engine.resolve([_rep("Foo", id=1)])

        assert isinstance(results[0], EntityResolutionError)
        assert results[0].typename == "Foo"

    async def test_batched_exception_replicated_to_every_member(self):
        def resolve(representations):
            raise RuntimeError("backend unavailable")

        registry = EntityResolverRegistry()
        registry.register_batched("BatchedFoo", resolve)
        registry.register_single("Foo", lambda representation: representation["id"])
        engine = EntityResolutionEngine(_entities("Foo", "BatchedFoo"), registry)

        results = await engine.resolve([
            _rep("BatchedFoo", id=1),
            _rep("Foo", id=2),
            _rep("BatchedFoo", id=3),
        ])

        assert results[1] == 2
        for index in (0, 2):
            assert isinstance(results[index], EntityResolutionError)
            assert results[index].message == "backend unavailable"
            assert results[index].index == index

    async def test_batched_length_mismatch(self):
        registry = EntityResolverRegistry()
        registry.register_batched("BatchedFoo", lambda representations: [1])
        engine = EntityResolutionEngine(_entities("BatchedFoo"), registry)

        results = await engine.resolve([_rep("BatchedFoo", id=1), _rep("BatchedFoo", id=2)])

        expected = 'Batched resolver for type "BatchedFoo" returned 1 entities for 2 representations.'
        assert [result.message for result in results] == [expected, expected]
        assert [result.index for result in results] == [0, 1]

    async def test_batched_may_return_errors_per_position(self):
        def resolve(representations):
            return [
                representation["id"] if representation["id"] != 2 else EntityNotFoundError("missing")
                for representation in representations
            ]

        registry = EntityResolverRegistry()
        registry.register_batched("BatchedFoo", resolve)
        engine = EntityResolutionEngine(_entities("BatchedFoo"), registry)

        results = await engine.resolve([_rep("BatchedFoo", id=1), _rep("BatchedFoo", id=2)])

        assert results[0] == 1
        assert isinstance(results[1], EntityNotFoundError)
        assert results[1].index == 1

    async def test_data_fetch_error_is_fatal(self):
        def resolve(representations):
            raise DataFetchError("connection refused")

        registry = EntityResolverRegistry()
        registry.register_batched("BatchedFoo", resolve)
        engine = EntityResolutionEngine(_entities("BatchedFoo"), registry)

        with pytest.raises(DataFetchError):
            await engine.resolve([_rep("BatchedFoo", id=1)])

    async def test_custom_not_found_subclass_keeps_siblings(self):
        def resolve(representation):
            if representation["id"] == 2:
                raise FooMissing(2)
            return representation["id"]

        registry = EntityResolverRegistry()
        registry.register_single("Foo", resolve)
        engine = EntityResolutionEngine(_entities("Foo"), registry)

        results = await engine.resolve([_rep("Foo", id=1), _rep("Foo", id=2), _rep("Foo", id=3)])

        assert results[0] == 1
        assert isinstance(results[1], FooMissing)
        assert results[1].foo_id == 2
        assert results[1].message == "Foo 2 does not exist"
        assert results[1].typename == "Foo"
        assert results[1].index == 1
        assert results[2] == 3

    async def test_custom_error_from_batch_is_bound_per_position(self):
        def resolve(representations):
            raise FooMissing(0)

        registry = EntityResolverRegistry()
        registry.register_batched("BatchedFoo", resolve)
        engine = EntityResolutionEngine(_entities("BatchedFoo"), registry)

        results = await engine.resolve([_rep("BatchedFoo", id=1), _rep("BatchedFoo", id=2)])

        assert [type(result) for result in results] == [FooMissing, FooMissing]
        assert [result.index for result in results] == [0, 1]
        assert results[0] is not results[1]

    async def test_non_mapping_representation(self, engine):
        results = await engine.resolve(["Foo", _rep("Foo", id=2)])

        assert isinstance(results[0], EntityResolutionError)
        assert results[0].message == 'Unknown type: "None".'
        assert results[0].index == 0
        assert results[1]["id"] == 2


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


class TestContext:
    async def test_context_reaches_resolvers_that_ask_for_it(self):
        registry = EntityResolverRegistry()
        registry.register_single("Foo", lambda representation, context: (context, representation["id"]), pass_context=True)
        registry.register_single("BatchedFoo", lambda representation: representation["id"])
        engine = EntityResolutionEngine(_entities("Foo", "BatchedFoo"), registry)

        results = await engine.resolve([_rep("Foo", id=1), _rep("BatchedFoo", id=2)], context="request")

        assert results == [("request", 1), 2]
