"""Unit tests for naming helpers."""

from __future__ import annotations

import pytest

from fedgraph.core.utils import pluralize, to_camel_case, to_snake_case


@pytest.mark.parametrize("name, expected", [
    ("paginatorInfo", "paginator_info"),
    ("publishedPosts", "published_posts"),
    ("HTTPResponse", "http_response"),
    ("getHTTPResponseCode", "get_http_response_code"),
    ("posts", "posts"),
])
def test_to_snake_case(name, expected):
    assert to_snake_case(name) == expected


def test_to_camel_case():
    assert to_camel_case("has_more_pages") == "hasMorePages"


@pytest.mark.parametrize("name, expected", [
    ("Post", "Posts"),
    ("Category", "Categories"),
    ("Day", "Days"),
    ("Box", "Boxes"),
    ("Address", "Addresses"),
    ("Branch", "Branches"),
])
def test_pluralize(name, expected):
    assert pluralize(name) == expected
