"""Behavioural tests for the navigation step definitions."""
# ruff: noqa: D103

from __future__ import annotations

from pytest_bdd import scenario


@scenario("../navigation.feature", "Visiting a page fixture by name")
def test_visit_page_fixture() -> None:
    """Page fixtures resolve to their site links."""


@scenario("../navigation.feature", "Visiting a URL with query variables")
def test_visit_url() -> None:
    """Relative URLs are resolved against the base URL."""
