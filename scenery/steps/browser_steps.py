"""Navigation steps driven through the configured browser session."""
# ruff: noqa: D103

from __future__ import annotations

import typing as typ

from pytest_bdd import given, parsers, then, when

from scenery.browser import is_url_similar_to, locate_path, wait_until

if typ.TYPE_CHECKING:
    from scenery.pytest_plugin import SceneryContext

_NAMED_RECORD = r'I go to (?:an|a|the) "(?P<type_name>[^"]+)" "(?P<identifier>[^"]+)"'
_URL = r'I go to "(?P<url>[^"]+)"'


@given(parsers.re(_NAMED_RECORD))
@when(parsers.re(_NAMED_RECORD))
def go_to_named_record(
    scenery: SceneryContext, type_name: str, identifier: str
) -> None:
    link = scenery.run(scenery.fixtures.record_link(type_name, identifier))
    scenery.require_browser().visit(locate_path(scenery.config.base_url, link))


@given(parsers.re(_URL))
@when(parsers.re(_URL))
def go_to_url(scenery: SceneryContext, url: str) -> None:
    scenery.require_browser().visit(locate_path(scenery.config.base_url, url))


@then(parsers.re(r'I should be on "(?P<url>[^"]+)"'))
def should_be_on(scenery: SceneryContext, url: str) -> None:
    browser = scenery.require_browser()
    wait_until(
        lambda: is_url_similar_to(browser.current_url(), url),
        timeout=scenery.config.ajax_timeout,
    )
