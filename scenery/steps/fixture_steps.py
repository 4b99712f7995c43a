"""Given/Then steps that declare and inspect fixtures."""
# ruff: noqa: D103

from __future__ import annotations

import typing as typ

from pytest_bdd import given, parsers, then, when

if typ.TYPE_CHECKING:
    from scenery.pytest_plugin import SceneryContext

_ARTICLE = r"(?:an|a|the) "
_RECORD = _ARTICLE + r'"(?P<type_name>[^"]+)" "(?P<identifier>[^"]+)"'


@given(parsers.re(_RECORD))
def create_record(scenery: SceneryContext, type_name: str, identifier: str) -> None:
    scenery.run(scenery.fixtures.create_record(type_name, identifier))


@given(
    parsers.re(
        _RECORD + " has " + _ARTICLE + r'"(?P<field>[^"]*)" "(?P<value>[^"]*)"'
    )
)
def create_record_with_field(
    scenery: SceneryContext, type_name: str, identifier: str, field: str, value: str
) -> None:
    scenery.run(
        scenery.fixtures.create_record_with_field(type_name, identifier, field, value)
    )


@given(parsers.re(_RECORD + r' (?:with|has) (?P<data>".*)'))
def create_record_with_data(
    scenery: SceneryContext, type_name: str, identifier: str, data: str
) -> None:
    scenery.run(scenery.fixtures.create_record_with_data(type_name, identifier, data))


@given(parsers.re(_RECORD + " has the following data"))
def create_record_with_table(
    scenery: SceneryContext,
    type_name: str,
    identifier: str,
    datatable: list[list[str]],
) -> None:
    scenery.run(
        scenery.fixtures.create_record_with_table(type_name, identifier, datatable)
    )


@given(
    parsers.re(
        _RECORD
        + r" is a (?P<relation>\S+) of "
        + _ARTICLE
        + r'"(?P<relation_type>[^"]+)" "(?P<relation_id>[^"]+)"'
    )
)
def update_record_relation(
    scenery: SceneryContext,
    type_name: str,
    identifier: str,
    relation: str,
    relation_type: str,
    relation_id: str,
) -> None:
    scenery.run(
        scenery.fixtures.update_record_relation(
            type_name, identifier, relation, relation_type, relation_id
        )
    )


@given(
    parsers.re(
        r"I assign "
        + _ARTICLE
        + r'"(?P<type_name>[^"]+)" "(?P<value>[^"]+)" to '
        + _ARTICLE
        + r'"(?P<relation_type>[^"]+)" "(?P<relation_id>[^"]+)"'
        + r'(?: in the "(?P<relation_name>[^"]+)" relation)?'
    )
)
def assign_record(
    scenery: SceneryContext,
    type_name: str,
    value: str,
    relation_type: str,
    relation_id: str,
    relation_name: str | None,
) -> None:
    scenery.run(
        scenery.fixtures.assign(
            type_name, value, relation_type, relation_id, relation_name
        )
    )


@given(parsers.re(_RECORD + r' is (?P<state>[^"]*)'))
@when(parsers.re(_RECORD + r' is (?P<state>[^"]*)'))
def update_record_state(
    scenery: SceneryContext, type_name: str, identifier: str, state: str
) -> None:
    scenery.run(scenery.fixtures.update_record_state(type_name, identifier, state))


@given(parsers.re(r"there are the following (?P<type_name>\S+) records"))
def load_records(scenery: SceneryContext, type_name: str, docstring: str) -> None:
    scenery.run(scenery.fixtures.load_records(type_name, docstring))


@given(
    parsers.re(
        _ARTICLE
        + r'"member" "(?P<identifier>[^"]+)" belonging to "(?P<group_id>[^"]+)"'
        + r"(?: with (?P<data>.*))?"
    )
)
def create_member_with_group(
    scenery: SceneryContext, identifier: str, group_id: str, data: str | None
) -> None:
    scenery.run(scenery.fixtures.create_member_with_group(identifier, group_id, data))


@given(
    parsers.re(
        _ARTICLE
        + r'"group" "(?P<identifier>[^"]+)" (?:with|has) permissions '
        + r"(?P<permissions>.*)"
    )
)
def create_group_with_permissions(
    scenery: SceneryContext, identifier: str, permissions: str
) -> None:
    scenery.run(scenery.fixtures.create_group_with_permissions(identifier, permissions))


@given(
    parsers.re(
        _ARTICLE
        + r'"(?P<type_name>[^"]*)" "(?P<identifier>[^"]*)" was '
        + r'(?P<which>created|last edited) "(?P<when>[^"]*)"'
    )
)
def set_record_timestamp(
    scenery: SceneryContext, type_name: str, identifier: str, which: str, when: str
) -> None:
    scenery.run(
        scenery.fixtures.set_record_timestamp(type_name, identifier, which, when)
    )


@then(parsers.re(r'there should be a (?P<kind>file|folder) "(?P<path>[^"]*)"'))
def path_should_exist(scenery: SceneryContext, kind: str, path: str) -> None:
    assert scenery.run(scenery.fixtures.path_exists(kind, path)), (
        f"Expected a {kind} at {path}"
    )


@then(
    parsers.re(
        r'there should be a filename "(?P<filename>[^"]*)" '
        r'with hash "(?P<file_hash>[a-fA-F0-9]+)"'
    )
)
def asset_should_exist(scenery: SceneryContext, filename: str, file_hash: str) -> None:
    assert scenery.run(scenery.fixtures.asset_exists(filename, file_hash)), (
        f"A file exists with filename {filename} and hash {file_hash}"
    )
