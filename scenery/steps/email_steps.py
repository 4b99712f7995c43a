"""Steps asserting on email captured by the scenario's mailer."""
# ruff: noqa: D103

from __future__ import annotations

import typing as typ

from pytest_bdd import given, parsers, then, when

from scenery.browser import locate_path
from scenery.mail.content import find_link, plaintext

if typ.TYPE_CHECKING:
    from scenery.mail.mailer import EmailMessage
    from scenery.pytest_plugin import SceneryContext

_EMAIL = (
    r'(?P<direction>to|from) "(?P<address>[^"]*)"(?: titled "(?P<subject>[^"]*)")?'
)


def _criteria(direction: str, address: str) -> dict[str, str | None]:
    return {
        "to": address if direction == "to" else None,
        "from_": address if direction == "from" else None,
    }


def _matched_email(scenery: SceneryContext) -> EmailMessage:
    if scenery.last_email is None:
        msg = "No matched email found from previous step"
        raise LookupError(msg)
    return scenery.last_email


@given(parsers.re(r"there should (?P<negate>not )?be an email " + _EMAIL))
@then(parsers.re(r"there should (?P<negate>not )?be an email " + _EMAIL))
def email_should_exist(
    scenery: SceneryContext,
    negate: str | None,
    direction: str,
    address: str,
    subject: str | None,
) -> None:
    criteria = _criteria(direction, address)
    match = scenery.mailer.find_email(subject=subject, **criteria)
    if negate:
        assert match is None, f"Unexpected email {direction} {address!r}"
    else:
        titles = [email.subject for email in scenery.mailer.find_emails(**criteria)]
        message = f"Could not find email {direction} {address!r}"
        if subject is not None:
            message += f" titled {subject!r}"
        if titles:
            message += f". Existing emails: {', '.join(map(repr, titles))}"
        assert match is not None, message
    scenery.last_email = match


@then(parsers.re(r'the email should contain "(?P<content>[^"]*)"'))
def email_should_contain(scenery: SceneryContext, content: str) -> None:
    email = _matched_email(scenery)
    body = plaintext(email.content) if email.content else email.plain_content
    assert content in body, f"{content!r} not found in email body {body!r}"


@when(
    parsers.re(
        r'I click on the "(?P<link>[^"]*)" link in the email(?: ' + _EMAIL + ")?"
    )
)
def click_email_link(
    scenery: SceneryContext,
    link: str,
    direction: str | None,
    address: str | None,
    subject: str | None,
) -> None:
    if direction is None or address is None:
        email = _matched_email(scenery)
    else:
        found = scenery.mailer.find_email(
            subject=subject, **_criteria(direction, address)
        )
        assert found is not None, f"Could not find email {direction} {address!r}"
        email = found
    href = find_link(email.content, link)
    assert href is not None, f"No link {link!r} in email {email.subject!r}"
    scenery.require_browser().visit(locate_path(scenery.config.base_url, href))


@given("I clear all emails")
@when("I clear all emails")
def clear_emails(scenery: SceneryContext) -> None:
    scenery.last_email = None
    scenery.mailer.clear_emails()
