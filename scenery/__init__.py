"""Fixture and session layer for behaviour-driven CMS scenarios.

Scenarios declare records in natural language ("a "page" "Page 1" is a
child of the "page" "Home""), and scenery turns them into persisted rows,
stored assets and captured email, then removes all of it when the scenario
ends. See ``scenery.pytest_plugin`` for the pytest-bdd integration.
"""
