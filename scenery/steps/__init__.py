"""pytest-bdd step definitions loaded by ``scenery.pytest_plugin``."""
