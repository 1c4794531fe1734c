import pytest

import up_for_grabs.config


@pytest.fixture(autouse=True)
def reset_config(monkeypatch):
    """Isolate tests from explicit settings, environment and config files."""
    monkeypatch.setattr(up_for_grabs.config, "_CACHE_DIR", None)
    monkeypatch.setattr(up_for_grabs.config, "_FRESHNESS_WINDOW", None)
    monkeypatch.setattr(up_for_grabs.config, "VERIFY_SSL", True)
    for name in (
        "GITHUB_TOKEN",
        "UP_FOR_GRABS_CACHE_DIR",
        "UP_FOR_GRABS_FRESHNESS_WINDOW",
        "UP_FOR_GRABS_GITHUB_API",
    ):
        monkeypatch.delenv(name, raising=False)
