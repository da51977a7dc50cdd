import os

import pytest

from mercurio.config import MercurioConfig


def pytest_collection_modifyitems(config: pytest.Config, items: list) -> None:
    missing = not (os.getenv("MERCURIO_TEST_API_URL") and os.getenv("MERCURIO_TEST_API_KEY"))
    if not missing:
        return
    mark_expr = getattr(config.option, "markexpr", "")
    if "integration" in mark_expr:
        return
    skip = pytest.mark.skip(reason="MERCURIO_TEST_API_URL / MERCURIO_TEST_API_KEY not set")
    for item in items:
        if item.get_closest_marker("integration"):
            item.add_marker(skip)


@pytest.fixture(scope="session")
def backend_config() -> MercurioConfig:
    api_url = os.getenv("MERCURIO_TEST_API_URL")
    api_key = os.getenv("MERCURIO_TEST_API_KEY")
    if not api_url or not api_key:
        pytest.fail(
            "MERCURIO_TEST_API_URL and MERCURIO_TEST_API_KEY must be set to run integration tests."
        )
    return MercurioConfig(api_url=api_url, api_key=api_key, poll_interval=0.5)
