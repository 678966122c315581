import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run tests marked as integration (fetch live jurisdiction pages).",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "integration: tests that hit real government websites"
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="needs network (use --run-integration)")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)
