import os
import sys

import pytest

# Ensure repo-local imports (e.g., `import ucihost`) resolve without extra setup.
src_dir = os.path.abspath(os.path.dirname(__file__))
if src_dir not in sys.path:
    sys.path.insert(0, src_dir)

FAKE_ENGINE = os.path.join(src_dir, "tests", "fake_engine.py")


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "-E",
        "--engine",
        action="store",
        default=None,
        dest="real_engine",
        help="Run tests marked with @pytest.mark.real_engine against this UCI engine binary",
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    if not config.getoption("real_engine"):
        skip_real = pytest.mark.skip(reason="use -E/--engine PATH to enable real engine tests")
        for item in items:
            if "real_engine" in item.keywords:
                item.add_marker(skip_real)


@pytest.fixture
def fake_engine():
    """Return (executable, args) launching the scripted fake engine in *mode*."""

    def command(mode: str = "normal"):
        return sys.executable, [FAKE_ENGINE, mode]

    return command


@pytest.fixture
def real_engine_path(request: pytest.FixtureRequest) -> str:
    return request.config.getoption("real_engine")
