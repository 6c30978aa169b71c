"""
Register pytest plugins, fixtures, and hooks to be used during test execution.

All fixtures are organized in the fixtures/ directory for better maintainability.

Docs: https://stackoverflow.com/questions/34466027/in-pytest-what-is-the-use-of-conftest-py-files
"""

import sys
from pathlib import Path

THIS_DIR = Path(__file__).parent
TESTS_DIR_PARENT = (THIS_DIR / "..").resolve()

# add the parent directory of tests/ to PYTHONPATH
# so that we can use "from tests.<module> import ..." in our tests and fixtures
sys.path.insert(0, str(TESTS_DIR_PARENT))

# Register all fixture modules
pytest_plugins = [
    # Core application fixtures
    "tests.fixtures.app_fixtures",
    # In-memory stores and queue for the reconciliation engine
    "tests.fixtures.store_fixtures",
    # asyncpg mocks
    "tests.fixtures.db_fixtures",
    # Azure Storage Queue mocks
    "tests.fixtures.azure_fixtures",
    # Logging capture
    "tests.fixtures.logging_fixtures",
]
