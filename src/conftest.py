from __future__ import annotations

import pytest

from fakes import FakeExecutor, FakeInstaller
from tav.ui.console import Console


@pytest.fixture
def console() -> Console:
    return Console()


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def installer() -> FakeInstaller:
    return FakeInstaller()
