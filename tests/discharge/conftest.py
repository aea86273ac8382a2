from __future__ import annotations

from datetime import datetime

import pytest

from discharge_builders import FIXED_NOW


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW
