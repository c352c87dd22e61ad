# tests/conftest.py
from __future__ import annotations

from typing import Optional

import pytest

from app.services.profile import ProfileBuilder
from app.services.repository import BiometricSample
from fakes import FakeRepository, FrozenClock, make_record


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def repo() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def builder(repo: FakeRepository, clock: FrozenClock) -> ProfileBuilder:
    return ProfileBuilder(repo, now=clock)


@pytest.fixture
def make_profile(repo: FakeRepository, builder: ProfileBuilder):
    def _make(samples: Optional[list[BiometricSample]] = None, **overrides):
        record = repo.add(make_record(**overrides), samples)
        return builder.build(record.user_id, force_refresh=True)

    return _make
