"""Shared test fixtures for Remote Days tests."""

from __future__ import annotations

import pytest

from remote_days.config import Settings
from remote_days.models import User
from tests.fakes import FakeAbsenceClient, make_settings


@pytest.fixture
def me() -> User:
    return User(id="user-1", email="me@example.com", first_name="Ada", last_name="Lovelace")


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def client(me: User) -> FakeAbsenceClient:
    return FakeAbsenceClient(user=me)
