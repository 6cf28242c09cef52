"""Test doubles and data factories."""

from tests.factories.connection import FakeConnection, FakeTransaction

__all__ = [
    "FakeConnection",
    "FakeTransaction",
]
