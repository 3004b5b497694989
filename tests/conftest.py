"""
Pytest configuration and fixtures for the hotconfig test suite.
"""

import pytest
import tempfile
from pathlib import Path
from typing import Dict, Mapping

from hotconfig import ConfigManager


def _parse_bool(value: str) -> bool:
    return value.lower() == 'true'


def _format_bool(value: bool) -> str:
    return 'true' if value else 'false'


class PersonConfig:
    """Sample configuration model with typed fields and per-field defaults."""

    def __init__(self):
        self.name = "John Doe"
        self.description = "A person"
        self.age = 28
        self.salary = 100000.0
        self.eats = True
        self.sleeps = False
        self.codes = True
        self.repeats = True

        self.load_count = 0
        self.validate_count = 0

    def load(self, properties: Mapping[str, str]) -> 'PersonConfig':
        age = int(properties.get("age", "28"))
        if not -128 <= age <= 127:
            raise ValueError(f"age out of range: {age}")

        self.name = properties.get("name", "John Doe")
        self.description = properties.get("description", "A person")
        self.age = age
        self.salary = float(properties.get("salary", "100000.0"))
        self.eats = _parse_bool(properties.get("eats", "true"))
        self.sleeps = _parse_bool(properties.get("sleeps", "false"))
        self.codes = _parse_bool(properties.get("codes", "true"))
        self.repeats = _parse_bool(properties.get("repeats", "true"))
        self.load_count += 1
        return self

    def validate(self) -> None:
        # Nobody sleeps while coding
        self.validate_count += 1
        if self.codes and self.sleeps:
            self.sleeps = False

    def to_properties(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "description": self.description,
            "age": str(self.age),
            "salary": repr(self.salary),
            "eats": _format_bool(self.eats),
            "sleeps": _format_bool(self.sleeps),
            "codes": _format_bool(self.codes),
            "repeats": _format_bool(self.repeats),
        }


class PlainConfig:
    """Model without the optional validate hook."""

    def __init__(self):
        self.values: Dict[str, str] = {}

    def load(self, properties: Mapping[str, str]) -> 'PlainConfig':
        self.values = dict(properties)
        return self

    def to_properties(self) -> Dict[str, str]:
        return dict(self.values)


@pytest.fixture
def temp_config_dir():
    """Create a temporary directory for test configurations."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def config_path(temp_config_dir):
    """Path of a not yet existing properties file."""
    return temp_config_dir / "cfg.properties"


@pytest.fixture
def person_config_cls():
    return PersonConfig


@pytest.fixture
def plain_config_cls():
    return PlainConfig


@pytest.fixture
def person_model():
    return PersonConfig()


@pytest.fixture
def make_manager():
    """Factory for ConfigManagers that are closed after the test."""
    managers = []

    def factory(model, path, **kwargs):
        manager = ConfigManager(model, path, **kwargs)
        managers.append(manager)
        return manager

    yield factory

    for manager in managers:
        manager.close(timeout=5)
