"""Contract between the configuration manager and configuration models.

A model is any object that can be populated from a key-value store and
serialized back into one. Models may additionally offer a ``validate``
hook, which the manager calls after every load and before every save.
"""

from typing import Dict, Mapping, Protocol, runtime_checkable


@runtime_checkable
class ConfigModel(Protocol):
    """Typed configuration fields backed by string properties."""

    def load(self, properties: Mapping[str, str]) -> "ConfigModel":
        """Populate fields from ``properties``, applying defaults for missing keys.

        Raises if a present value cannot be converted to its field type.
        """
        ...

    def to_properties(self) -> Dict[str, str]:
        """Serialize every field to a string property."""
        ...


@runtime_checkable
class SupportsValidate(Protocol):
    """Optional capability: normalize field values after load and before save."""

    def validate(self) -> None:
        ...
