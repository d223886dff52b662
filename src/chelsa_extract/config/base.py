"""Base configuration class for the CHELSA extraction pipeline.

Every configuration model inherits from ``BaseConfig`` so that settings can be
validated, dumped and reloaded from YAML or JSON files in the same way.
"""

import json
from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, ConfigDict

T = TypeVar("T", bound="BaseConfig")


class BaseConfig(BaseModel):
    """Base configuration class with common functionality.

    Provides:
    - Pydantic v2 configuration
    - YAML/JSON serialization
    - File loading utilities

    Example:
        >>> class MyConfig(BaseConfig):
        ...     name: str
        ...     value: int = 42
        >>> config = MyConfig(name="test")
        >>> config.to_yaml_file("config.yaml")
        >>> loaded = MyConfig.from_yaml_file("config.yaml")
    """

    model_config = ConfigDict(
        # Allow arbitrary types (for Path, etc.)
        arbitrary_types_allowed=True,
        validate_assignment=True,
        use_enum_values=True,
        # Unknown keys in a config file are a typo, not an extension point
        extra="forbid",
        populate_by_name=True,
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a plain dictionary."""
        return self.model_dump(mode="json")

    def to_yaml(self) -> str:
        """Convert configuration to a YAML string."""
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    def to_yaml_file(self, path: Path | str) -> None:
        """Save configuration to a YAML file, creating parent directories."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.to_yaml())

    def to_json_file(self, path: Path | str) -> None:
        """Save configuration to a JSON file, creating parent directories."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.model_dump_json(indent=2))

    def to_file(self, path: Path | str) -> None:
        """Save configuration to a ``.json`` file or a YAML file."""
        path = Path(path)
        if path.suffix.lower() == ".json":
            self.to_json_file(path)
        else:
            self.to_yaml_file(path)

    @classmethod
    def from_dict(cls: type[T], data: dict[str, Any]) -> T:
        """Create a validated configuration from a dictionary."""
        return cls.model_validate(data)

    @classmethod
    def from_yaml(cls: type[T], yaml_str: str) -> T:
        """Create a validated configuration from a YAML string."""
        data = yaml.safe_load(yaml_str) or {}
        return cls.from_dict(data)

    @classmethod
    def from_yaml_file(cls: type[T], path: Path | str) -> T:
        """Load configuration from a YAML file.

        Raises:
            FileNotFoundError: If file doesn't exist
            ValidationError: If configuration is invalid
        """
        path = Path(path)
        with open(path, encoding="utf-8") as f:
            return cls.from_yaml(f.read())

    @classmethod
    def from_json_file(cls: type[T], path: Path | str) -> T:
        """Load configuration from a JSON file.

        Raises:
            FileNotFoundError: If file doesn't exist
            ValidationError: If configuration is invalid
        """
        path = Path(path)
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        return cls.from_dict(data)

    @classmethod
    def from_file(cls: type[T], path: Path | str) -> T:
        """Load configuration from a ``.json`` file or a YAML file."""
        path = Path(path)
        if path.suffix.lower() == ".json":
            return cls.from_json_file(path)
        return cls.from_yaml_file(path)
