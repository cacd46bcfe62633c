"""Configuration file support for specmock.

Supports loading configuration from specmock.yml files. Command-line
options override values from the file.
"""

from dataclasses import dataclass, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAMES = ("specmock.yml", "specmock.yaml")


class MockMode(Enum):
    """Server operation mode."""

    # Fixed responses drawn from OpenAPI examples
    STATELESS = "stateless"
    # In-memory resource stores back the stateful endpoints
    STATEFUL = "stateful"

    @classmethod
    def parse(cls, value: "str | MockMode") -> "MockMode":
        """Parse a mode name case-insensitively.

        Raises:
            ValueError: If the name is not a known mode
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(
                f"Invalid mode: {value}. Use 'stateless' or 'stateful'"
            ) from None


@dataclass
class MockServerConfig:
    """specmock server configuration."""

    mode: MockMode = MockMode.STATEFUL

    # Root of the OpenAPI documents tree
    openapi_dir: Path = Path("openapi")

    # Accepted for compatibility; state is never persisted
    state_file: Path | None = None

    host: str = "0.0.0.0"
    port: int = 3000
    verbose: bool = False

    # Advance translation jobs one step on every manifest read
    simulate_translations: bool = False

    @property
    def stateful(self) -> bool:
        return self.mode is MockMode.STATEFUL

    @classmethod
    def load(cls, path: Path | None = None) -> "MockServerConfig":
        """Load configuration from a YAML file.

        Args:
            path: Path to config file. If None, searches for specmock.yml
                  in current directory and parent directories.

        Returns:
            Loaded configuration, or defaults if no config file found.
        """
        if path is None:
            path = cls._find_config_file()

        if path is None or not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        config = cls._from_dict(data)
        # Relative directories in the file are relative to the file itself
        if not config.openapi_dir.is_absolute():
            config.openapi_dir = path.parent / config.openapi_dir
        return config

    @classmethod
    def _find_config_file(cls) -> Path | None:
        """Search for specmock.yml in current and parent directories."""
        current = Path.cwd()

        for _ in range(10):  # Max 10 levels up
            for name in CONFIG_FILENAMES:
                config_path = current / name
                if config_path.exists():
                    return config_path

            parent = current.parent
            if parent == current:
                break
            current = parent

        return None

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "MockServerConfig":
        """Create config from dictionary."""
        state_file = data.get("state_file")
        return cls(
            mode=MockMode.parse(data.get("mode", MockMode.STATEFUL.value)),
            openapi_dir=Path(data.get("openapi_dir", "openapi")),
            state_file=Path(state_file) if state_file else None,
            host=data.get("host", "0.0.0.0"),
            port=int(data.get("port", 3000)),
            verbose=data.get("verbose", False),
            simulate_translations=data.get("simulate_translations", False),
        )

    def with_overrides(self, **overrides: Any) -> "MockServerConfig":
        """Return a copy with every non-None override applied."""
        known = {f.name for f in fields(self)}
        values = {k: v for k, v in overrides.items() if k in known and v is not None}
        if "mode" in values:
            values["mode"] = MockMode.parse(values["mode"])
        for key in ("openapi_dir", "state_file"):
            if key in values:
                values[key] = Path(values[key])
        return replace(self, **values)

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        result: dict[str, Any] = {
            "mode": self.mode.value,
            "openapi_dir": str(self.openapi_dir),
            "host": self.host,
            "port": self.port,
        }
        # Only include optional settings when set
        if self.state_file is not None:
            result["state_file"] = str(self.state_file)
        if self.verbose:
            result["verbose"] = True
        if self.simulate_translations:
            result["simulate_translations"] = True
        return result
