"""Server credential store for dockerstep.

The settings store holds named server credentials, each with an optional
username, password and a free-form configuration block. Docker steps look a
credential up by id to authenticate against a registry.

Settings are read from TOML:

    [[servers]]
    id = "docker-hub"
    username = "builder"
    password = "s3cret"

    [servers.configuration]
    email = "builder@example.com"

Each ``configuration`` table becomes a ConfigNode tree, so arbitrary nesting
is preserved and children are looked up by name.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import tomli
from pydantic import BaseModel, Field, ValidationError

from dockerstep.exceptions import SettingsError
from dockerstep.logging import get_logger

logger = get_logger(__name__)


class ConfigNode(BaseModel):
    """A named node of a structured configuration block.

    Attributes:
        name: Element name
        value: Text value for leaf nodes
        children: Child nodes in declaration order
    """

    name: str
    value: str | None = None
    children: list[ConfigNode] = Field(default_factory=list)

    def get_child(self, name: str) -> ConfigNode | None:
        """Return the first child called ``name``, or None."""
        for child in self.children:
            if child.name == name:
                return child
        return None

    def add_child(self, child: ConfigNode) -> ConfigNode:
        self.children.append(child)
        return self

    @classmethod
    def from_mapping(cls, name: str, data: Mapping[str, Any]) -> ConfigNode:
        """Build a node tree from a parsed TOML table.

        Tables become child nodes, arrays become repeated children with the
        same name and scalars become leaf values.
        """
        node = cls(name=name)
        for key, value in data.items():
            items = value if isinstance(value, list) else [value]
            for item in items:
                if isinstance(item, Mapping):
                    node.add_child(cls.from_mapping(key, item))
                else:
                    node.add_child(cls(name=key, value=_scalar_text(item)))
        return node


def _scalar_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class Server(BaseModel):
    """A named credential entry in the settings store.

    Attributes:
        id: Identifier steps refer to via ``server_id``
        username: Registry username
        password: Registry password or access token
        configuration: Structured configuration block (holds ``email``)
    """

    id: str
    username: str | None = None
    password: str | None = Field(default=None, repr=False)
    configuration: ConfigNode | None = None


class Settings(BaseModel):
    """Collection of server credentials keyed by id."""

    servers: list[Server] = Field(default_factory=list)

    def get_server(self, server_id: str) -> Server | None:
        """Return the server credential with the given id, or None."""
        for server in self.servers:
            if server.id == server_id:
                return server
        return None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Settings:
        """Build settings from a parsed TOML document.

        Raises:
            SettingsError: If a server entry is malformed
        """
        servers: list[Server] = []
        for entry in data.get("servers", []):
            if not isinstance(entry, Mapping):
                raise SettingsError(f"Server entry must be a table, got {type(entry).__name__}")
            fields = dict(entry)
            configuration = fields.pop("configuration", None)
            if configuration is not None and not isinstance(configuration, Mapping):
                raise SettingsError(
                    f"Configuration of server {fields.get('id')!r} must be a table"
                )
            try:
                server = Server(**fields)
            except ValidationError as e:
                raise SettingsError(f"Invalid server entry: {e}") from e
            if configuration is not None:
                server.configuration = ConfigNode.from_mapping("configuration", configuration)
            servers.append(server)
        return cls(servers=servers)


def load_settings(settings_path: Path | None = None) -> Settings:
    """Load the server credential store.

    Search order (first found is used):
    1. settings_path if explicitly provided
    2. ./dockerstep-settings.toml (current directory)
    3. ~/.config/dockerstep/settings.toml

    An empty store is returned when no file is found.

    Raises:
        FileNotFoundError: If settings_path is given but doesn't exist.
        SettingsError: If the file is not valid TOML or has malformed servers.
    """
    if settings_path is not None:
        if not settings_path.exists():
            raise FileNotFoundError(f"Settings file not found: {settings_path}")
        selected_path: Path | None = settings_path
    else:
        search_paths = [
            Path.cwd() / "dockerstep-settings.toml",
            Path.home() / ".config" / "dockerstep" / "settings.toml",
        ]
        selected_path = next((p for p in search_paths if p.exists()), None)

    if selected_path is None:
        logger.debug("settings_file_not_found")
        return Settings()

    try:
        with open(selected_path, "rb") as f:
            data = tomli.load(f)
    except tomli.TOMLDecodeError as e:
        raise SettingsError(f"Invalid settings file {selected_path}: {e}") from e

    settings = Settings.from_mapping(data)
    logger.debug(
        "settings_loaded",
        path=str(selected_path),
        servers=[server.id for server in settings.servers],
    )
    return settings
