"""YAML loading and dumping through ruamel.yaml.

ruamel.yaml's default loader is safe (no arbitrary object construction)
and keeps comments and key order when a file is written back.
"""

from __future__ import annotations

from io import StringIO
from pathlib import Path
from typing import Union, cast

from ruamel.yaml import YAML

# Recursive type for nested YAML structures
ConfigValue = Union[str, int, float, bool, None, "ConfigDict", list["ConfigValue"]]
ConfigDict = dict[str, ConfigValue]


def _create_yaml_loader() -> YAML:
    """Create the shared round-trip YAML instance."""
    yaml_obj = YAML()
    yaml_obj.preserve_quotes = True
    yaml_obj.default_flow_style = False
    return yaml_obj


yaml = _create_yaml_loader()


def load_yaml_file(file_path: Path) -> ConfigDict:
    """Load a YAML mapping from disk.

    An empty file loads as an empty dict.

    Raises:
        FileNotFoundError: If file does not exist.
        TypeError: If the document root is not a mapping.
    """
    if not file_path.exists():
        raise FileNotFoundError(f"YAML file not found: {file_path}")

    with file_path.open(encoding="utf-8") as f:
        raw: ConfigValue = yaml.load(f)

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise TypeError(f"YAML root must be a mapping: {file_path}")
    return cast(ConfigDict, raw)


def dump_yaml(data: object) -> str:
    """Render data as a block-style YAML string."""
    stream = StringIO()
    yaml.dump(data, stream)
    return stream.getvalue()
