"""
Layout configuration management.

Loads the entry-surface layout from a YAML file.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from .pif_layout import DEFAULT_LAYOUT, PifLayout


class LayoutConfigLoader:
    """
    Loads a PifLayout from a YAML configuration file.

    Expected YAML format:
    ```yaml
    layout:
      first_data_row: 4
      key_field: entity_id
      fields:
        entity_id: {column: "G", max_length: 16}
        seg: {column: "H", kind: integer}
        change_type: {column: "F", max_length: 12, required: true}
      costs:
        target_requested: "T"
        target_current: "Z"
        ...
    ```
    """

    def __init__(self, config_path: str | Path):
        """
        Initialize the layout config loader.

        Args:
            config_path: Path to the YAML configuration file
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"Layout configuration file not found: {config_path}")

    def load_layout(self) -> PifLayout:
        """
        Load and parse the layout.

        Returns:
            PifLayout instance

        Raises:
            ValueError: If YAML is invalid or the layout is inconsistent
        """
        with open(self.config_path) as f:
            config = yaml.safe_load(f)

        if not config or "layout" not in config:
            raise ValueError("Configuration file must contain 'layout' section")

        section = config["layout"]
        if "fields" not in section or "costs" not in section:
            raise ValueError("Layout section must contain 'fields' and 'costs'")

        fields = [
            self._parse_field(name, field_def)
            for name, field_def in section["fields"].items()
        ]
        payload: dict[str, Any] = {
            "field_specs": fields,
            "costs": {"starts": section["costs"]},
        }
        for key in ("key_field", "site_field", "first_data_row"):
            if key in section:
                payload[key] = section[key]

        try:
            return PifLayout(**payload)
        except PydanticValidationError as e:
            raise ValueError(f"Invalid layout in {self.config_path}: {e}") from e

    def _parse_field(self, name: str, field_def: Any) -> dict[str, Any]:
        """
        Parse one field definition; a bare value is treated as the column.

        Raises:
            ValueError: If the definition has no column
        """
        if not isinstance(field_def, dict):
            field_def = {"column": field_def}
        if "column" not in field_def:
            raise ValueError(f"Layout field '{name}' is missing 'column'")
        return {"name": name, **field_def}


def load_layout(config_path: str | Path | None = None) -> PifLayout:
    """Layout from ``config_path`` if given, else the built-in default."""
    if config_path is None:
        return DEFAULT_LAYOUT
    return LayoutConfigLoader(config_path).load_layout()
