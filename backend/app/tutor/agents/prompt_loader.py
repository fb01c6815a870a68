"""Load system prompts from TOML files."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import tomli as toml


class PromptLoader:
    """Helper to resolve and load the prompt table for a given prompt name."""

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        """Initialize loader using a base directory for prompts."""
        default = Path(__file__).resolve().parent.parent / "prompts"
        self.base: Path = (base_dir or default).resolve()
        self._cache: Dict[str, Dict[str, Any]] = {}

    def _path_for(self, name: str) -> Path:
        """Return the TOML file path for the given prompt name."""
        return self.base / f"{name}_prompt.toml"

    def _load(self, name: str) -> Dict[str, Any]:
        """Read and parse the TOML prompt file, once per name."""
        if name in self._cache:
            return self._cache[name]
        path = self._path_for(name)
        if not path.exists():
            raise FileNotFoundError(f"Prompt file not found: {path} (cwd={Path.cwd()})")
        with path.open("rb") as f:
            data: Dict[str, Any] = toml.load(f)
        self._cache[name] = data
        return data

    def get(self, name: str, key: str = "system") -> str:
        """Return one string entry of the prompt file."""
        value = self._load(name).get(key) or ""
        return str(value).strip()

    def get_system_prompt(self, name: str) -> str:
        """Return the system prompt string loaded from TOML."""
        return self.get(name, "system")


prompt_loader = PromptLoader()
