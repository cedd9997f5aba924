"""Load ResyncConfig from resync.yaml if present.

Merges file config with keyword overrides. Overrides take precedence.
"""

from __future__ import annotations

from pathlib import Path

from resync.config import ResyncConfig

_KNOWN_KEYS = frozenset(ResyncConfig.__dataclass_fields__) - {"root"}
_PATH_KEYS = ("marker_file", "vcs_index")


def load_config(root: Path | str, **overrides: object) -> ResyncConfig:
    """Load ResyncConfig from root, optionally merging resync.yaml.

    Looks for resync.yaml, resync.yml, or resync.toml in root. If found,
    loads and merges with overrides. Overrides take precedence.
    Unknown keys are ignored; invalid timing values raise ConfigError.
    """
    root = Path(root)
    file_config = _read_resync_config(root)
    merged = {**file_config, **{k: v for k, v in overrides.items() if v is not None}}
    for key in _PATH_KEYS:
        if key in merged and not isinstance(merged[key], Path):
            merged[key] = Path(str(merged[key]))
    return ResyncConfig(root=root, **merged)


def _read_resync_config(root: Path) -> dict[str, object]:
    """Read resync config from yaml/toml if present. Returns empty dict otherwise."""
    for name in ("resync.yaml", "resync.yml"):
        path = root / name
        if path.is_file():
            return _parse_yaml(path)
    toml_path = root / "resync.toml"
    if toml_path.is_file():
        return _parse_toml(toml_path)
    return {}


def _parse_yaml(path: Path) -> dict[str, object]:
    """Parse YAML config. Returns empty dict on a malformed file."""
    import yaml

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError):
        return {}
    if not isinstance(data, dict):
        return {}
    return _flatten_resync_section(data)


def _parse_toml(path: Path) -> dict[str, object]:
    """Parse TOML config. Returns empty dict on a malformed file."""
    import tomllib

    try:
        data = tomllib.loads(path.read_text())
    except (OSError, tomllib.TOMLDecodeError):
        return {}
    return _flatten_resync_section(data)


def _flatten_resync_section(data: dict[str, object]) -> dict[str, object]:
    """Extract resync.* keys and known top-level keys into one mapping."""
    result: dict[str, object] = {}
    for k, v in data.items():
        if k != "resync" and k in _KNOWN_KEYS:
            result[k] = v
    section = data.get("resync")
    if isinstance(section, dict):
        for k, v in section.items():
            if k in _KNOWN_KEYS:
                result[k] = v
    return result
