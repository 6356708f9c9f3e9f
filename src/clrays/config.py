"""
Run configuration, read from a TOML file.

    [base]
    title = "clrays"
    width = 640
    height = 480
    output = "render.png"

    [render]
    aa_samples = 2
    frames = 1
    scene = "two_spheres"
    mode = "aa"          # or "real": one ray per pixel, no Clear/Image pass
"""

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Union

from clrays.errors import ConfigError

DEFAULT_SIZE = 1024

_SECTIONS = {
    'base': ('title', 'width', 'height', 'output'),
    'render': ('aa_samples', 'frames', 'scene', 'mode'),
}

# Tracing modes understood by TraceProcessor
MODES = ('aa', 'real')


@dataclass
class Config:
    title: str = 'clrays'
    width: int = DEFAULT_SIZE
    height: int = DEFAULT_SIZE
    output: str = 'render.png'
    aa_samples: int = 1
    frames: int = 1
    scene: str = 'two_spheres'
    mode: str = 'aa'

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'Config':
        """
        Build a config from parsed TOML tables.

        Zero or missing width/height fall back to DEFAULT_SIZE; aa_samples and
        frames are clamped to at least 1.
        """
        values = {}
        for section, table in data.items():
            if section not in _SECTIONS:
                raise ConfigError(f"Unknown config section [{section}]. Available: {', '.join(_SECTIONS)}")
            if not isinstance(table, Mapping):
                raise ConfigError(f"Config section [{section}] must be a table, got {table!r}")
            for key, value in table.items():
                if key not in _SECTIONS[section]:
                    raise ConfigError(f"Unknown key '{key}' in [{section}]")
                values[key] = value

        try:
            width = int(values.get('width', 0)) or DEFAULT_SIZE
            height = int(values.get('height', 0)) or DEFAULT_SIZE
            aa_samples = max(1, int(values.get('aa_samples', 1)))
            frames = max(1, int(values.get('frames', 1)))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid numeric config value: {e}") from e

        if width < 0 or height < 0:
            raise ConfigError(f"Frame size must be positive, got {width}x{height}")

        mode = str(values.get('mode', cls.mode))
        if mode not in MODES:
            raise ConfigError(f"Unknown mode '{mode}'. Available: {', '.join(MODES)}")

        return cls(
            title=str(values.get('title', cls.title)),
            width=width,
            height=height,
            output=str(values.get('output', cls.output)),
            aa_samples=aa_samples,
            frames=frames,
            scene=str(values.get('scene', cls.scene)),
            mode=mode,
        )

    @classmethod
    def read(cls, path: Union[str, Path]) -> 'Config':
        """Load a TOML config file."""
        try:
            with open(path, 'rb') as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Could not parse {path}: {e}") from e
        return cls.from_mapping(data)
