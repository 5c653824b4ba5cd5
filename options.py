"""
DocxCleaner Options Module

Immutable run configuration. Built once from the YAML options file and/or
the command line, then passed explicitly to the pipeline and every pass.
"""

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Optional

import yaml

from errors import InvalidConfigurationError
from image_codec import DEFAULT_QUALITY

# camelCase spellings accepted in options files
KEY_ALIASES = {
    "convertImages": "convert_images",
    "compressQuality": "compress_quality",
    "compressimages": "compress_quality",
    "removeCustomXml": "remove_custom_xml",
    "removecustom": "remove_custom_xml",
    "removeCustomProperties": "remove_custom_properties",
    "settingsFile": "settings_file",
    "styles": "styles_file",
    "stylesFile": "styles_file",
    "language": "lang",
}

BOOL_OPTIONS = ("privacy", "convert_images", "remove_custom_xml", "remove_custom_properties")
PATH_OPTIONS = ("file", "settings_file", "styles_file")
TEXT_OPTIONS = ("lang", "title", "company", "creator")


@dataclass(frozen=True)
class CleanerOptions:
    """
    What to do to one package.

    Text options use None for "not given"; an empty string means "set the
    property to empty".
    """
    file: Optional[Path] = None
    lang: Optional[str] = None
    privacy: bool = False
    settings_file: Optional[Path] = None
    convert_images: bool = False
    compress_quality: int = DEFAULT_QUALITY
    remove_custom_xml: bool = False
    remove_custom_properties: bool = False
    styles_file: Optional[Path] = None
    title: Optional[str] = None
    company: Optional[str] = None
    creator: Optional[str] = None
    warnings: tuple = field(default=(), compare=False)

    @classmethod
    def from_mapping(cls, mapping: dict) -> "CleanerOptions":
        """
        Build options from a plain dict (YAML file, argparse namespace...).

        Unknown keys are ignored. An unusable compress_quality is replaced
        by the default and reported in .warnings.
        """
        known = {f.name for f in fields(cls)} - {"warnings"}
        values = {}
        for key, value in (mapping or {}).items():
            key = KEY_ALIASES.get(key, key)
            if key in known and value is not None:
                values[key] = value

        warnings = []

        for key in BOOL_OPTIONS:
            if key in values:
                values[key] = _to_bool(values[key])

        for key in PATH_OPTIONS:
            if key in values:
                values[key] = Path(values[key])

        for key in TEXT_OPTIONS:
            if key in values:
                values[key] = str(values[key])

        if "compress_quality" in values:
            try:
                values["compress_quality"] = parse_quality(values["compress_quality"])
            except InvalidConfigurationError as e:
                warnings.append(str(e))
                values["compress_quality"] = DEFAULT_QUALITY

        return cls(**values, warnings=tuple(warnings))

    def merged(self, overrides: dict) -> "CleanerOptions":
        """Options with non-None overrides applied on top (CLI over file)."""
        combined = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "warnings"}
        combined.update({k: v for k, v in overrides.items() if v is not None})
        result = CleanerOptions.from_mapping(combined)
        return replace(result, warnings=self.warnings + result.warnings)


def parse_quality(value) -> int:
    if isinstance(value, bool):
        raise InvalidConfigurationError("compress_quality", value, DEFAULT_QUALITY)
    try:
        quality = int(str(value).strip())
    except ValueError:
        raise InvalidConfigurationError("compress_quality", value, DEFAULT_QUALITY) from None
    if not 1 <= quality <= 100:
        raise InvalidConfigurationError("compress_quality", value, DEFAULT_QUALITY)
    return quality


def _to_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def load_config(config_path: Path) -> dict:
    """Load an options file. An empty file is an empty mapping."""
    config_path = Path(config_path)
    if not config_path.exists():
        raise InvalidConfigurationError("config", str(config_path))

    with open(config_path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise InvalidConfigurationError("config", str(config_path)) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidConfigurationError("config", str(config_path))
    return data
