"""
Project configuration: directory layout, language, output path, defines

A project is a directory holding exactly one entry file main.<ext> plus the
files it imports. An optional ticc.yaml next to it may provide defaults:

    language: moon
    output: cart
    defines:
      DEBUG: false
      VERSION: 3

Every function here raises ConfigurationError; all of them run before a
compile session is started.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..config import appsettings
from .errors import ConfigurationError
from .languages import languages


def directory_check(directory: Path) -> Path:
    """Resolved project directory; it must exist and be a directory"""
    if not directory.exists():
        raise ConfigurationError(f"project directory not found: {directory}")
    if not directory.is_dir():
        raise ConfigurationError(f"project path must be a directory: {directory}")
    return directory.resolve()


def mainFile_find(directory: Path, extension: Optional[str] = None) -> Path:
    """
    Locate the project's entry file

    Args:
        directory: Project directory
        extension: Only accept main.<extension>; any extension when None

    Returns:
        Path of the first matching main.* file in alphabetical order
    """
    prefix = f"{appsettings.main_basename}."
    for candidate in sorted(directory.iterdir()):
        if not candidate.is_file() or not candidate.name.startswith(prefix):
            continue
        if extension is None or candidate.suffix == f".{extension}":
            return candidate

    wanted = f"{prefix}{extension}" if extension else f"{prefix}*"
    raise ConfigurationError(f"no {wanted} file found in {directory}")


def language_detect(requested: str, directory: Path) -> str:
    """
    Canonical language name for the project

    "auto" takes the extension of the main file; an explicit name must be a
    supported language.
    """
    if requested.lower() == "auto":
        requested = mainFile_find(directory).suffix.lstrip(".")

    name = languages.canonical_get(requested)
    if name is None:
        supported = " | ".join(languages.names_list())
        raise ConfigurationError(
            f"invalid language detected ({requested}) the supported languages are: {supported}"
        )
    return name


def outputFile_derive(basename: str, language: str, outputdir: Path) -> Path:
    """
    Output path for a requested basename

    A basename without extension gets the language extension appended; an
    explicit extension must match the language.
    """
    if not basename:
        raise ConfigurationError("output file name must not be empty")

    path = Path(basename)
    if not path.suffix:
        path = path.with_name(appsettings.outputName_make(path.name, language))
    elif path.suffix != f".{language}":
        raise ConfigurationError(
            "The output file must have the same extension as the detected language. "
            "Alternatively, you may omit the extension and it will automatically be detected"
        )
    return outputdir / path


def defines_parse(raw: str) -> Dict[str, str]:
    """
    Parse a "key=value;key;key=value" define seed string

    Example:
        >>> defines_parse("DEBUG;LEVEL=3")
        {'DEBUG': 'true', 'LEVEL': '3'}
    """
    defines: Dict[str, str] = {}
    for segment in raw.split(";"):
        if not segment.strip():
            continue
        key, sep, value = segment.partition("=")
        key = key.strip()
        if not key:
            raise ConfigurationError(f"define without a name: {segment!r}")
        defines[key] = value.strip() if sep else appsettings.flag_define_value
    return defines


def projectConfig_load(directory: Path) -> Dict[str, Any]:
    """
    Load ticc.yaml from the project directory

    Returns:
        dict with any of the keys language, output, defines; empty if the
        file does not exist
    """
    config_path = directory / appsettings.project_config_filename
    if not config_path.exists():
        return {}

    try:
        with open(config_path, 'r', encoding=appsettings.source_encoding) as f:
            config: Any = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse {config_path.name}: {e}")
    except OSError as e:
        raise ConfigurationError(f"Failed to load {config_path.name}: {e}")

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigurationError(f"{config_path.name} must contain a mapping")

    unknown = set(config) - {"language", "output", "defines"}
    if unknown:
        raise ConfigurationError(f"{config_path.name}: unknown keys {sorted(unknown)}")

    for key in ("language", "output"):
        if key in config and not isinstance(config[key], str):
            raise ConfigurationError(f"{config_path.name}: '{key}' must be a string")

    defines = config.get("defines") or {}
    if not isinstance(defines, dict):
        raise ConfigurationError(f"{config_path.name}: 'defines' must be a mapping")
    config["defines"] = {str(k): define_valueFormat(v) for k, v in defines.items()}
    return config


def define_valueFormat(value: Any) -> str:
    """YAML scalar -> define text; booleans become true/false, null the flag value"""
    if value is None:
        return appsettings.flag_define_value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        raise ConfigurationError(f"define values must be scalars, got {value!r}")
    return str(value)
