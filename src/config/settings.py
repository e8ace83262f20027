"""
Application settings and configuration

Uses pydantic-settings for type-safe configuration via environment variables.
All settings use TICC_ prefix (e.g., TICC_OUTPUT_BASENAME=cart).

Settings can also be loaded from a .env file in the working directory.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application configuration via environment variables.

    Environment variables use TICC_ prefix.

    Examples:
        TICC_DEFAULT_LANGUAGE=moon
        TICC_WATCH_INTERVAL=1.0
        TICC_ATOMIC_OUTPUT=false
    """

    model_config = SettingsConfigDict(
        env_prefix="TICC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Project layout
    default_language: str = Field(
        default="auto",
        description="Language used when none is given; 'auto' detects it from the main file",
    )

    main_basename: str = Field(
        default="main",
        description="Basename of the entry file in the project root (main.<ext>)",
    )

    project_config_filename: str = Field(
        default="ticc.yaml",
        description="Optional per-project YAML file with language, output and defines",
    )

    source_encoding: str = Field(
        default="utf-8",
        description="Encoding used to read source files and write the bundle",
    )

    # Preprocessor
    flag_define_value: str = Field(
        default="true",
        description="Value stored for a define given without a value",
    )

    # Output configuration
    output_basename: str = Field(
        default="out",
        description="Basename of the bundled file when no --output is given",
    )

    atomic_output: bool = Field(
        default=True,
        description="Write the bundle to a temporary file and rename it only on success",
    )

    # Watch mode
    watch_interval: float = Field(
        default=0.5,
        description="Seconds between two polls of the project directory",
    )

    watch_debounce: float = Field(
        default=0.25,
        description="Seconds without further changes before a rebuild starts",
    )

    def outputName_make(self, basename: str, extension: str) -> str:
        """
        Build an output filename from a basename and a language extension.

        Example:
            >>> AppSettings().outputName_make("cart", "moon")
            'cart.moon'
        """
        return f"{basename}.{extension}"


# Singleton instance - import this in your code
appsettings = AppSettings()
