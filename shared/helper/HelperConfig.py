"""Central configuration helper for the ontology RAG bridge."""

import logging
import os


class HelperConfig:
    """Central configuration helper. Reads all settings from environment variables.

    The bridge never parses credentials or connection strings itself; values
    are handed to the clients as opaque strings.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _read_raw(self, key: str) -> str | None:
        # empty string counts as unset
        return os.getenv(key.upper()) or None

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """Read a string environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (str | None): Fallback value if the variable is not set.

        Returns:
            str: The resolved value.

        Raises:
            ValueError: If the variable is not set and no default is provided.
        """
        val = self._read_raw(key)
        if val is None and default is None:
            raise ValueError(f"Environment variable '{key.upper()}' is not set.")
        return val.strip() if val is not None else default

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read a numeric environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (float | int | None): Fallback value if the variable is not set.

        Returns:
            float | int: The resolved numeric value.

        Raises:
            ValueError: If the variable is not set and no default is provided.
            ValueError: If the value cannot be parsed as a number.
        """
        raw = self._read_raw(key)
        if raw is None:
            if default is None:
                raise ValueError(f"Environment variable '{key.upper()}' is not set.")
            return default
        raw = raw.strip()
        try:
            return int(raw) if "." not in raw else float(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key.upper()}' is not a valid number: '{raw}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """Read a boolean environment variable ("true", "1" and "yes" are truthy)."""
        raw = self._read_raw(key)
        if raw is None:
            if default is None:
                raise ValueError(f"Environment variable '{key.upper()}' is not set.")
            return default
        return raw.strip().lower() in ("true", "1", "yes")

    def get_path_val(self, key: str, default: str | None = None) -> str:
        """Read a filesystem path, expanding "~" and resolving it to an absolute path.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (str | None): Fallback path if the variable is not set.

        Returns:
            str: The absolute path. The path is not required to exist.
        """
        raw = self.get_string_val(key, default=default)
        return os.path.abspath(os.path.expanduser(raw))

    def get_logger(self) -> logging.Logger:
        """Return the application logger."""
        return self._logger
