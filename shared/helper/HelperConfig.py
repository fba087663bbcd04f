"""Environment-backed configuration for the document store bridge."""

import logging
import os
from typing import Any

_TRUE_VALUES = ("true", "1", "yes", "on")


class HelperConfig:
    """Reads typed settings from environment variables and hands out the application logger.

    Keys are case-insensitive. An unset or empty variable falls back to the
    given default; a None default makes the setting required.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _read(self, key: str) -> str | None:
        raw = os.getenv(key.upper())
        if raw is None or not raw.strip():
            return None
        return raw.strip()

    def _missing(self, key: str, default: Any) -> Any:
        if default is None:
            raise ValueError(f"Environment variable '{key.upper()}' is not set.")
        return default

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """
        Raises:
            ValueError: If the variable is unset and there is no default.
        """
        raw = self._read(key)
        return raw if raw is not None else self._missing(key, default)

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read an int, or a float when the value contains a dot.

        Raises:
            ValueError: If the variable is unset without default, or not a number.
        """
        raw = self._read(key)
        if raw is None:
            return self._missing(key, default)
        try:
            return float(raw) if "." in raw else int(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key.upper()}' is not a valid number: '{raw}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """True for true/1/yes/on (any case), False for anything else."""
        raw = self._read(key)
        if raw is None:
            return self._missing(key, default)
        return raw.lower() in _TRUE_VALUES

    def get_list_val(self, key: str, default: list | None = None, separator: str = ",", element_type: type = str) -> list:
        """Read a bracketed list such as "[a,b,c]".

        Blank elements are dropped and the rest cast to element_type.

        Args:
            key (str): Environment variable name.
            default (list | None): Used when the variable is unset. None makes it required.
            separator (str): Element delimiter.
            element_type (type): Callable each element is cast with.

        Raises:
            ValueError: If required and unset, not bracketed, or an element does not cast.
        """
        raw = self._read(key)
        if raw is None:
            return self._missing(key, default)
        if not (raw.startswith("[") and raw.endswith("]")):
            raise ValueError(f"Environment variable '{key.upper()}' must look like '[a{separator}b{separator}...]', got '{raw}'.")

        elements = [item.strip() for item in raw[1:-1].split(separator) if item.strip()]
        try:
            return [element_type(item) for item in elements]
        except ValueError as e:
            raise ValueError(f"Environment variable '{key.upper()}' has an element that is not a valid {element_type.__name__}: {e}")

    def get_logger(self) -> logging.Logger:
        return self._logger
