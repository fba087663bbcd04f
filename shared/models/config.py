from typing import Literal

from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    A single environment setting a client declares as part of its configuration.

    Attributes:
        env_key (str): The raw key of the setting. Clients prefix it with "<CLIENT_TYPE>_<ENGINE>_".
        val_type (str): How the raw value is parsed: "string", "number", "bool" or "list".
        default (str | int | float | bool | list | None): Value used when the variable is unset.
            None marks the setting as required.
    """

    env_key: str
    val_type: Literal["string", "number", "bool", "list"] = "string"
    default: str | int | float | bool | list | None = None
