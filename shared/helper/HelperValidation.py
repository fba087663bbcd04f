"""Entity validation helper.

Field constraints live on the pydantic models themselves. This helper turns
pydantic validation errors into FieldError lists and translates their messages
through an optional JSON table of the shape::

    {
        "pt": {
            "string_too_short": "{field} deve ter pelo menos {min_length} caracteres",
            "name": "Nome"
        }
    }

Keys are either pydantic error types (message templates) or field names / dotted
field paths (display labels).
"""

import json
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from shared.helper.HelperConfig import HelperConfig
from shared.models.validation import FieldError

M = TypeVar("M", bound=BaseModel)


def field_errors_from(exc: ValidationError, translations: dict[str, str] | None = None, logger=None) -> list[FieldError]:
    """Convert a pydantic ValidationError into FieldErrors.

    Args:
        exc (ValidationError): The error raised by pydantic.
        translations (dict[str, str] | None): Templates and field labels for one language.
        logger: Optional logger used to report broken templates.

    Returns:
        list[FieldError]: One entry per violated constraint, in pydantic's order.
    """
    translations = translations or {}
    errors: list[FieldError] = []
    for err in exc.errors():
        path = ".".join(str(part) for part in err.get("loc", ()))
        name = str(err["loc"][-1]) if err.get("loc") else ""
        label = translations.get(path) or translations.get(name) or name
        template = translations.get(err.get("type", ""))
        message = err.get("msg", "")
        if template:
            try:
                message = template.format(field=label, **err.get("ctx", {}))
            except (KeyError, IndexError, ValueError):
                if logger is not None:
                    logger.warning("Translation template %r for error type %r cannot be rendered.", template, err.get("type"))
        errors.append(FieldError(field=path, message=message))
    return errors


class HelperValidation:
    """Builds entities from raw data and reports constraint violations as FieldErrors."""

    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()
        self._lang = helper_config.get_string_val("VALIDATION_LANG", default="en")
        path = helper_config.get_string_val("VALIDATION_TRANSLATIONS_FILE", default="")
        self._translations = self._load_translations(path)

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _load_translations(self, path: str) -> dict[str, dict[str, str]]:
        """Read the translation table from disk.

        Args:
            path (str): Path of the JSON file. Empty means no translations.

        Returns:
            dict[str, dict[str, str]]: Language code → key → template/label.

        Raises:
            ValueError: If the file is not a JSON object.
        """
        if not path:
            return {}
        with open(path, encoding="utf-8") as handle:
            table = json.load(handle)
        if not isinstance(table, dict):
            raise ValueError(f"Translation file '{path}' must contain a JSON object.")
        self.logging.info("Loaded validation translations for %d language(s) from %s", len(table), path)
        return table

    def get_translations(self) -> dict[str, str]:
        """Returns the table for the configured language (empty if none)."""
        return self._translations.get(self._lang, {})

    ##########################################
    ############### VALIDATE #################
    ##########################################

    def translate(self, exc: ValidationError) -> list[FieldError]:
        return field_errors_from(exc, self.get_translations(), self.logging)

    def validate(self, model: type[M], data: Any) -> tuple[M | None, list[FieldError]]:
        """Build an entity of the given model from raw data and run its own checks.

        Args:
            model (type[M]): The model class to build.
            data (Any): Raw, decoded request data.

        Returns:
            tuple[M | None, list[FieldError]]: The entity (None when it could not be built)
            and the list of violations (empty when valid).
        """
        try:
            entity = model.model_validate(data)
        except ValidationError as e:
            return None, self.translate(e)

        validate_fields = getattr(entity, "validate_fields", None)
        if validate_fields is None:
            return entity, []
        return entity, list(validate_fields(self.get_translations()))
