"""API server entry point.

Exposes the model classes listed in APP_MODELS, e.g.::

    APP_MODELS=[myapp.entities:Customer,myapp.entities:Invoice]

Usage:
    python -m server.api_server
"""

import logging
import os

from server.api.api_app import create_app
from shared.helper.HelperConfig import HelperConfig
from shared.models.record import Model


def load_models(helper_config: HelperConfig) -> list[type[Model]]:
    """Import the model classes configured in APP_MODELS.

    Args:
        helper_config (HelperConfig): The configuration helper.

    Returns:
        list[type[Model]]: The model classes, in configured order.

    Raises:
        ValueError: If an entry is malformed, cannot be imported or is not a Model subclass.
    """
    models = []
    for entry in helper_config.get_list_val("APP_MODELS"):
        module_name, _, class_name = entry.partition(":")
        if not module_name or not class_name:
            raise ValueError(f"Invalid APP_MODELS entry '{entry}', expected 'package.module:ClassName'.")
        try:
            module = __import__(module_name, fromlist=[class_name])
            model = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Cannot import model '{entry}'. Error: {e}")
        if not isinstance(model, type) or not issubclass(model, Model):
            raise ValueError(f"'{entry}' is not a Model subclass.")
        models.append(model)
    return models


# Server Start
if __name__ == "__main__":
    import uvicorn

    config = HelperConfig(logger=logging.getLogger("docstore_bridge"))
    app = create_app(load_models(config))
    port = int(config.get_number_val("APP_PORT", default=8000))
    logging.getLogger("docstore_bridge").info("Starting API server from root dir %s on port %d...", os.getenv("ROOT_DIR", os.getcwd()), port)
    uvicorn.run(app, host=config.get_string_val("APP_HOST", default="0.0.0.0"), port=port)
