from shared.helper.HelperConfig import HelperConfig
from shared.clients.docstore.DocStoreClientInterface import DocStoreClientInterface


class DocStoreClientManager:
    """
    Manager class to create the document store client selected by configuration.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """
        Reads the document store engine from ENV configuration.

        Returns:
            str: The engine name, capitalized (e.g. "Firestore").

        Raises:
            ValueError: If no engine is configured.
        """
        engine = self.helper_config.get_string_val("DOCSTORE_ENGINE")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> DocStoreClientInterface:
        """
        Instantiates the client for the configured engine.

        Returns:
            DocStoreClientInterface: The document store client. Not booted yet.

        Raises:
            ValueError: If the engine is not supported.
        """
        engine = self._get_engine_from_env()
        className = f"DocStoreClient{engine}"
        # try to import the class from shared.clients.docstore.{engine}
        try:
            module = __import__(
                f"shared.clients.docstore.{engine.lower()}.{className}",
                fromlist=[className],
            )
            client_class = getattr(module, className)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported document store engine specified: '{engine}'. Error: {e}")
        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated document store client for engine: %s", engine)
        return client

    def get_client(self) -> DocStoreClientInterface:
        """
        Returns the instantiated document store client.

        Returns:
            DocStoreClientInterface: The client instance.
        """
        return self.client
