import os
import logging
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
import uvicorn

from diffdeletes.config.config_loader import get_config, find_config_path, ConfigurationError, DEFAULT_CONFIG_PATHS
from diffdeletes.db.sparql_inf import SparqlBackendInterface
from diffdeletes.impl.diffdeletes_app_impl import DiffDeletesAppImpl, lifespan

logger = logging.getLogger(__name__)


def create_app(config_path: Optional[str] = None,
               sparql_impl: Optional[SparqlBackendInterface] = None) -> FastAPI:
    """Application factory function."""

    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    config_path = config_path or find_config_path()
    if config_path is None:
        logger.warning("No configuration file found, using defaults. Expected locations:")
        for path in DEFAULT_CONFIG_PATHS:
            logger.warning(f"  - {path}")

    try:
        config = get_config(config_path)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        logger.error("Cannot start server without valid configuration")
        raise

    logger.info(f"Loaded configuration: {config}")

    app = FastAPI(title="Execute Diff Deletes", lifespan=lifespan)

    DiffDeletesAppImpl(app=app, config=config, sparql_impl=sparql_impl)

    return app


def run_server():

    app = create_app()
    app_config = get_config().get_app_config()

    host = os.getenv("HOST", str(app_config.get('host', '0.0.0.0')))
    port = int(os.getenv("PORT", str(app_config.get('port', 80))))

    uvicorn.run(
        app,
        host=host,
        port=port,
        reload=False
    )


if __name__ == "__main__":
    run_server()
