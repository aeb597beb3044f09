import logging

import uvicorn

from researchcrawl import config
from researchcrawl.api.server import create_app
from researchcrawl.container import Container
from researchcrawl.db.engine import init_schema

logger = logging.getLogger(__name__)


def main(container: Container = None):
    logging.basicConfig(
        level=config.log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if container is None:
        container = Container()

    init_schema(container.db_engine())
    app = create_app(container)

    host = config.get_str_env("API_HOST", "0.0.0.0")
    port = config.get_int_env("API_PORT", 8000)
    logger.info("ResearchCrawl API listening on %s:%s", host, port)
    uvicorn.run(app, host=host, port=port)


if __name__ == '__main__':
    main()
