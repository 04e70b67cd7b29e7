from __future__ import annotations

import uvicorn

from servicepulse.app import create_app
from servicepulse.config import ServicePulseConfig, load_config
from servicepulse.logging_config import configure_logging


def serve(config: ServicePulseConfig) -> None:
    configure_logging(config.log_level, config.log_format)
    app = create_app(config)
    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())


def main() -> None:
    serve(load_config())


if __name__ == "__main__":
    main()
