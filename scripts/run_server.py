import os
import sys
import hydra
import uvicorn
from omegaconf import DictConfig

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from src.common.config import ConfigManager
from src.common.logging import configure_logging
from src.traffic.application.builder import TrafficApplicationBuilder
from src.traffic.presentation.api import create_app

@hydra.main(version_base=None, config_path="../conf", config_name="config")
def main(cfg: DictConfig):
    traffic_cfg = ConfigManager().merge(cfg.traffic)
    logger = configure_logging(traffic_cfg.logging.level)
    logger.info("Configuration loaded.")

    builder = TrafficApplicationBuilder(traffic_cfg)
    service = (
        builder
        .build_registry()
        .build_snapshot_builder()
        .build_persistence()
        .build_live_provider()
        .build_service()
    )
    app = create_app(service)

    @app.on_event("startup")
    async def startup_event():
        builder.start()

    @app.on_event("shutdown")
    async def shutdown_event():
        builder.shutdown()

    server_cfg = traffic_cfg.server
    logger.info(f"Starting server at http://{server_cfg.host}:{server_cfg.port}")
    uvicorn.run(app, host=server_cfg.host, port=server_cfg.port)

if __name__ == "__main__":
    main()
