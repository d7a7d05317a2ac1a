import argparse
import sys
import os

# Add project root to sys.path to allow imports from 'src'
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

def main():
    """
    Main entry point for the traffic state service.
    Extra arguments are OmegaConf dotlist overrides, e.g. scheduler.tick_interval_seconds=5
    """
    parser = argparse.ArgumentParser(description="Traffic state service")
    parser.add_argument('--profile', default='default', help="Config profile under conf/traffic/")
    parser.add_argument('--config-dir', default='conf', help="Configuration directory")

    args, unknown = parser.parse_known_args()

    import uvicorn
    from pathlib import Path
    from src.common.config import ConfigManager
    from src.common.logging import configure_logging
    from src.traffic.application.builder import TrafficApplicationBuilder
    from src.traffic.presentation.api import create_app

    cfg = ConfigManager(Path(args.config_dir)).load_traffic_config(args.profile, overrides=unknown)
    logger = configure_logging(cfg.logging.level)
    logger.info(f"Starting traffic service (profile={args.profile})")

    builder = TrafficApplicationBuilder(cfg)
    service = (
        builder
        .build_registry()
        .build_snapshot_builder()
        .build_persistence()
        .build_live_provider()
        .build_service()
    )
    app = create_app(service)

    builder.start()
    try:
        uvicorn.run(app, host=cfg.server.host, port=cfg.server.port)
    except KeyboardInterrupt:
        logger.info("Stopping service...")
    finally:
        builder.shutdown()

if __name__ == "__main__":
    main()
