import os
import argparse
from configparser import ConfigParser

import uvicorn

from ...utils.logging import LogConfig, get_logger


def parse_args():
    """Parse command line arguments for the API server"""
    parser = argparse.ArgumentParser(description="Tasmota Manager API Server")
    parser.add_argument("--host", default=None, help="Host to bind the server to")
    parser.add_argument("--port", type=int, default=None, help="Port to bind the server to")
    parser.add_argument("--config", help="Path to the provider YAML configuration file")
    parser.add_argument("--server-config", help="Path to an INI file with a [server] section")
    parser.add_argument("--log-level", default=None,
                        choices=["debug", "info", "warning", "error", "critical"],
                        help="Logging level")
    return parser.parse_args()


def load_server_config(config_file=None):
    """Load server configuration from file"""
    config = ConfigParser()
    config.read_dict({
        "server": {
            "host": "0.0.0.0",
            "port": "8000",
            "log_level": "info",
        }
    })
    if config_file and os.path.exists(config_file):
        config.read(config_file)
    return config


def run_server():
    """Run the API server"""
    args = parse_args()
    config = load_server_config(args.server_config)

    log_level = (args.log_level or config.get("server", "log_level")).upper()
    LogConfig.setup(app_name="tasmota_manager_api", debug=log_level == "DEBUG")
    logger = get_logger("tasmota_manager.api")

    host = args.host or config.get("server", "host")
    port = args.port or config.getint("server", "port")

    # The app factory reads the provider configuration from the environment
    if args.config:
        os.environ["TASMOTA_CONFIG"] = args.config

    logger.info(f"Starting Tasmota Manager API on {host}:{port}")

    # Keep uvicorn's loggers on the handlers configured above
    log_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "handlers": {
            "default": {
                "class": "logging.NullHandler",
            },
        },
        "loggers": {
            "uvicorn": {"handlers": ["default"], "level": "INFO", "propagate": True},
            "uvicorn.error": {"handlers": ["default"], "level": "INFO", "propagate": True},
            "uvicorn.access": {"handlers": ["default"], "level": "INFO", "propagate": True},
        },
    }

    try:
        uvicorn.run(
            "tasmota_manager.interfaces.api.main:create_app_from_environment",
            factory=True,
            host=host,
            port=port,
            reload=False,
            log_level=log_level.lower(),
            log_config=log_config,
            access_log=True
        )
    except Exception as e:
        logger.error(f"Error starting API server: {str(e)}")
        raise


if __name__ == "__main__":
    run_server()
