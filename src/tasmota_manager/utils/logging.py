import logging
import logging.handlers
import os
import sys
from datetime import datetime


class LogConfig:
    """Centralized logging configuration"""

    # Class variable to track if logging has been set up
    _is_setup = False

    def __init__(
        self,
        app_name: str = "tasmota_manager",
        log_dir: str = "logs",
        debug: bool = False,
        log_to_file: bool = True,
        log_to_console: bool = True,
        backup_count: int = 5
    ):
        self.app_name = app_name
        self.log_dir = log_dir
        self.debug = debug
        self.log_to_file = log_to_file
        self.log_to_console = log_to_console
        self.backup_count = backup_count

        if log_to_file:
            os.makedirs(log_dir, exist_ok=True)

    @classmethod
    def setup(cls, **kwargs):
        """Create a LogConfig instance and configure logging with it"""
        log_config = cls(**kwargs)
        log_config.configure()
        return log_config

    def configure(self):
        """Configure logging for the application"""
        # Skip setup if already done to prevent duplicate handlers
        if LogConfig._is_setup:
            logging.getLogger().debug("Logging already configured, skipping setup")
            return

        if "--debug" in sys.argv:
            self.debug = True

        level = logging.DEBUG if self.debug else logging.INFO
        root_logger = logging.getLogger()
        root_logger.setLevel(level)

        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

        file_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
        )
        console_formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s'
        )

        if self.log_to_file:
            current_date = datetime.now().strftime("%Y%m%d")
            log_file = os.path.join(
                self.log_dir,
                f"{self.app_name}_{current_date}.log"
            )

            # Daily rotation
            file_handler = logging.handlers.TimedRotatingFileHandler(
                log_file,
                when='midnight',
                interval=1,
                backupCount=self.backup_count,
                encoding='utf-8'
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(file_formatter)
            root_logger.addHandler(file_handler)

        if self.log_to_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(level)
            console_handler.setFormatter(console_formatter)
            root_logger.addHandler(console_handler)

        # aiohttp is chatty at debug level
        logging.getLogger("aiohttp").setLevel(logging.DEBUG if self.debug else logging.WARNING)

        LogConfig._is_setup = True

        logger = logging.getLogger()
        logger.info(f"Logging configured for {self.app_name}")
        if self.debug:
            logger.info("Debug mode: Enabled")
        if self.log_to_file:
            logger.info(f"Log directory: {os.path.abspath(self.log_dir)}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name"""
    return logging.getLogger(name)
