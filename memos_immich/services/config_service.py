# memos_immich/services/config_service.py
"""
Provides a singleton configuration service for the Immich bridge.

This service is responsible for:
1. Loading environment variables from a `.env` file.
2. Loading the optional `config.yaml` file.
3. Building the immutable Immich connection settings.
4. Setting up a centralized logging system for console and optional file output.

Using a singleton pattern ensures that configuration is loaded once per
process and is consistent across all modules that import it.
"""
import yaml
import os
import logging
import sys
from pathlib import Path
import dotenv
import threading
from typing import Any, Optional

from ..config import ImmichConfig, load_immich_config, DEFAULT_TIMEOUT_SECONDS
from ..exceptions import ConfigError

logger = logging.getLogger(__name__)


class AppConfig:
    _instance: Optional['AppConfig'] = None
    _loaded: bool = False
    _lock: threading.Lock = threading.Lock()

    def __new__(cls, *args, **kwargs) -> 'AppConfig':
        if cls._instance is None:
            with cls._lock:
                # Double-check pattern to prevent race conditions
                if cls._instance is None:
                    cls._instance = super(AppConfig, cls).__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if not self._loaded:
            with self._lock:
                if not self._loaded:
                    # Environment first: .env may point at a different deployment.
                    dotenv.load_dotenv()
                    self.project_root = Path(__file__).resolve().parents[2]

                    self._load_yaml_config()
                    self._setup_logging()
                    self._load_immich_config()

                    self._loaded = True
                    logger.info("Application configuration and logging initialized successfully.")

    def _load_yaml_config(self) -> None:
        """Loads config.yaml when present; every key in it is optional."""
        config_path = Path(os.getenv("MEMOS_IMMICH_CONFIG", self.project_root / 'config.yaml'))
        try:
            with open(config_path, 'r') as f:
                self.yaml = yaml.safe_load(f) or {}
        except FileNotFoundError:
            self.yaml = {}
        except yaml.YAMLError as e:
            print(f"FATAL: Error parsing YAML configuration file: {e}", file=sys.stderr)
            sys.exit(1)

    def _load_immich_config(self) -> None:
        """
        Reads the Immich settings once. A malformed base URL disables the
        integration instead of stopping the host application.
        """
        timeout = self.get('immich.api_timeout_seconds', DEFAULT_TIMEOUT_SECONDS)
        try:
            self.immich: ImmichConfig = load_immich_config(timeout_seconds=float(timeout))
        except (ConfigError, TypeError, ValueError) as e:
            logger.error(f"Immich integration disabled: {e}")
            self.immich = ImmichConfig()
            return

        if self.immich.enabled:
            logger.info(f"Immich integration enabled for {self.immich.base_url}")
        else:
            logger.info("Immich integration disabled: base URL or API key not set.")

    def _setup_logging(self) -> None:
        """Configures the root logger for consistent logging across the app."""
        log_config = self.get('logging', {}) or {}
        log_level_str = str(log_config.get('level', 'INFO')).upper()
        log_level = getattr(logging, log_level_str, logging.INFO)

        # Check if logging has already been configured to prevent double setup
        root_logger = logging.getLogger()
        if root_logger.handlers:
            root_logger.setLevel(log_level)
            return

        handlers = [logging.StreamHandler(sys.stdout)]
        if log_config.get('filename'):
            log_dir = self.project_root / log_config.get('directory', 'logs')
            log_dir.mkdir(exist_ok=True)
            handlers.append(logging.FileHandler(log_dir / log_config['filename']))

        logging.basicConfig(
            level=log_level,
            format='%(asctime)s - [%(levelname)s] - %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
            handlers=handlers,
            force=True
        )

        # Silence overly verbose libraries
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        logging.getLogger("requests").setLevel(logging.WARNING)

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Safely retrieves a value from the nested YAML configuration.

        Args:
            key_path (str): A dot-separated path to the desired key (e.g., 'immich.api_timeout_seconds').
            default: The value to return if the key is not found.

        Returns:
            The configuration value or the default.
        """
        value = self.yaml
        try:
            for key in key_path.split('.'):
                value = value[key]
            return value
        except (KeyError, TypeError):
            return default


# Create the singleton instance that will be imported by other modules.
config = AppConfig()
