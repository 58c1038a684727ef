"""
Runtime configuration and logging setup for the functional encryption modules.

Defaults mirror the parameters the DDH demo program was built around
(64-bit modulus, inputs bounded by 2^16). Each setting can be overridden
through an environment variable.
"""

import logging
import os
from dataclasses import dataclass

from fe_errors import ParameterError

DEFAULT_MODULUS_LENGTH = 64
DEFAULT_BOUND = 1 << 16
DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_MAX_PRIME_ATTEMPTS = 200000

LOG_FORMAT = '%(asctime)s [%(levelname)s] [%(filename)s:%(lineno)d] %(message)s'


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw.strip(), 10)
    except ValueError:
        raise ParameterError(f"Environment variable {name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class FEConfig:
    """Snapshot of the functional encryption settings."""
    modulus_length: int = DEFAULT_MODULUS_LENGTH
    bound: int = DEFAULT_BOUND
    log_dir: str = DEFAULT_LOG_DIR
    log_level: str = DEFAULT_LOG_LEVEL
    max_prime_attempts: int = DEFAULT_MAX_PRIME_ATTEMPTS

    @classmethod
    def from_env(cls) -> "FEConfig":
        """
        Build a configuration from FE_* environment variables.

        Raises:
            ParameterError: if a numeric variable is not an integer
        """
        return cls(
            modulus_length=_env_int("FE_MODULUS_LENGTH", DEFAULT_MODULUS_LENGTH),
            bound=_env_int("FE_BOUND", DEFAULT_BOUND),
            log_dir=os.environ.get("FE_LOG_DIR", DEFAULT_LOG_DIR),
            log_level=os.environ.get("FE_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
            max_prime_attempts=_env_int("FE_MAX_PRIME_ATTEMPTS", DEFAULT_MAX_PRIME_ATTEMPTS),
        )


def configure_logger(name: str) -> logging.Logger:
    """
    Return the named logger with a per-module log file and a console handler.

    Handlers are attached only once, so re-importing a module does not
    duplicate output.
    """
    logger = logging.getLogger(name)
    if getattr(logger, "_fe_configured", False):
        return logger

    config = FEConfig.from_env()
    logger.setLevel(logging.DEBUG)
    formatter = logging.Formatter(LOG_FORMAT)

    if not os.path.exists(config.log_dir):
        os.makedirs(config.log_dir, exist_ok=True)

    file_handler = logging.FileHandler(os.path.join(config.log_dir, f"{name}.log"))
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, config.log_level, logging.INFO))
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    logger._fe_configured = True
    return logger
