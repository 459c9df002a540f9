"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONFIG_ERROR = 2
    EXIT_WARNINGS = 3
    COMPILER_ERROR = 4


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    CABAL_DIR_NAME = ".cabal"
    CABAL_CONFIG_FILE = "config"
    REMOTE_REPO_PREFIX = "remote-repo: "
    PACKAGES_DIR = "packages"
    INDEX_FILES = ["00-index.tar"]

    DEFAULT_COMPILER = "ghc"
    COMPILER_TIMEOUT = 30  # Timeout in seconds for the compiler version probe

    DEPRECATED_MARKER = "(deprecated)"
    ENV_CONFIG = "PACKDEPS_CONFIG"
    ENV_LOG_LEVEL = "PACKDEPS_LOG_LEVEL"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
    LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
