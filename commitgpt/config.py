"""
Configuration for commit-gpt.

The API key is resolved from, in order: an explicit key file, the
OPENAI_API_KEY environment variable (which may come from a .env file in the
current directory or in ~/.commit-gpt/), and finally ~/.commit-gpt/api_key.
"""

import os

from dotenv import load_dotenv
from loguru import logger

from .errors import ConfigError

DEFAULT_MODEL = "gpt-4"
DEFAULT_MAX_CHANGES = 400


def get_config_dir():
    """Return the path of the per-user configuration directory."""
    return os.path.join(os.path.expanduser("~"), ".commit-gpt")


def get_default_model():
    """Return the default model, which COMMIT_GPT_MODEL may override."""
    return os.getenv("COMMIT_GPT_MODEL") or DEFAULT_MODEL


def load_environment():
    """
    Load .env files into the environment.

    The .env in the current directory is read first, then the one in the
    user's configuration directory. Variables that are already set are not
    overridden.
    """
    load_dotenv(os.path.join(os.getcwd(), ".env"))

    home_env_path = os.path.join(get_config_dir(), ".env")
    if os.path.exists(home_env_path):
        logger.debug(f"Loading environment from {home_env_path}")
        load_dotenv(home_env_path)


def read_api_key(path):
    """
    Read an API key from a file.

    Args:
        path (str): Path to the key file

    Returns:
        str: The key with surrounding whitespace removed

    Raises:
        ConfigError: If the file cannot be read or is empty
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            api_key = f.read().strip()
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Failed to read API key from {path}: {e}")

    if not api_key:
        raise ConfigError(f"API key file {path} is empty")

    return api_key


def resolve_api_key(api_key_path=None):
    """
    Find the OpenAI API key.

    Args:
        api_key_path (str): Optional explicit key file, which always wins

    Returns:
        str: The API key

    Raises:
        ConfigError: If no key can be found
    """
    if api_key_path:
        logger.debug(f"Reading API key from {api_key_path}")
        return read_api_key(api_key_path)

    api_key = os.getenv("OPENAI_API_KEY", "").strip()
    if api_key:
        logger.debug("Using API key from OPENAI_API_KEY")
        return api_key

    default_key_path = os.path.join(get_config_dir(), "api_key")
    if os.path.exists(default_key_path):
        logger.debug(f"Reading API key from {default_key_path}")
        return read_api_key(default_key_path)

    raise ConfigError(
        "OpenAI API key not found. Pass --api-key-path, set the OPENAI_API_KEY "
        "environment variable or run 'commit-gpt setup'."
    )


def save_api_key(api_key, config_dir=None):
    """
    Store the API key in the user's .env file.

    Args:
        api_key (str): The key to store
        config_dir (str): Directory to write to, defaults to ~/.commit-gpt

    Returns:
        str: Path of the written .env file
    """
    config_dir = config_dir or get_config_dir()
    os.makedirs(config_dir, exist_ok=True)

    env_path = os.path.join(config_dir, ".env")
    fd = os.open(env_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w") as f:
        f.write(f"OPENAI_API_KEY={api_key.strip()}\n")

    # O_CREAT only applies the mode to new files
    os.chmod(env_path, 0o600)
    return env_path
