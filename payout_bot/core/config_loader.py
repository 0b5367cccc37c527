"""Configuration loading utilities."""

import logging
import os
from pathlib import Path

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://income-api.copperx.io/api"
DEFAULT_REDIS_URL = "redis://localhost:6379"
DEFAULT_SESSION_TTL = 60 * 60 * 24
DEFAULT_CONVERSATION_TIMEOUT = 5 * 60

# Environment variable -> (section, key)
ENV_OVERRIDES = {
    "API_BASE_URL": ("api", "base_url"),
    "REDIS_URL": ("redis", "url"),
    "PUSHER_KEY": ("pusher", "key"),
    "PUSHER_CLUSTER": ("pusher", "cluster"),
    "LOG_LEVEL": ("logging", "level"),
}


def load_config(path: str = "config/config.yaml") -> dict:
    """
    Load YAML configuration file from specified path and return as dictionary.

    Values from the environment (or a ``.env`` file in the project root)
    override the matching YAML keys, see ``ENV_OVERRIDES``.

    Args:
        path: Configuration file path (default: config/config.yaml)

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If configuration file doesn't exist
        ValueError: If configuration file is empty or invalid
    """
    # payout_bot/core/config_loader.py -> project root
    root_dir = Path(__file__).parent.parent.parent
    env_path = root_dir / '.env'
    if env_path.exists():
        load_dotenv(env_path)
        logger.info(f"Loaded .env file: {env_path}")
    else:
        logger.info(".env file not found, using system environment variables")

    config_path = Path(path)

    if not config_path.is_absolute() and not config_path.exists():
        config_path = root_dir / path

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file does not exist: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        config = yaml.safe_load(f)

    if not config or not isinstance(config, dict):
        raise ValueError(f"Configuration file is empty or has invalid format: {path}")

    _apply_env_overrides(config)
    return _validate_config(config)


def _apply_env_overrides(config: dict) -> None:
    """Copy non-empty environment variables into their config sections."""
    for env_var, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            config.setdefault(section, {})
            if config[section] is None:
                config[section] = {}
            config[section][key] = value


def _validate_config(config: dict) -> dict:
    """
    Validate configuration sections and fill in defaults.

    Args:
        config: Raw configuration dictionary

    Returns:
        Validated configuration dictionary

    Raises:
        ValueError: Configuration validation failed
    """
    for section in ('api', 'redis', 'session', 'conversation', 'pusher', 'history', 'logging'):
        value = config.get(section)
        if value is None:
            config[section] = {}
        elif not isinstance(value, dict):
            raise ValueError(f"Config section '{section}' must be a dictionary")

    api = config['api']
    api.setdefault('base_url', DEFAULT_API_BASE_URL)
    api.setdefault('timeout', 30.0)
    api.setdefault('verify_ssl', True)
    if not str(api['base_url']).startswith(('http://', 'https://')):
        raise ValueError(f"api.base_url must be an http(s) URL, current value: {api['base_url']}")
    api['base_url'] = str(api['base_url']).rstrip('/')
    api['timeout'] = _positive_number(api['timeout'], 'api.timeout')

    config['redis'].setdefault('url', DEFAULT_REDIS_URL)

    session = config['session']
    session.setdefault('ttl_seconds', DEFAULT_SESSION_TTL)
    session.setdefault('key_prefix', 'user_session:')
    session['ttl_seconds'] = int(_positive_number(session['ttl_seconds'], 'session.ttl_seconds'))

    conversation = config['conversation']
    conversation.setdefault('timeout_seconds', DEFAULT_CONVERSATION_TIMEOUT)
    conversation['timeout_seconds'] = _positive_number(
        conversation['timeout_seconds'], 'conversation.timeout_seconds'
    )

    pusher = config['pusher']
    pusher.setdefault('key', '')
    pusher.setdefault('cluster', 'ap1')

    history = config['history']
    history.setdefault('page_size', 10)
    history['page_size'] = int(_positive_number(history['page_size'], 'history.page_size'))

    log_config = config['logging']
    log_config.setdefault('level', 'INFO')
    log_config.setdefault('log_dir', None)
    log_config.setdefault('log_filename', None)

    return config


def _positive_number(value, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number, current value: {value}")
    if number <= 0:
        raise ValueError(f"{name} must be greater than 0, current value: {value}")
    return number


def load_bot_token() -> str:
    """
    Read the Telegram bot token from the environment.

    Returns:
        Bot token string

    Raises:
        ValueError: TELEGRAM_BOT_TOKEN is not set
    """
    bot_token = os.environ.get("TELEGRAM_BOT_TOKEN")
    if not bot_token:
        raise ValueError("TELEGRAM_BOT_TOKEN environment variable not set")
    return bot_token
