"""Configuration template substitution utilities."""

import os
import re
from pathlib import Path

import yaml
from dotenv.main import load_dotenv
from loguru import logger
from pydantic_core import ValidationError

from src.catalog.runtime.config.config_data import ConfigData


# ${NAME}, ${NAME:-default} or ${NAME:?message}
_PLACEHOLDER = re.compile(
    r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?:(?P<op>:-|:\?)(?P<arg>[^}]*))?\}"
)


def substitute_env_vars(text: str) -> str:
    """
    Substitute environment variable placeholders in text.

    Supports formats:
    - ${VAR_NAME} - required variable
    - ${VAR_NAME:-default} - default when the variable is unset or empty
    - ${VAR_NAME:?error_message} - required with custom error message

    Raises:
        ValueError: naming every required variable that is not set
    """
    missing: list[str] = []

    def replacer(match: re.Match[str]) -> str:
        name, op, arg = match.group("name", "op", "arg")
        value = os.getenv(name)

        # Empty counts as unset for defaults, as in the shell
        if op == ":-":
            return value or arg

        if value is None:
            missing.append(f"{name}: {arg}" if op == ":?" else f"{name} not set")
            return match.group(0)
        return value

    substituted = _PLACEHOLDER.sub(replacer, text)
    if missing:
        raise ValueError(f"Required environment variables missing: {'; '.join(missing)}")
    return substituted


def apply_environment_overrides(env_mode: str) -> None:
    """Copy ``<ENV>_NAME`` variables onto ``NAME`` for the active environment."""
    prefix = f"{env_mode.upper()}_"
    env_variables = [(var, value) for var, value in os.environ.items() if var.startswith(prefix)]
    if env_variables:
        logger.info(f"Applying environment-specific overrides: {[name for name, _ in env_variables]}")

    for var_name, var_value in env_variables:
        new_var_name = var_name[len(prefix):]
        os.environ[new_var_name] = var_value
        logger.debug(f"Set environment variable {new_var_name} from {var_name}")


def load_templated_yaml(file_path: Path) -> ConfigData:
    """
    Load a YAML file with environment variable substitution.

    Args:
        file_path: Path to the YAML file

    Returns:
        Parsed YAML with environment variables substituted

    Raises:
        ValueError: If required environment variables are missing or the
            file does not describe a valid configuration
        FileNotFoundError: If the YAML file doesn't exist
    """
    with open(file_path, encoding="utf-8") as f:
        content = f.read()

    # .env values fill in placeholders but never replace exported variables
    load_dotenv()
    env_mode = os.getenv("APP_ENVIRONMENT", "development")
    logger.info(f"Loading configuration for environment: {env_mode}")
    apply_environment_overrides(env_mode)

    substituted_content = substitute_env_vars(content)

    try:
        loaded = yaml.safe_load(substituted_content)
        if not loaded:
            raise ValueError("Failed to parse YAML")
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML: {e}") from e

    if not isinstance(loaded, dict):
        raise ValueError("Configuration file must contain a mapping")

    try:
        config_data = loaded.get('config') or {}
        return ConfigData(**config_data)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e
