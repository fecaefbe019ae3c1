import os
from typing import Any, Dict, Mapping, Optional, Type

from pydantic import ValidationError

from contracts.errors import ConfigurationError
from contracts.probe_settings import DbProbeSettings, HttpProbeSettings, ProbeSettings


class Config:
    """
    Configuration class for environment variables and default settings.
    """

    # Every probe option can be set as <ENV_PREFIX><OPTION_NAME>, e.g. CONNPROBE_INTERVAL_MS.
    ENV_PREFIX = "CONNPROBE_"

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "ERROR")
    LOG_FILE = os.environ.get("LOG_FILE")

    SETTINGS_MODELS: Dict[str, Type[ProbeSettings]] = {
        "http": HttpProbeSettings,
        "db": DbProbeSettings,
    }


def settings_model(mode: str) -> Type[ProbeSettings]:
    try:
        return Config.SETTINGS_MODELS[mode]
    except KeyError:
        raise ConfigurationError(
            f"Unsupported probe mode: {mode}. Supported modes: {sorted(Config.SETTINGS_MODELS)}"
        ) from None


def environment_layer(
    model: Type[ProbeSettings], environ: Optional[Mapping[str, str]] = None
) -> Dict[str, str]:
    """
    Collect the options of ``model`` that are set in the environment.

    Empty variables are treated as unset. Values stay strings; the settings
    model coerces them.
    """
    environ = os.environ if environ is None else environ
    layer = {}
    for name in model.model_fields:
        if name == "mode":
            continue
        value = environ.get(f"{Config.ENV_PREFIX}{name.upper()}")
        if value:
            layer[name] = value
    return layer


def merge_layers(*layers: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Merge option layers given from lowest to highest precedence.

    A ``None`` value means "not provided" and never hides a lower layer.
    """
    merged: Dict[str, Any] = {}
    for layer in layers:
        merged.update({k: v for k, v in layer.items() if v is not None})
    return merged


def load_settings(
    mode: str,
    cli_values: Mapping[str, Any],
    environ: Optional[Mapping[str, str]] = None,
) -> ProbeSettings:
    """
    Build the immutable settings for ``mode``.

    Precedence, lowest to highest: model defaults, command line, environment.

    Raises:
        ConfigurationError: If the merged options fail validation.
    """
    model = settings_model(mode)
    values = merge_layers(cli_values, environment_layer(model, environ))
    try:
        return model(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid {mode} settings: {e}") from e
