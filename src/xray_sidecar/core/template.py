"""Xray configuration rendering.

The Xray config ships as a template containing ``__KEY__`` placeholders.
At startup the placeholders are replaced with values taken from the
environment and the result is written to a writable location.

Example:
    values = template_values(os.environ)
    render_config_file(Path("/config.json.tpl"), Path("/tmp/config.json"), values)
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Final

from loguru import logger

from xray_sidecar.core.config import getenv
from xray_sidecar.core.exceptions import TemplateError

DEFAULT_TEMPLATE_PATH: Final = Path("/config.json.tpl")
DEFAULT_OUTPUT_PATH: Final = Path("/tmp/config.json")  # noqa: S108

# Placeholder name -> (environment variable, default)
TEMPLATE_DEFAULTS: Final = {
    "PROTO": ("PROTO", "vless"),
    "WS_PATH": ("WS_PATH", "/ws"),
    "NETWORK": ("NETWORK", "ws"),
    "PORT": ("PORT", "8080"),
    "SPEED_LIMIT": ("SPEED_LIMIT", "300000"),  # 3000 KB/s
    "HOST": ("HOST", "localhost"),  # WebSocket host header
}


def template_values(environ: Mapping[str, str]) -> dict[str, str]:
    """Collect placeholder values from the environment, applying defaults.

    ``USER_ID`` falls back to ``UUID`` and then to ``changeme``.
    """
    values = {key: getenv(environ, var, default) for key, (var, default) in TEMPLATE_DEFAULTS.items()}
    values["USER_ID"] = getenv(environ, "USER_ID", getenv(environ, "UUID", "changeme"))
    return values


def render_template(text: str, values: Mapping[str, str]) -> str:
    """Replace every ``__KEY__`` placeholder in ``text``."""
    for key, value in values.items():
        text = text.replace(f"__{key}__", value)
    return text


def render_config_file(template_path: Path, output_path: Path, values: Mapping[str, str]) -> Path:
    """Render ``template_path`` into ``output_path``.

    Args:
        template_path: Template file with ``__KEY__`` placeholders
        output_path: Destination of the rendered config
        values: Placeholder values

    Returns:
        Path: ``output_path``

    Raises:
        TemplateError: If the template cannot be read or the output written
    """
    try:
        text = template_path.read_text(encoding="utf-8")
    except OSError as e:
        raise TemplateError(f"Failed to read template {template_path}: {e}") from e

    try:
        output_path.write_text(render_template(text, values), encoding="utf-8")
        output_path.chmod(0o644)
    except OSError as e:
        raise TemplateError(f"Failed to write config {output_path}: {e}") from e

    logger.info(f"Rendered {template_path} to {output_path}")
    return output_path
