# sitefiles/core/compose.py
"""
Builds the per-invocation render configuration from the option and locals layers.
"""
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Optional

from sitefiles.exceptions import ConfigurationError

_EMPTY: Mapping = MappingProxyType({})


@dataclass(frozen=True)
class RenderConfig:
    """Read-only configuration for one render call."""
    options: Mapping = field(default_factory=lambda: _EMPTY)
    locals: Mapping = field(default_factory=lambda: _EMPTY)

    @property
    def ext(self) -> Optional[str]:
        return self.options.get("ext") or None

    def get(self, key: str, default: Any = None) -> Any:
        return self.options.get(key, default)


def _as_mapping(value: Any, name: str) -> Mapping:
    if value is None:
        return _EMPTY
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"{name} must be a mapping, got {type(value).__name__}")
    return value


def compose_render_config(
    base_options: Optional[Mapping] = None,
    call_options: Optional[Mapping] = None,
    call_locals: Optional[Mapping] = None,
    file_data: Optional[Mapping] = None,
    *,
    include_file_data: bool = True,
) -> RenderConfig:
    """Merges the configuration layers into a new RenderConfig.

    Options: base_options, then call_options on top.
    Locals, lowest to highest: file_data, base_options["locals"],
    call_options["locals"], call_locals.

    No input is modified. Raises ConfigurationError when a layer is not a mapping.
    """
    base = _as_mapping(base_options, "base options")
    call = _as_mapping(call_options, "options")
    stage_locals = _as_mapping(call_locals, "locals")
    data = _as_mapping(file_data, "file data")

    base_locals = _as_mapping(base.get("locals"), "base options.locals")
    call_option_locals = _as_mapping(call.get("locals"), "options.locals")

    merged_options = {**base, **call}
    merged_options.pop("locals", None)

    merged_locals = {}
    if include_file_data:
        merged_locals.update(data)
    merged_locals.update(base_locals)
    merged_locals.update(call_option_locals)
    merged_locals.update(stage_locals)

    return RenderConfig(
        options=MappingProxyType(merged_options),
        locals=MappingProxyType(merged_locals),
    )
