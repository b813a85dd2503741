"""
Typed configuration model with precedence-based loader.

Precedence (lowest to highest):
    defaults < config file (YAML) < profile < env vars < CLI flags < per-session overrides
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any

import yaml


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------

@dataclass
class ProviderConfig:
    name: str = "gemini"
    model: str = "gemini-2.0-flash"
    api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    api_key_env: str = "GEMINI_API_KEY"
    timeout_seconds: int = 120
    extra: dict = field(default_factory=dict)

    @property
    def api_key(self) -> str:
        """Credential read from the configured environment variable."""
        return os.environ.get(self.api_key_env, "") if self.api_key_env else ""


def _openai_defaults() -> ProviderConfig:
    return ProviderConfig(
        name="openai",
        model="gpt-4o-mini",
        api_base="https://api.openai.com/v1",
        api_key_env="OPENAI_API_KEY",
    )


@dataclass
class StreamConfig:
    # 0 disables the carry-over cap.
    max_carry_over_chars: int = 1_048_576
    log_payload_chars: int = 200


@dataclass
class ChatConfig:
    default_model: str = "gemini-2.0-flash"
    streaming: bool = True
    system_prompt: str = ""


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    file: str = ""


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------

@dataclass
class ChatstreamConfig:
    gemini: ProviderConfig = field(default_factory=ProviderConfig)
    openai: ProviderConfig = field(default_factory=_openai_defaults)
    stream: StreamConfig = field(default_factory=StreamConfig)
    chat: ChatConfig = field(default_factory=ChatConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    profiles: dict[str, dict[str, Any]] = field(default_factory=dict)

    # ----- per-session overrides (applied last) ----
    _overrides: dict[str, Any] = field(default_factory=dict, repr=False)

    def set_override(self, dotpath: str, value: Any) -> None:
        """Set a per-session override using dot notation (e.g. 'chat.default_model')."""
        self._overrides[dotpath] = value
        _apply_dotpath(self, dotpath, value)

    def set_override_text(self, assignment: str) -> str:
        """
        Apply a ``section.key=value`` override given as text.

        The value is coerced to the type of the field it replaces.  Returns
        the dot path.
        """
        dotpath, sep, raw = assignment.partition("=")
        dotpath = dotpath.strip()
        if not sep or not dotpath:
            raise ValueError(f"Expected section.key=value, got {assignment!r}")
        try:
            current = _resolve_dotpath(self, dotpath)
        except AttributeError:
            raise ValueError(f"Unknown config key: {dotpath}") from None
        if not isinstance(current, (str, int, float)):
            raise ValueError(f"Config key {dotpath} is not a single value")
        self.set_override(dotpath, _coerce(raw.strip(), type(current)))
        return dotpath

    def get_override(self, dotpath: str) -> Any | None:
        return self._overrides.get(dotpath)

    def to_dict(self) -> dict:
        d = asdict(self)
        d.pop("_overrides", None)
        return d


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _resolve_dotpath(obj: Any, dotpath: str) -> Any:
    """Value at *dotpath*; only public dataclass fields are walked."""
    for part in dotpath.split("."):
        names = {f.name for f in fields(obj)} if is_dataclass(obj) else set()
        if part.startswith("_") or part not in names:
            raise AttributeError(part)
        obj = getattr(obj, part)
    return obj


def _apply_dotpath(obj: Any, dotpath: str, value: Any) -> None:
    """Walk obj via dotpath and set the final attribute."""
    parts = dotpath.split(".")
    for part in parts[:-1]:
        obj = getattr(obj, part)
    setattr(obj, parts[-1], value)


def _deep_merge(base: dict, overlay: dict) -> dict:
    """Recursively merge overlay into base, returning a new dict."""
    merged = dict(base)
    for k, v in overlay.items():
        if k in merged and isinstance(merged[k], dict) and isinstance(v, dict):
            merged[k] = _deep_merge(merged[k], v)
        else:
            merged[k] = v
    return merged


def _coerce(value: str, target_type: type) -> Any:
    """Coerce a string env value to the target type."""
    if target_type is bool:
        return value.lower() in ("1", "true", "yes", "on")
    if target_type is int:
        return int(value)
    if target_type is float:
        return float(value)
    return value


def _build_section(cls: type, raw: dict, base: Any = None) -> Any:
    """Build a dataclass section from a raw dict, ignoring unknown keys."""
    valid_fields = {f.name for f in fields(cls)}
    filtered = {k: v for k, v in raw.items() if k in valid_fields}
    if base is not None:
        merged = {f.name: getattr(base, f.name) for f in fields(cls)}
        merged.update(filtered)
        filtered = merged
    return cls(**filtered)


# ---------------------------------------------------------------------------
# ENV var mapping
# ---------------------------------------------------------------------------

_ENV_MAP: dict[str, tuple[str, type]] = {
    "CHATSTREAM_GEMINI_MODEL":          ("gemini.model", str),
    "CHATSTREAM_GEMINI_API_BASE":       ("gemini.api_base", str),
    "CHATSTREAM_GEMINI_API_KEY_ENV":    ("gemini.api_key_env", str),
    "CHATSTREAM_GEMINI_TIMEOUT":        ("gemini.timeout_seconds", int),
    "CHATSTREAM_OPENAI_MODEL":          ("openai.model", str),
    "CHATSTREAM_OPENAI_API_BASE":       ("openai.api_base", str),
    "CHATSTREAM_OPENAI_API_KEY_ENV":    ("openai.api_key_env", str),
    "CHATSTREAM_OPENAI_TIMEOUT":        ("openai.timeout_seconds", int),
    "CHATSTREAM_STREAM_MAX_CARRY_OVER": ("stream.max_carry_over_chars", int),
    "CHATSTREAM_STREAM_LOG_PAYLOAD":    ("stream.log_payload_chars", int),
    "CHATSTREAM_CHAT_MODEL":            ("chat.default_model", str),
    "CHATSTREAM_CHAT_STREAMING":        ("chat.streaming", bool),
    "CHATSTREAM_CHAT_SYSTEM_PROMPT":    ("chat.system_prompt", str),
    "CHATSTREAM_LOG_LEVEL":             ("logging.level", str),
    "CHATSTREAM_LOG_FILE":              ("logging.file", str),
}


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def find_config_path() -> Path | None:
    """Find config file in standard locations."""
    candidates = [
        Path.cwd() / "chatstream.yaml",
        Path.cwd() / "chatstream.yml",
        Path.home() / ".config" / "chatstream" / "config.yaml",
    ]
    for p in candidates:
        if p.is_file():
            return p
    return None


def load_config(
    config_path: str | Path | None = None,
    *,
    profile: str | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> ChatstreamConfig:
    """
    Build a ChatstreamConfig by layering sources in precedence order:

        defaults  <  config file  <  profile  <  env vars  <  CLI flags

    Parameters
    ----------
    config_path : path to YAML config file (optional)
    profile : name of a profile to apply from the config file
    cli_overrides : dict of dotpath -> value CLI flag overrides
    """
    raw: dict[str, Any] = {}

    # --- 1. Config file ---
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.is_file():
            with p.open("r", encoding="utf-8") as f:
                file_data = yaml.safe_load(f) or {}
            raw = _deep_merge(raw, file_data)

    # --- 2. Profile overlay ---
    if profile and "profiles" in raw:
        profile_data = raw.get("profiles", {}).get(profile, {})
        if profile_data:
            raw = _deep_merge(raw, profile_data)

    # --- Build sections from raw ---
    cfg = ChatstreamConfig(
        gemini=_build_section(ProviderConfig, raw.get("gemini", {})),
        openai=_build_section(ProviderConfig, raw.get("openai", {}), _openai_defaults()),
        stream=_build_section(StreamConfig, raw.get("stream", {})),
        chat=_build_section(ChatConfig, raw.get("chat", {})),
        logging=_build_section(LoggingConfig, raw.get("logging", {})),
        profiles=raw.get("profiles", {}),
    )

    # --- 3. Env var overrides ---
    for env_var, (dotpath, target_type) in _ENV_MAP.items():
        val = os.environ.get(env_var)
        if val is not None:
            _apply_dotpath(cfg, dotpath, _coerce(val, target_type))

    # --- 4. CLI flag overrides ---
    if cli_overrides:
        for dotpath, value in cli_overrides.items():
            _apply_dotpath(cfg, dotpath, value)

    return cfg
