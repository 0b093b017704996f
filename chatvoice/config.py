"""Configuration model and loaders for chatvoice.

Responsibilities:
- Define runtime configuration as typed dataclasses.
- Load configuration from YAML files and environment variables.
- Reject invalid values at load time with `ConfigError`.

Key types:
- `BackendSetting`: one configured speech backend.
- `ChatvoiceConfig`: normalized runtime settings for the synthesis pipeline.
- `ConfigLoader`: static construction helpers for `ChatvoiceConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import ConfigError
from .models.datatypes import TimeStretchConfig
from .parsing import (
    normalize_optional_string,
    parse_float,
    parse_int,
    parse_permissive_boolean,
    parse_positive_int,
)

SUPPORTED_BACKEND_KINDS = frozenset(
    {
        "voicevox",
        "google_translate",
        "naver",
        "coefont",
        "bing_speech",
        "ktts",
        "voiceroid",
        "winrt",
    }
)
_URL_OPTIONAL_KINDS = frozenset({"google_translate", "coefont"})
_CHUNK_FAILURE_POLICIES = frozenset({"fail_fast", "best_effort"})
_OVERLONG_TOKEN_POLICIES = frozenset({"fail", "force_split"})
_LOG_LEVELS = frozenset({"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"})


@dataclass(frozen=True, slots=True)
class BackendSetting:
    """Settings for one configured backend.

    Attributes:
        kind: Provider kind, such as `voicevox` or `google_translate`.
        url: Base URL of the provider endpoint.
        headers: Extra HTTP headers sent with every request.
        master_volume: Per-backend volume multiplier.
        chunk_failure_policy: `fail_fast` or `best_effort` (provider default when `None`).
        options: Provider-specific extras (`speed`, `slow`, `g2p_url`, `g2p_headers`,
            `character_volume`).
    """

    kind: str
    url: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    master_volume: float = 1.0
    chunk_failure_policy: str | None = None
    options: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ChatvoiceConfig:
    """Runtime configuration for the synthesis pipeline.

    Attributes:
        backends: Backend settings keyed by service id, in registration order.
        global_volume: Volume multiplier applied on top of every backend volume.
        time_stretch: Acceleration ramp for long utterances.
        output_sample_rate: Sample rate of the playback transport.
        overlong_token_policy: `fail` or `force_split` for tokens longer than a chunk.
        http_timeout_seconds: Timeout for each provider HTTP request.
        log_level: Minimum loguru level for the runtime log sink.
        filter_messages: Whether chat message filtering runs before synthesis.
    """

    backends: dict[str, BackendSetting] = field(default_factory=dict)
    global_volume: float = 1.0
    time_stretch: TimeStretchConfig = field(default_factory=TimeStretchConfig)
    output_sample_rate: int = 48000
    overlong_token_policy: str = "fail"
    http_timeout_seconds: float = 30.0
    log_level: str = "INFO"
    filter_messages: bool = True

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ConfigError: If any value is out of range or unsupported.
        """

        stretch = self.time_stretch
        if stretch.target_speed < 1.0:
            raise ConfigError("`time_stretch.target_speed` must be at least 1.0.")
        if stretch.ramp_duration < 0.0:
            raise ConfigError("`time_stretch.ramp_duration` must not be negative.")
        if stretch.initial_delay < 0.0:
            raise ConfigError("`time_stretch.initial_delay` must not be negative.")
        if self.global_volume < 0.0:
            raise ConfigError("`global_volume` must not be negative.")
        if self.output_sample_rate <= 0:
            raise ConfigError("`output_sample_rate` must be a positive integer.")
        if self.http_timeout_seconds <= 0.0:
            raise ConfigError("`http_timeout_seconds` must be positive.")
        if self.overlong_token_policy not in _OVERLONG_TOKEN_POLICIES:
            supported = ", ".join(sorted(_OVERLONG_TOKEN_POLICIES))
            raise ConfigError(
                f"Unsupported `overlong_token_policy` value `{self.overlong_token_policy}`; "
                f"supported: {supported}."
            )
        if self.log_level not in _LOG_LEVELS:
            raise ConfigError(f"Unsupported `log_level` value `{self.log_level}`.")
        for service_id, backend in self.backends.items():
            self._validate_backend(service_id, backend)

    @staticmethod
    def _validate_backend(service_id: str, backend: BackendSetting) -> None:
        """Validate one backend setting."""

        if backend.kind not in SUPPORTED_BACKEND_KINDS:
            supported = ", ".join(sorted(SUPPORTED_BACKEND_KINDS))
            raise ConfigError(
                f"Backend `{service_id}` has unsupported kind `{backend.kind}`; "
                f"supported: {supported}."
            )
        if backend.url is None and backend.kind not in _URL_OPTIONAL_KINDS:
            raise ConfigError(f"Backend `{service_id}` requires `url`.")
        if backend.master_volume < 0.0:
            raise ConfigError(f"Backend `{service_id}` field `master_volume` must not be negative.")
        if (
            backend.chunk_failure_policy is not None
            and backend.chunk_failure_policy not in _CHUNK_FAILURE_POLICIES
        ):
            raise ConfigError(
                f"Backend `{service_id}` has unsupported `chunk_failure_policy` "
                f"`{backend.chunk_failure_policy}`."
            )


class ConfigLoader:
    """Factory methods for creating `ChatvoiceConfig` from external sources."""

    _REQUIRED_YAML_KEYS = frozenset({"backends"})
    _SUPPORTED_YAML_KEYS = frozenset(
        {
            "backends",
            "global_volume",
            "time_stretch",
            "output_sample_rate",
            "overlong_token_policy",
            "http_timeout_seconds",
            "log_level",
            "filter_messages",
        }
    )
    _SUPPORTED_TIME_STRETCH_KEYS = frozenset({"target_speed", "ramp_duration", "initial_delay"})
    _SUPPORTED_BACKEND_KEYS = frozenset(
        {
            "kind",
            "url",
            "headers",
            "master_volume",
            "chunk_failure_policy",
            "speed",
            "slow",
            "g2p_url",
            "g2p_headers",
            "character_volume",
        }
    )
    _BACKEND_OPTION_KEYS = frozenset(
        {"speed", "slow", "g2p_url", "g2p_headers", "character_volume"}
    )

    @staticmethod
    def from_yaml(path: Path) -> ChatvoiceConfig:
        """Create a validated config from a YAML file."""

        path_text = path.read_text(encoding="utf-8")
        payload = ConfigLoader._parse_yaml_payload(path_text, path)
        return ConfigLoader._build_config_from_mapping(payload, source_label=f"YAML `{path}`")

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> ChatvoiceConfig:
        """Create a validated config with no backends from environment variables."""

        return ConfigLoader._apply_env(ChatvoiceConfig(), env)

    @staticmethod
    def load(path: Path | None = None, env: Mapping[str, str] | None = None) -> ChatvoiceConfig:
        """Load YAML configuration (when given) and apply environment overrides."""

        base = ConfigLoader.from_yaml(path) if path is not None else ChatvoiceConfig()
        return ConfigLoader._apply_env(base, env)

    @staticmethod
    def _apply_env(config: ChatvoiceConfig, env: Mapping[str, str] | None) -> ChatvoiceConfig:
        """Override scalar settings from `CHATVOICE_*` environment variables."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        stretch = config.time_stretch
        target_speed = ConfigLoader._optional_env_float(env_map, "CHATVOICE_TARGET_SPEED")
        ramp_duration = ConfigLoader._optional_env_float(env_map, "CHATVOICE_RAMP_DURATION")
        initial_delay = ConfigLoader._optional_env_float(env_map, "CHATVOICE_INITIAL_DELAY")
        global_volume = ConfigLoader._optional_env_float(env_map, "CHATVOICE_GLOBAL_VOLUME")
        http_timeout = ConfigLoader._optional_env_float(env_map, "CHATVOICE_HTTP_TIMEOUT")
        output_rate = normalize_optional_string(env_map.get("CHATVOICE_OUTPUT_SAMPLE_RATE"))
        overlong_policy = normalize_optional_string(env_map.get("CHATVOICE_OVERLONG_TOKEN_POLICY"))
        log_level = normalize_optional_string(env_map.get("CHATVOICE_LOG_LEVEL"))

        try:
            parsed_rate = (
                parse_positive_int(output_rate, "CHATVOICE_OUTPUT_SAMPLE_RATE")
                if output_rate is not None
                else config.output_sample_rate
            )
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc

        resolved = replace(
            config,
            time_stretch=TimeStretchConfig(
                target_speed=stretch.target_speed if target_speed is None else target_speed,
                ramp_duration=stretch.ramp_duration if ramp_duration is None else ramp_duration,
                initial_delay=stretch.initial_delay if initial_delay is None else initial_delay,
            ),
            global_volume=config.global_volume if global_volume is None else global_volume,
            http_timeout_seconds=(
                config.http_timeout_seconds if http_timeout is None else http_timeout
            ),
            output_sample_rate=parsed_rate,
            overlong_token_policy=(
                config.overlong_token_policy if overlong_policy is None else overlong_policy.lower()
            ),
            log_level=config.log_level if log_level is None else log_level.upper(),
        )
        resolved.validate()
        return resolved

    @staticmethod
    def _parse_yaml_payload(raw_text: str, path: Path) -> Mapping[str, Any]:
        """Parse YAML text and enforce a mapping root payload."""

        try:
            payload = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"YAML config `{path}` is not valid YAML: {exc}") from exc

        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ConfigError(f"YAML config `{path}` must contain a top-level mapping/object.")
        return payload

    @staticmethod
    def _build_config_from_mapping(
        payload: Mapping[str, Any], source_label: str
    ) -> ChatvoiceConfig:
        """Build a validated config from a normalized mapping payload."""

        ConfigLoader._validate_keys(
            payload,
            ConfigLoader._SUPPORTED_YAML_KEYS,
            ConfigLoader._REQUIRED_YAML_KEYS,
            source_label,
        )

        backends = ConfigLoader._backends(payload["backends"], source_label)
        stretch_payload = payload.get("time_stretch") or {}
        if not isinstance(stretch_payload, Mapping):
            raise ConfigError(f"{source_label} field `time_stretch` must be a mapping/object.")
        ConfigLoader._validate_keys(
            stretch_payload,
            ConfigLoader._SUPPORTED_TIME_STRETCH_KEYS,
            frozenset(),
            f"{source_label} `time_stretch`",
        )
        defaults = TimeStretchConfig()
        time_stretch = TimeStretchConfig(
            target_speed=ConfigLoader._optional_float(
                stretch_payload, "target_speed", source_label, defaults.target_speed
            ),
            ramp_duration=ConfigLoader._optional_float(
                stretch_payload, "ramp_duration", source_label, defaults.ramp_duration
            ),
            initial_delay=ConfigLoader._optional_float(
                stretch_payload, "initial_delay", source_label, defaults.initial_delay
            ),
        )

        config = ChatvoiceConfig(
            backends=backends,
            global_volume=ConfigLoader._optional_float(payload, "global_volume", source_label, 1.0),
            time_stretch=time_stretch,
            output_sample_rate=ConfigLoader._optional_positive_int(
                payload, "output_sample_rate", source_label, 48000
            ),
            overlong_token_policy=(
                ConfigLoader._optional_string(payload, "overlong_token_policy") or "fail"
            ).lower(),
            http_timeout_seconds=ConfigLoader._optional_float(
                payload, "http_timeout_seconds", source_label, 30.0
            ),
            log_level=(ConfigLoader._optional_string(payload, "log_level") or "INFO").upper(),
            filter_messages=ConfigLoader._optional_boolean(
                payload, "filter_messages", source_label, default=True
            ),
        )
        config.validate()
        return config

    @staticmethod
    def _backends(raw: Any, source_label: str) -> dict[str, BackendSetting]:
        """Read the `backends` mapping of service id to backend settings."""

        if raw is None:
            return {}
        if not isinstance(raw, Mapping):
            raise ConfigError(f"{source_label} field `backends` must be a mapping/object.")

        backends: dict[str, BackendSetting] = {}
        for raw_service_id, entry in raw.items():
            service_id = normalize_optional_string(raw_service_id)
            if service_id is None:
                raise ConfigError(f"{source_label} field `backends` contains a blank service id.")
            label = f"{source_label} backend `{service_id}`"
            if not isinstance(entry, Mapping):
                raise ConfigError(f"{label} must be a mapping/object.")
            ConfigLoader._validate_keys(
                entry,
                ConfigLoader._SUPPORTED_BACKEND_KEYS,
                frozenset({"kind"}),
                label,
            )
            options = {
                key: entry[key] for key in ConfigLoader._BACKEND_OPTION_KEYS if key in entry
            }
            if "slow" in options:
                options["slow"] = ConfigLoader._optional_boolean(entry, "slow", label, False)
            if "speed" in options:
                try:
                    options["speed"] = parse_int(entry["speed"], "speed")
                except ValueError as exc:
                    raise ConfigError(f"{label}: {exc}") from exc
            if "g2p_headers" in options:
                options["g2p_headers"] = ConfigLoader._optional_string_map(
                    entry, "g2p_headers", label
                )
            if "character_volume" in options:
                options["character_volume"] = ConfigLoader._float_map(
                    entry, "character_volume", label
                )
            backends[service_id] = BackendSetting(
                kind=ConfigLoader._optional_string(entry, "kind") or "",
                url=ConfigLoader._optional_string(entry, "url"),
                headers=ConfigLoader._optional_string_map(entry, "headers", label),
                master_volume=ConfigLoader._optional_float(entry, "master_volume", label, 1.0),
                chunk_failure_policy=ConfigLoader._optional_string(entry, "chunk_failure_policy"),
                options=options,
            )
        return backends

    @staticmethod
    def _validate_keys(
        payload: Mapping[str, Any],
        supported: frozenset[str],
        required: frozenset[str],
        source_label: str,
    ) -> None:
        """Validate supported and required keys of one mapping."""

        unknown = sorted(str(key) for key in set(payload).difference(supported))
        if unknown:
            key_list = ", ".join(unknown)
            raise ConfigError(f"{source_label} includes unsupported key(s): {key_list}.")

        missing = sorted(key for key in required if key not in payload)
        if missing:
            key_list = ", ".join(missing)
            raise ConfigError(f"{source_label} is missing required key(s): {key_list}.")

    @staticmethod
    def _optional_string(payload: Mapping[str, Any], key: str) -> str | None:
        if key not in payload:
            return None
        return normalize_optional_string(payload[key])

    @staticmethod
    def _optional_float(
        payload: Mapping[str, Any], key: str, source_label: str, default: float
    ) -> float:
        """Read and validate a finite float payload field."""

        if key not in payload or payload[key] is None:
            return default
        try:
            return parse_float(payload[key], key)
        except ValueError as exc:
            raise ConfigError(f"{source_label}: {exc}") from exc

    @staticmethod
    def _optional_positive_int(
        payload: Mapping[str, Any], key: str, source_label: str, default: int
    ) -> int:
        """Read and validate a positive integer payload field."""

        if key not in payload or payload[key] is None:
            return default
        try:
            return parse_positive_int(payload[key], key)
        except ValueError as exc:
            raise ConfigError(f"{source_label}: {exc}") from exc

    @staticmethod
    def _optional_boolean(
        payload: Mapping[str, Any], key: str, source_label: str, default: bool
    ) -> bool:
        """Read and validate a boolean field from a payload."""

        if key not in payload:
            return default

        parsed = parse_permissive_boolean(payload[key])
        if parsed is None:
            raise ConfigError(
                f"{source_label} field `{key}` must be a boolean value "
                "(`true`/`false`, `1`/`0`, `yes`/`no`)."
            )
        return parsed

    @staticmethod
    def _optional_string_map(
        payload: Mapping[str, Any], key: str, source_label: str
    ) -> dict[str, str]:
        """Read an optional mapping with non-empty string keys and values."""

        if key not in payload:
            return {}

        raw = payload[key]
        if raw is None:
            return {}
        if not isinstance(raw, Mapping):
            raise ConfigError(f"{source_label} field `{key}` must be a mapping/object.")

        normalized: dict[str, str] = {}
        for raw_key, raw_value in raw.items():
            key_value = normalize_optional_string(raw_key)
            value_value = normalize_optional_string(raw_value)
            if key_value is None:
                raise ConfigError(f"{source_label} field `{key}` contains a blank key.")
            if value_value is None:
                raise ConfigError(
                    f"{source_label} field `{key}` contains blank value for `{key_value}`."
                )
            normalized[key_value] = value_value
        return normalized

    @staticmethod
    def _float_map(payload: Mapping[str, Any], key: str, source_label: str) -> dict[str, float]:
        """Read a mapping of string keys to finite floats."""

        raw = payload[key]
        if raw is None:
            return {}
        if not isinstance(raw, Mapping):
            raise ConfigError(f"{source_label} field `{key}` must be a mapping/object.")
        try:
            return {str(name): parse_float(value, f"{key}.{name}") for name, value in raw.items()}
        except ValueError as exc:
            raise ConfigError(f"{source_label}: {exc}") from exc

    @staticmethod
    def _optional_env_float(env: Mapping[str, str], key: str) -> float | None:
        """Read an optional finite float environment variable."""

        value = normalize_optional_string(env.get(key))
        if value is None:
            return None
        try:
            return parse_float(value, key)
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc
