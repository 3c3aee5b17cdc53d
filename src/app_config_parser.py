"""Typed parser for config.toml sections into immutable app settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from app_config_schema import (
    AppConfig,
    AppConfigurationError,
    AudioSettings,
    ClockSettings,
    PresetSettings,
    SessionSettings,
    TTSSettings,
    UIServerSettings,
)
from interval import SessionConfig, SessionConfigError, validate_session_config

DEFAULT_PRESETS_FILE = "presets.json"


def parse_app_config(
    raw: Mapping[str, Any],
    *,
    base_dir: Path,
    source_file: str,
) -> AppConfig:
    """Parse raw TOML mappings into strongly typed application settings."""
    session = _parse_session_settings(_section(raw, "session"))
    clock = _parse_clock_settings(_section(raw, "clock"))
    audio = _parse_audio_settings(_section(raw, "audio"))
    tts = _parse_tts_settings(_section(raw, "tts"), base_dir=base_dir)
    presets = _parse_preset_settings(_section(raw, "presets"), base_dir=base_dir)
    ui_server = _parse_ui_server_settings(_section(raw, "ui_server"))

    return AppConfig(
        session=session,
        clock=clock,
        audio=audio,
        tts=tts,
        presets=presets,
        ui_server=ui_server,
        source_file=source_file,
    )


def _parse_session_settings(section: Mapping[str, Any]) -> SessionSettings:
    settings = SessionSettings(
        work_seconds=_as_int(section.get("work_seconds", 20), "session.work_seconds"),
        rest_seconds=_as_int(section.get("rest_seconds", 10), "session.rest_seconds"),
        rounds=_as_int(section.get("rounds", 8), "session.rounds"),
        prepare_seconds=_as_int(
            section.get("prepare_seconds", 10),
            "session.prepare_seconds",
        ),
        preset=_as_str(section.get("preset", ""), "session.preset"),
    )
    try:
        validate_session_config(
            SessionConfig(
                work_seconds=settings.work_seconds,
                rest_seconds=settings.rest_seconds,
                rounds=settings.rounds,
                prepare_seconds=settings.prepare_seconds,
            )
        )
    except SessionConfigError as error:
        raise AppConfigurationError(f"[session] {error}") from error
    return settings


def _parse_clock_settings(section: Mapping[str, Any]) -> ClockSettings:
    tick_interval_seconds = _as_float(
        section.get("tick_interval_seconds", 0.2),
        "clock.tick_interval_seconds",
    )
    if not 0.0 < tick_interval_seconds <= 1.0:
        raise AppConfigurationError("clock.tick_interval_seconds must be in (0, 1].")
    return ClockSettings(tick_interval_seconds=tick_interval_seconds)


def _parse_audio_settings(section: Mapping[str, Any]) -> AudioSettings:
    return AudioSettings(
        enabled=_as_bool(section.get("enabled", True), "audio.enabled"),
        output_device=(
            _as_int(section.get("output_device"), "audio.output_device")
            if "output_device" in section
            else None
        ),
        sample_rate_hz=_as_int(section.get("sample_rate_hz", 44100), "audio.sample_rate_hz"),
        blocksize=_as_int(section.get("blocksize", 512), "audio.blocksize"),
        keepalive_release_seconds=_as_float(
            section.get("keepalive_release_seconds", 3.0),
            "audio.keepalive_release_seconds",
        ),
    )


def _parse_tts_settings(
    section: Mapping[str, Any],
    *,
    base_dir: Path,
) -> TTSSettings:
    _forbid_secret_fields(section, "tts", ("hf_token",))
    return TTSSettings(
        enabled=_as_bool(section.get("enabled", False), "tts.enabled"),
        model_path=_resolve_path(
            base_dir,
            _as_str(section.get("model_path", ""), "tts.model_path"),
        ),
        hf_filename=_as_str(section.get("hf_filename", ""), "tts.hf_filename"),
        hf_repo_id=_as_str(section.get("hf_repo_id", ""), "tts.hf_repo_id"),
        hf_revision=_as_str(section.get("hf_revision", "main"), "tts.hf_revision") or "main",
    )


def _parse_preset_settings(
    section: Mapping[str, Any],
    *,
    base_dir: Path,
) -> PresetSettings:
    raw_file = _as_str(section.get("file", DEFAULT_PRESETS_FILE), "presets.file")
    return PresetSettings(file=_resolve_path(base_dir, raw_file or DEFAULT_PRESETS_FILE))


def _parse_ui_server_settings(section: Mapping[str, Any]) -> UIServerSettings:
    return UIServerSettings(
        enabled=_as_bool(section.get("enabled", False), "ui_server.enabled"),
        host=_as_str(section.get("host", "127.0.0.1"), "ui_server.host"),
        port=_as_int(section.get("port", 8765), "ui_server.port"),
    )


def _section(root: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    raw = root.get(name, {})
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise AppConfigurationError(f"[{name}] must be a table.")
    return raw


def _as_str(value: Any, field: str) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    raise AppConfigurationError(f"{field} must be a string.")


def _as_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
    raise AppConfigurationError(f"{field} must be a boolean.")


def _as_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise AppConfigurationError(f"{field} must be an integer.")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as error:
            raise AppConfigurationError(f"{field} must be an integer.") from error
    raise AppConfigurationError(f"{field} must be an integer.")


def _as_float(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise AppConfigurationError(f"{field} must be a float.")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError as error:
            raise AppConfigurationError(f"{field} must be a float.") from error
    raise AppConfigurationError(f"{field} must be a float.")


def _resolve_path(base_dir: Path, raw: str) -> str:
    if not raw:
        return ""
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return str(path)


def _forbid_secret_fields(
    section: Mapping[str, Any],
    section_name: str,
    fields: tuple[str, ...],
) -> None:
    present = [field for field in fields if field in section]
    if present:
        joined = ", ".join(f"{section_name}.{field}" for field in present)
        raise AppConfigurationError(
            f"Secret values must not be stored in config.toml: {joined}. "
            "Move them to environment variables."
        )
