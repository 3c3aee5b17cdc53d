import os
import sys
import tempfile
import textwrap
import unittest
from pathlib import Path
from unittest.mock import patch

from app_config import (
    AppConfigurationError,
    load_app_config,
    resolve_config_path,
)


def _write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


class AppConfigLoadingTests(unittest.TestCase):
    def test_load_app_config_resolves_relative_paths(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            config_path = root / "config.toml"
            _write_text(
                config_path,
                textwrap.dedent(
                    """
                    [tts]
                    enabled = true
                    model_path = "voices/en_US.onnx"

                    [presets]
                    file = "data/presets.json"
                    """
                ).strip(),
            )

            app_config = load_app_config(str(config_path))

            self.assertEqual(str(config_path), app_config.source_file)
            self.assertTrue(app_config.tts.enabled)
            self.assertEqual(
                str((root / "voices/en_US.onnx").resolve()),
                app_config.tts.model_path,
            )
            self.assertEqual(
                str((root / "data/presets.json").resolve()),
                app_config.presets.file,
            )

    def test_missing_sections_use_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            config_path = root / "config.toml"
            _write_text(config_path, "")

            app_config = load_app_config(str(config_path))

            self.assertEqual(
                (20, 10, 8, 10),
                (
                    app_config.session.work_seconds,
                    app_config.session.rest_seconds,
                    app_config.session.rounds,
                    app_config.session.prepare_seconds,
                ),
            )
            self.assertEqual("", app_config.session.preset)
            self.assertEqual(0.2, app_config.clock.tick_interval_seconds)
            self.assertTrue(app_config.audio.enabled)
            self.assertIsNone(app_config.audio.output_device)
            self.assertEqual(3.0, app_config.audio.keepalive_release_seconds)
            self.assertFalse(app_config.tts.enabled)
            self.assertEqual(str((root / "presets.json").resolve()), app_config.presets.file)
            self.assertFalse(app_config.ui_server.enabled)
            self.assertEqual(8765, app_config.ui_server.port)

    def test_load_app_config_parses_session_and_audio(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            _write_text(
                config_path,
                textwrap.dedent(
                    """
                    [session]
                    work_seconds = 45
                    rest_seconds = 15
                    rounds = 6
                    prepare_seconds = 0
                    preset = " Quick Burn "

                    [clock]
                    tick_interval_seconds = 0.1

                    [audio]
                    enabled = "off"
                    output_device = 3
                    sample_rate_hz = 48000
                    """
                ).strip(),
            )

            app_config = load_app_config(str(config_path))

            self.assertEqual(45, app_config.session.work_seconds)
            self.assertEqual(0, app_config.session.prepare_seconds)
            self.assertEqual("Quick Burn", app_config.session.preset)
            self.assertEqual(0.1, app_config.clock.tick_interval_seconds)
            self.assertFalse(app_config.audio.enabled)
            self.assertEqual(3, app_config.audio.output_device)
            self.assertEqual(48000, app_config.audio.sample_rate_hz)

    def test_session_values_outside_limits_are_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            _write_text(config_path, "[session]\nrounds = 0\n")

            with self.assertRaises(AppConfigurationError) as context:
                load_app_config(str(config_path))

            self.assertIn("[session]", str(context.exception))
            self.assertIn("rounds", str(context.exception))

    def test_tick_interval_must_be_positive(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            _write_text(config_path, "[clock]\ntick_interval_seconds = 0\n")

            with self.assertRaises(AppConfigurationError):
                load_app_config(str(config_path))

    def test_load_app_config_rejects_secret_fields(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            _write_text(
                config_path,
                textwrap.dedent(
                    """
                    [tts]
                    hf_token = "hf_private"
                    """
                ).strip(),
            )

            with self.assertRaises(AppConfigurationError) as context:
                load_app_config(str(config_path))

            self.assertIn("tts.hf_token", str(context.exception))

    def test_invalid_toml_and_missing_file_raise(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            with self.assertRaises(AppConfigurationError):
                load_app_config(str(config_path))

            _write_text(config_path, "[session\n")
            with self.assertRaises(AppConfigurationError):
                load_app_config(str(config_path))

    def test_non_table_section_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            _write_text(config_path, 'session = "tabata"\n')

            with self.assertRaises(AppConfigurationError):
                load_app_config(str(config_path))

    def test_resolve_config_path_uses_executable_dir_fallback_in_frozen_mode(self) -> None:
        with tempfile.TemporaryDirectory() as cwd_dir, tempfile.TemporaryDirectory() as exe_dir:
            cwd = Path(cwd_dir)
            executable_dir_config = Path(exe_dir) / "config.toml"
            _write_text(executable_dir_config, "[session]\nrounds = 4\n")
            executable = Path(exe_dir) / "interval-timer"

            with patch.dict(os.environ, {}, clear=True):
                with patch("app_config.Path.cwd", return_value=cwd):
                    with patch.object(sys, "frozen", True, create=True):
                        with patch.object(sys, "executable", str(executable), create=True):
                            resolved = resolve_config_path()

            self.assertEqual(executable_dir_config.resolve(), resolved)


if __name__ == "__main__":
    unittest.main()
