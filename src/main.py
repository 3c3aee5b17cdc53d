import logging
import signal
import sys
import threading
from typing import Callable, Optional

from app_config import (
    AppConfig,
    AppConfigurationError,
    load_app_config,
    resolve_config_path,
)
from cues import AudioConfig, CueConfigurationError, CuePlayer, VoiceConfig
from cues.player import AudioEngine, ClipSource
from interval import LoopScheduler, PhaseClock, PresetStore, SessionConfig
from runtime import RuntimeBootstrap, RuntimeEngine
from server import ServerConfigurationError, UIServer, UIServerConfig


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure logging for the application."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger("interval_app")


def setup_signal_handlers(engine: RuntimeEngine) -> None:
    """Turn SIGTERM and SIGINT into a queued quit command."""

    def signal_handler(signum: int, frame) -> None:
        del frame
        logging.getLogger("interval_app").info(
            "%s received, stopping...", signal.Signals(signum).name
        )
        engine.submit("quit")

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)


def start_stdin_reader(engine: RuntimeEngine) -> threading.Thread:
    """Forward stdin lines to the runtime as commands until EOF."""

    def read_lines() -> None:
        for line in sys.stdin:
            if line.strip():
                engine.submit(line)

    thread = threading.Thread(target=read_lines, daemon=True, name="stdin-commands")
    thread.start()
    return thread


def initial_session_config(app_config: AppConfig, presets: PresetStore, logger: logging.Logger) -> SessionConfig:
    settings = app_config.session
    config = SessionConfig(
        work_seconds=settings.work_seconds,
        rest_seconds=settings.rest_seconds,
        rounds=settings.rounds,
        prepare_seconds=settings.prepare_seconds,
    )
    if settings.preset:
        preset = presets.get(settings.preset)
        if preset is None:
            logger.warning("Configured preset %r not found; using [session] values", settings.preset)
        else:
            config = preset.config
    return config


def build_engine_factory(audio_config: AudioConfig) -> Callable[[], AudioEngine]:
    def create_engine() -> AudioEngine:
        # Imported here so a missing PortAudio library only disables cues.
        from cues.engine import SoundDeviceAudioEngine

        return SoundDeviceAudioEngine(
            sample_rate_hz=audio_config.sample_rate_hz,
            output_device_index=audio_config.output_device_index,
            blocksize=audio_config.blocksize,
            logger=logging.getLogger("cues.engine"),
        )

    return create_engine


def build_clip_source(app_config: AppConfig, logger: logging.Logger) -> Optional[ClipSource]:
    if not app_config.tts.enabled:
        return None
    try:
        voice_config = VoiceConfig.from_settings(app_config.tts)
        from cues.voice import PiperVoiceClips

        clip_source = PiperVoiceClips(voice_config, logger=logging.getLogger("cues.voice"))
    except (CueConfigurationError, ImportError) as error:
        logger.warning("Word cues disabled: %s", error)
        return None
    logger.info("Word cues enabled (voice: %s)", voice_config.hf_filename)
    return clip_source


def build_cue_player(
    app_config: AppConfig,
    scheduler: LoopScheduler,
    logger: logging.Logger,
) -> Optional[CuePlayer]:
    try:
        audio_config = AudioConfig.from_settings(app_config.audio)
    except CueConfigurationError as error:
        logger.warning("Audio cues disabled: %s", error)
        return None
    if not audio_config.enabled:
        logger.info("Audio cues disabled via audio.enabled=false")
        return None

    return CuePlayer(
        scheduler=scheduler,
        engine_factory=build_engine_factory(audio_config),
        clip_source=build_clip_source(app_config, logger),
        keepalive_release_seconds=audio_config.keepalive_release_seconds,
        logger=logging.getLogger("cues"),
    )


def main() -> int:
    """Run the interval timer until a quit command or signal."""
    logger = setup_logging(level=logging.INFO)

    try:
        config_path = resolve_config_path()
        app_config = load_app_config(str(config_path))
        logger.info("Loaded runtime config: %s", config_path)
    except AppConfigurationError as error:
        logger.error("App configuration error: %s", error)
        return 1

    scheduler = LoopScheduler(logger=logging.getLogger("interval.scheduler"))
    clock = PhaseClock(
        scheduler=scheduler,
        tick_interval_seconds=app_config.clock.tick_interval_seconds,
        logger=logging.getLogger("interval.clock"),
    )
    presets = PresetStore(app_config.presets.file, logger=logging.getLogger("interval.presets"))
    cue_player = build_cue_player(app_config, scheduler, logger)

    ui_server: Optional[UIServer] = None
    engine_ref: list[RuntimeEngine] = []
    try:
        ui_config = UIServerConfig.from_settings(app_config.ui_server)
    except ServerConfigurationError as error:
        logger.error("UI server configuration error: %s", error)
        logger.warning("Continuing without UI server.")
        ui_config = None

    if ui_config is not None and ui_config.enabled:
        ui_server = UIServer(
            config=ui_config,
            on_command=lambda line: engine_ref[0].submit(line),
            logger=logging.getLogger("ui_server"),
        )

    engine = RuntimeEngine(
        RuntimeBootstrap(
            logger=logger,
            scheduler=scheduler,
            clock=clock,
            presets=presets,
            initial_config=initial_session_config(app_config, presets, logger),
            cue_player=cue_player,
            ui_server=ui_server,
        )
    )
    engine_ref.append(engine)

    if ui_server is not None:
        try:
            logger.info("Starting UI server...")
            ui_server.start()
        except RuntimeError as error:
            logger.error("UI server startup failed: %s", error)
            logger.warning("Continuing without UI server.")

    setup_signal_handlers(engine)
    start_stdin_reader(engine)

    try:
        return engine.run()
    finally:
        if ui_server is not None:
            logger.info("Stopping UI server...")
            ui_server.stop()


if __name__ == "__main__":
    raise SystemExit(main())
