"""Runtime orchestration loop for user commands, clock ticks and cues."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from queue import Empty, Queue
from typing import Optional

from contracts.ui_protocol import (
    COMMAND_ADJUST,
    COMMAND_PAUSE,
    COMMAND_PRESET,
    COMMAND_PRESETS,
    COMMAND_QUIT,
    COMMAND_RESUME,
    COMMAND_START,
    COMMAND_STATUS,
    COMMAND_STOP,
    COMMAND_TOGGLE,
    EVENT_ERROR,
)
from cues import CuePlayer
from interval import (
    LoopScheduler,
    PhaseClock,
    Preset,
    PresetError,
    PresetStore,
    SessionConfig,
)
from interval.constants import CONTROL_COMPLETE, CONTROL_PAUSED

from .commands import (
    PRESET_LOAD,
    PRESET_REMOVE,
    PRESET_SAVE,
    Command,
    CommandError,
    parse_command,
)
from .ui import ClockUIPublisher, UIServerLike

DEFAULT_MAX_WAIT_SECONDS = 0.05


@dataclass(frozen=True)
class RuntimeBootstrap:
    """Dependency bundle required to construct the runtime engine."""
    logger: logging.Logger
    scheduler: LoopScheduler
    clock: PhaseClock
    presets: PresetStore
    initial_config: SessionConfig
    cue_player: Optional[CuePlayer] = None
    ui_server: Optional[UIServerLike] = None


class RuntimeEngine:
    """Single-threaded loop: drains queued commands, then runs due timers.

    Other threads (stdin reader, UI server, signal handlers) only ever call
    `submit()`; every clock and cue mutation happens inside `run_once()`.
    """
    def __init__(self, bootstrap: RuntimeBootstrap):
        self._bootstrap = bootstrap
        self._logger = bootstrap.logger
        self._scheduler = bootstrap.scheduler
        self._clock = bootstrap.clock
        self._presets = bootstrap.presets
        self._cue_player = bootstrap.cue_player
        self._config = bootstrap.initial_config
        self._commands: Queue[str] = Queue()
        self._ui = ClockUIPublisher(bootstrap.ui_server, self._clock)

        # Cues subscribe first so audio is triggered before display updates.
        if self._cue_player is not None:
            self._clock.subscribe(self._cue_player)
        self._clock.subscribe(self._ui)

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def clock(self) -> PhaseClock:
        return self._clock

    def submit(self, line: str) -> None:
        """Queue a command line from any thread."""
        self._commands.put(line)

    def run(self) -> int:
        self._ui.publish_session(self._config)
        self._ui.publish_presets(self._presets.all())
        self._logger.info("Ready. Commands: start [preset], pause, resume, stop, quit")
        try:
            while self.run_once():
                pass
            return 0
        except KeyboardInterrupt:
            self._logger.info("Shutdown requested by keyboard interrupt.")
            return 0
        except Exception as error:
            self._logger.error("Unexpected error: %s", error, exc_info=True)
            return 1
        finally:
            self._shutdown()

    def run_once(self, max_wait_seconds: float = DEFAULT_MAX_WAIT_SECONDS) -> bool:
        """Handle queued commands and due timers; False once `quit` was received."""
        delay = self._scheduler.next_delay()
        wait = max_wait_seconds if delay is None else min(delay, max_wait_seconds)
        try:
            if wait > 0:
                line: Optional[str] = self._commands.get(timeout=wait)
            else:
                line = self._commands.get_nowait()
        except Empty:
            line = None

        while line is not None:
            if not self.handle_command(line):
                return False
            try:
                line = self._commands.get_nowait()
            except Empty:
                line = None

        self._scheduler.run_pending()
        return True

    def handle_command(self, line: str) -> bool:
        try:
            command = parse_command(line)
        except CommandError as error:
            self._logger.warning("%s", error)
            self._ui.publish(EVENT_ERROR, message=str(error))
            return True

        if command.name == COMMAND_QUIT:
            return False
        if command.name == COMMAND_START:
            self._start(command)
        elif command.name == COMMAND_PAUSE:
            self._clock.pause()
        elif command.name == COMMAND_RESUME:
            self._clock.resume()
        elif command.name == COMMAND_TOGGLE:
            if self._clock.control_state == CONTROL_PAUSED:
                self._clock.resume()
            else:
                self._clock.pause()
        elif command.name == COMMAND_STOP:
            self._clock.stop()
        elif command.name == COMMAND_ADJUST:
            self._set_config(self._config.adjusted(command.field, command.delta))  # type: ignore[arg-type]
        elif command.name == COMMAND_PRESET:
            self._handle_preset(command)
        elif command.name == COMMAND_PRESETS:
            presets = self._presets.all()
            self._ui.publish_presets(presets)
            for preset in presets:
                self._logger.info(
                    "Preset %s: %ss/%ss x %s, prepare %ss",
                    preset.name,
                    preset.config.work_seconds,
                    preset.config.rest_seconds,
                    preset.config.rounds,
                    preset.config.prepare_seconds,
                )
        elif command.name == COMMAND_STATUS:
            self._logger.info("Status: %s", self._clock.snapshot())
        return True

    def _start(self, command: Command) -> None:
        if self._clock.snapshot().is_active:
            self._logger.info("Start ignored: session already %s", self._clock.control_state)
            return
        if command.argument and not self._load_preset(command.argument):
            return
        if self._clock.control_state == CONTROL_COMPLETE:
            self._clock.stop()
        if self._cue_player is not None:
            self._cue_player.ensure_unlocked()
        result = self._clock.start(self._config)
        if not result.accepted:
            self._logger.info("Start ignored: %s", result.reason)

    def _handle_preset(self, command: Command) -> None:
        if command.preset_action == PRESET_LOAD:
            self._load_preset(command.argument)
            return

        if command.preset_action == PRESET_SAVE:
            try:
                self._presets.save(Preset(name=command.argument, config=self._config))
            except PresetError as error:
                self._logger.warning("%s", error)
                self._ui.publish(EVENT_ERROR, message=str(error))
                return
        elif command.preset_action == PRESET_REMOVE:
            if not self._presets.remove(command.argument):
                self._logger.info("No preset named %r", command.argument)
        self._ui.publish_presets(self._presets.all())

    def _load_preset(self, name: str) -> bool:
        preset = self._presets.get(name)
        if preset is None:
            message = f"No preset named {name!r}"
            self._logger.warning(message)
            self._ui.publish(EVENT_ERROR, message=message)
            return False
        self._set_config(preset.config)
        self._logger.info("Preset loaded: %s", preset.name)
        return True

    def _set_config(self, config: SessionConfig) -> None:
        self._config = config
        self._ui.publish_session(config)

    def _shutdown(self) -> None:
        self._clock.stop()
        if self._cue_player is not None:
            self._logger.info("Closing audio cues...")
            self._cue_player.close()
