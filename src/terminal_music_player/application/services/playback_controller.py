"""Playback Controller - owns the audio session, the queue and the command surface.

Two tasks cooperate:

* the command worker pops commands from one FIFO and runs their handlers one
  at a time while holding the step lock;
* the delivery loop pulls blocks from the active decoder, writes them to the
  output device and feeds end-of-track and failures back into the same FIFO.

Every load and stop bumps the session generation. Work the loop started on an
older generation (a block read, a seek, an end-of-track) is discarded when it
comes back, so a superseded decoder can never touch the current session.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ...domain.music.entities import PlaybackQueue, SavedQueue, Track
from ...domain.music.events import (
    MusicEvent,
    PlaybackError,
    PlaybackStateChanged,
    PositionChanged,
    QueueChanged,
    QueueExhausted,
    TrackFinished,
    TrackStarted,
    VolumeChanged,
)
from ...domain.music.services import PlaybackDomainService, QueueDomainService
from ...domain.music.value_objects import ErrorKind, PlaybackState, TrackFinishReason
from ...domain.shared.constants import AudioConstants, EventConstants
from ...domain.shared.exceptions import (
    DomainError,
    InvalidOperationError,
    NoTrackAvailableError,
    QueueIndexInvalidError,
    SeekOutOfRangeError,
)
from ...domain.shared.messages import ErrorMessages, LogTemplates
from ..commands import (
    AdjustVolume,
    ClearQueue,
    Command,
    CommandResult,
    CommandStatus,
    Enqueue,
    Extend,
    JumpTo,
    LoadQueue,
    Move,
    Next,
    Pause,
    Play,
    Previous,
    RemoveAt,
    Reshuffle,
    Resume,
    Seek,
    SeekRelative,
    SetOrderingMode,
    SetRepeatMode,
    SetVolume,
    Stop,
    TogglePause,
)
from ..interfaces.audio_backend import AudioBlock, DecodeError, DeviceError
from ..queries.snapshot import PlayerSnapshot

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ...domain.music.value_objects import OrderingMode, RepeatMode
    from ...domain.shared.events import EventChannel
    from ..interfaces.audio_backend import AudioDecoder, AudioOutput, DecoderFactory

logger = logging.getLogger(__name__)


# === Internal commands fed back by the delivery loop ===


@dataclass
class _TrackEnded(Command):
    generation: int


@dataclass
class _DecodeFailed(Command):
    generation: int
    error: str


@dataclass
class _DeviceFailed(Command):
    generation: int
    error: str


@dataclass
class _Session:
    """Controller-private state of the loaded track."""

    generation: int
    decoder: AudioDecoder | None = None
    track: Track | None = None
    position: float = 0.0
    duration: float | None = None
    pending_seek: float | None = None
    stashed: AudioBlock | None = None
    ended: bool = False
    read_failures: int = 0


_ERROR_STATUS: dict[type[DomainError], CommandStatus] = {
    NoTrackAvailableError: CommandStatus.NO_TRACK_AVAILABLE,
    QueueIndexInvalidError: CommandStatus.QUEUE_INDEX_INVALID,
    SeekOutOfRangeError: CommandStatus.SEEK_OUT_OF_RANGE,
    InvalidOperationError: CommandStatus.INVALID_STATE,
}


class PlaybackController:
    """State machine for one audio session driven by a FIFO of commands."""

    def __init__(
        self,
        *,
        decoder_factory: DecoderFactory,
        output: AudioOutput,
        channel: EventChannel,
        queue: PlaybackQueue | None = None,
        volume: float = 0.5,
        decode_retries: int = AudioConstants.DECODE_RETRIES,
        position_interval: float = EventConstants.DEFAULT_POSITION_INTERVAL_SECONDS,
    ) -> None:
        self._decoder_factory = decoder_factory
        self._output = output
        self._format = output.audio_format
        self._channel = channel
        self._queue = queue if queue is not None else PlaybackQueue()
        self._volume = PlaybackDomainService.clamp_volume(volume)
        self._decode_retries = max(0, decode_retries)
        self._position_interval = max(0.0, position_interval)

        self._state = PlaybackState.IDLE
        self._generation = 0
        self._session = _Session(generation=0)

        self._lock = asyncio.Lock()
        self._wake = asyncio.Event()
        self._commands: asyncio.Queue[tuple[Command, asyncio.Future[CommandResult] | None]] = (
            asyncio.Queue()
        )
        self._in_flight: AudioDecoder | None = None
        self._retired: list[AudioDecoder] = []
        self._last_position_emit = 0.0
        self._failure_run = 0

        self._worker_task: asyncio.Task[None] | None = None
        self._loop_task: asyncio.Task[None] | None = None
        self._closed = False

        self._handlers: dict[type[Command], Callable[[Any], Awaitable[CommandResult]]] = {
            Play: self._handle_play,
            Pause: self._handle_pause,
            Resume: self._handle_resume,
            TogglePause: self._handle_toggle_pause,
            Stop: self._handle_stop,
            Seek: self._handle_seek,
            SeekRelative: self._handle_seek_relative,
            Next: self._handle_next,
            Previous: self._handle_previous,
            JumpTo: self._handle_jump_to,
            SetVolume: self._handle_set_volume,
            AdjustVolume: self._handle_adjust_volume,
            Enqueue: self._handle_enqueue,
            Extend: self._handle_extend,
            RemoveAt: self._handle_remove_at,
            Move: self._handle_move,
            ClearQueue: self._handle_clear_queue,
            SetOrderingMode: self._handle_set_ordering_mode,
            SetRepeatMode: self._handle_set_repeat_mode,
            Reshuffle: self._handle_reshuffle,
            LoadQueue: self._handle_load_queue,
            _TrackEnded: self._handle_track_ended,
            _DecodeFailed: self._handle_decode_failed,
            _DeviceFailed: self._handle_device_failed,
        }

    # === Lifecycle ===

    @property
    def is_running(self) -> bool:
        return self._worker_task is not None and not self._closed

    async def start(self) -> None:
        if self._worker_task is not None:
            return
        if self._closed:
            raise RuntimeError(ErrorMessages.CONTROLLER_CLOSED)
        self._worker_task = asyncio.create_task(self._command_worker(), name="command-worker")
        self._loop_task = asyncio.create_task(self._delivery_loop(), name="delivery-loop")
        logger.info(LogTemplates.CONTROLLER_STARTED)

    async def shutdown(self) -> None:
        """Stop both tasks and release the decoder and the output device.

        No events are emitted after this returns; pending commands resolve
        with a CLOSED result.
        """
        if self._closed:
            return
        self._closed = True

        tasks = [t for t in (self._worker_task, self._loop_task) if t is not None]
        for task in tasks:
            task.cancel()

        # Closing the output releases a write blocked in a worker thread.
        await asyncio.to_thread(self._close_output)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        while not self._commands.empty():
            _, future = self._commands.get_nowait()
            if future is not None and not future.done():
                future.set_result(
                    CommandResult.error(CommandStatus.CLOSED, ErrorMessages.CONTROLLER_CLOSED)
                )

        decoders = list(self._retired)
        self._retired.clear()
        if self._session.decoder is not None:
            decoders.append(self._session.decoder)
        self._session = _Session(generation=self._generation)
        for decoder in decoders:
            await asyncio.to_thread(self._close_decoder, decoder)

        logger.info(LogTemplates.CONTROLLER_STOPPED)

    async def __aenter__(self) -> PlaybackController:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.shutdown()

    # === Command surface ===

    def submit(self, command: Command) -> asyncio.Future[CommandResult]:
        """Queue a command and return a future for its result."""
        future: asyncio.Future[CommandResult] = asyncio.get_running_loop().create_future()
        if self._closed:
            future.set_result(
                CommandResult.error(CommandStatus.CLOSED, ErrorMessages.CONTROLLER_CLOSED)
            )
            return future
        self._commands.put_nowait((command, future))
        return future

    async def execute(self, command: Command) -> CommandResult:
        """Queue a command and wait for its result."""
        return await self.submit(command)

    async def join(self) -> None:
        """Wait until every queued command, internal ones included, has run."""
        await self._commands.join()

    async def play(self, track: Track | None = None) -> CommandResult:
        return await self.execute(Play(track))

    async def pause(self) -> CommandResult:
        return await self.execute(Pause())

    async def resume(self) -> CommandResult:
        return await self.execute(Resume())

    async def toggle_pause(self) -> CommandResult:
        return await self.execute(TogglePause())

    async def stop(self) -> CommandResult:
        return await self.execute(Stop())

    async def seek(self, target_seconds: float) -> CommandResult:
        return await self.execute(Seek(target_seconds))

    async def seek_relative(self, delta_seconds: float) -> CommandResult:
        return await self.execute(SeekRelative(delta_seconds))

    async def next(self) -> CommandResult:
        return await self.execute(Next())

    async def previous(self) -> CommandResult:
        return await self.execute(Previous())

    async def jump_to(self, index: int) -> CommandResult:
        return await self.execute(JumpTo(index))

    async def set_volume(self, level: float) -> CommandResult:
        return await self.execute(SetVolume(level))

    async def adjust_volume(self, delta: float) -> CommandResult:
        return await self.execute(AdjustVolume(delta))

    async def enqueue(self, track: Track) -> CommandResult:
        return await self.execute(Enqueue(track))

    async def extend(self, tracks: list[Track]) -> CommandResult:
        return await self.execute(Extend(tracks))

    async def remove_at(self, index: int) -> CommandResult:
        return await self.execute(RemoveAt(index))

    async def move(self, from_index: int, to_index: int) -> CommandResult:
        return await self.execute(Move(from_index, to_index))

    async def clear_queue(self) -> CommandResult:
        return await self.execute(ClearQueue())

    async def set_ordering_mode(self, mode: OrderingMode | None = None) -> CommandResult:
        return await self.execute(SetOrderingMode(mode))

    async def set_repeat_mode(self, repeat: RepeatMode | None = None) -> CommandResult:
        return await self.execute(SetRepeatMode(repeat))

    async def reshuffle(self) -> CommandResult:
        return await self.execute(Reshuffle())

    async def load_queue(self, saved: SavedQueue) -> CommandResult:
        return await self.execute(LoadQueue(saved))

    # === Query surface ===

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def volume(self) -> float:
        return self._volume

    def snapshot(self) -> PlayerSnapshot:
        session = self._session
        return PlayerSnapshot(
            state=self._state,
            track=session.track,
            position=session.position,
            duration=session.duration,
            volume=self._volume,
            tracks=list(self._queue.tracks),
            cursor=self._queue.cursor,
            mode=self._queue.mode,
            repeat=self._queue.repeat,
            generation=self._generation,
        )

    def export_queue(self) -> SavedQueue:
        """Capture the queue and volume for persistence."""
        return self._queue.to_saved(self._volume)

    # === Command worker ===

    async def _command_worker(self) -> None:
        while True:
            command, future = await self._commands.get()
            try:
                result = await self._dispatch(command)
            except asyncio.CancelledError:
                if future is not None and not future.done():
                    future.set_result(
                        CommandResult.error(CommandStatus.CLOSED, ErrorMessages.CONTROLLER_CLOSED)
                    )
                raise
            except Exception:
                logger.exception(LogTemplates.COMMAND_UNEXPECTED_ERROR, command.name)
                result = CommandResult.error(
                    CommandStatus.ERROR,
                    ErrorMessages.UNEXPECTED_COMMAND_ERROR.format(command=command.name),
                )
            finally:
                self._commands.task_done()

            if future is not None and not future.done():
                future.set_result(result)

    async def _dispatch(self, command: Command) -> CommandResult:
        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f"Unsupported command: {command!r}")

        logger.debug(LogTemplates.COMMAND_RECEIVED, command.name)
        async with self._lock:
            try:
                return await handler(command)
            except DomainError as e:
                status = _ERROR_STATUS.get(type(e), CommandStatus.ERROR)
                logger.info(LogTemplates.COMMAND_FAILED, command.name, e.message)
                return CommandResult.error(status, e.message)

    # === Transport handlers ===

    async def _handle_play(self, command: Play) -> CommandResult:
        if command.track is not None:
            index = self._queue.index_of(command.track)
            if index is None:
                index = self._queue.append(command.track)
                logger.info(LogTemplates.QUEUE_APPENDED, 1, self._queue.length)
                self._emit_queue_changed()
            await self._finish_current(TrackFinishReason.SKIPPED)
            self._queue.jump_to(index)
            return await self._start_from_cursor()

        if self._state == PlaybackState.PAUSED:
            return await self._handle_resume(Resume())
        if self._state == PlaybackState.PLAYING:
            return CommandResult.success(track=self._session.track)

        start = self._queue.start_index()
        if start is None:
            raise NoTrackAvailableError()
        self._queue.jump_to(start)
        return await self._start_from_cursor()

    async def _handle_pause(self, command: Pause) -> CommandResult:
        if self._state == PlaybackState.PAUSED:
            return CommandResult.success(track=self._session.track)
        if self._state != PlaybackState.PLAYING:
            raise InvalidOperationError("pause", self._state.value)

        self._set_state(PlaybackState.PAUSED)
        logger.info(LogTemplates.PLAYBACK_PAUSED, self._session.position)
        return CommandResult.success(track=self._session.track, value=self._session.position)

    async def _handle_resume(self, command: Resume) -> CommandResult:
        if self._state == PlaybackState.PLAYING:
            return CommandResult.success(track=self._session.track)
        if self._state != PlaybackState.PAUSED:
            raise InvalidOperationError("resume", self._state.value)

        self._set_state(PlaybackState.PLAYING)
        self._wake.set()
        logger.info(LogTemplates.PLAYBACK_RESUMED, self._session.position)
        return CommandResult.success(track=self._session.track, value=self._session.position)

    async def _handle_toggle_pause(self, command: TogglePause) -> CommandResult:
        if self._state == PlaybackState.PLAYING:
            return await self._handle_pause(Pause())
        if self._state == PlaybackState.PAUSED:
            return await self._handle_resume(Resume())
        return await self._handle_play(Play())

    async def _handle_stop(self, command: Stop) -> CommandResult:
        await self._finish_current(TrackFinishReason.STOPPED)
        self._set_state(PlaybackState.STOPPED)
        logger.info(LogTemplates.PLAYBACK_STOPPED)
        return CommandResult.success()

    async def _handle_seek(self, command: Seek) -> CommandResult:
        return self._request_seek(command.target_seconds)

    async def _handle_seek_relative(self, command: SeekRelative) -> CommandResult:
        if self._session.decoder is None:
            return CommandResult.error(CommandStatus.NOTHING_LOADED, ErrorMessages.NOTHING_LOADED)
        return self._request_seek(max(0.0, self._session.position + command.delta_seconds))

    async def _handle_next(self, command: Next) -> CommandResult:
        if self._queue.is_empty:
            raise NoTrackAvailableError()
        current = self._session.track
        track = self._queue.advance()
        await self._finish_current(TrackFinishReason.SKIPPED)
        if track is None:
            return self._exhaust(current or self._queue.current)
        return await self._start_from_cursor()

    async def _handle_previous(self, command: Previous) -> CommandResult:
        if self._queue.is_empty:
            raise NoTrackAvailableError()
        current = self._session.track
        track = self._queue.retreat()
        await self._finish_current(TrackFinishReason.SKIPPED)
        if track is None:
            return self._exhaust(current or self._queue.current)
        return await self._start_from_cursor()

    async def _handle_jump_to(self, command: JumpTo) -> CommandResult:
        self._queue.get(command.index)
        await self._finish_current(TrackFinishReason.SKIPPED)
        self._queue.jump_to(command.index)
        return await self._start_from_cursor()

    async def _handle_set_volume(self, command: SetVolume) -> CommandResult:
        return self._apply_volume(command.level)

    async def _handle_adjust_volume(self, command: AdjustVolume) -> CommandResult:
        return self._apply_volume(self._volume + command.delta)

    # === Queue handlers ===

    async def _handle_enqueue(self, command: Enqueue) -> CommandResult:
        index = self._queue.append(command.track)
        logger.info(LogTemplates.QUEUE_APPENDED, 1, self._queue.length)
        self._emit_queue_changed()
        return CommandResult.success(track=command.track, value=index)

    async def _handle_extend(self, command: Extend) -> CommandResult:
        added = self._queue.extend(command.tracks)
        logger.info(LogTemplates.QUEUE_APPENDED, added, self._queue.length)
        if added:
            self._emit_queue_changed()
        return CommandResult.success(value=added)

    async def _handle_remove_at(self, command: RemoveAt) -> CommandResult:
        self._queue.get(command.index)
        if self._state.is_active and command.index == self._queue.cursor:
            await self._finish_current(TrackFinishReason.REMOVED)
            self._set_state(PlaybackState.STOPPED)

        removed = self._queue.remove_at(command.index)
        logger.info(LogTemplates.QUEUE_REMOVED, removed.display_title, command.index)
        self._emit_queue_changed()
        return CommandResult.success(track=removed)

    async def _handle_move(self, command: Move) -> CommandResult:
        self._queue.move(command.from_index, command.to_index)
        logger.info(LogTemplates.QUEUE_MOVED, command.from_index, command.to_index)
        self._emit_queue_changed()
        return CommandResult.success()

    async def _handle_clear_queue(self, command: ClearQueue) -> CommandResult:
        if self._state.is_active:
            await self._finish_current(TrackFinishReason.REMOVED)
            self._set_state(PlaybackState.STOPPED)
        count = self._queue.clear()
        logger.info(LogTemplates.QUEUE_CLEARED, count)
        self._emit_queue_changed()
        return CommandResult.success(value=count)

    async def _handle_set_ordering_mode(self, command: SetOrderingMode) -> CommandResult:
        mode = command.mode if command.mode is not None else self._queue.mode.toggled()
        self._queue.set_mode(mode)
        logger.info(
            LogTemplates.QUEUE_MODE_CHANGED, self._queue.mode.value, self._queue.repeat.value
        )
        self._emit_queue_changed()
        return CommandResult.success()

    async def _handle_set_repeat_mode(self, command: SetRepeatMode) -> CommandResult:
        repeat = command.repeat if command.repeat is not None else self._queue.repeat.next_mode()
        self._queue.set_repeat(repeat)
        logger.info(
            LogTemplates.QUEUE_MODE_CHANGED, self._queue.mode.value, self._queue.repeat.value
        )
        self._emit_queue_changed()
        return CommandResult.success()

    async def _handle_reshuffle(self, command: Reshuffle) -> CommandResult:
        if not self._queue.reshuffle():
            raise InvalidOperationError("reshuffle", self._queue.mode.value)
        logger.info(LogTemplates.QUEUE_RESHUFFLED, self._queue.length)
        self._emit_queue_changed()
        return CommandResult.success()

    async def _handle_load_queue(self, command: LoadQueue) -> CommandResult:
        if self._state.is_active:
            await self._finish_current(TrackFinishReason.STOPPED)
            self._set_state(PlaybackState.STOPPED)

        self._queue.clear()
        self._queue.extend(command.saved.tracks)
        if command.saved.cursor is not None and command.saved.cursor < self._queue.length:
            self._queue.jump_to(command.saved.cursor)
        self._queue.set_repeat(command.saved.repeat)
        self._queue.set_mode(command.saved.mode)
        logger.info(LogTemplates.QUEUE_RESTORED, self._queue.length, self._queue.cursor)
        self._emit_queue_changed()
        self._apply_volume(command.saved.volume)
        return CommandResult.success(value=self._queue.length)

    # === Internal handlers ===

    async def _handle_track_ended(self, command: _TrackEnded) -> CommandResult:
        session = self._session
        if not self._is_current(command.generation, "end-of-track") or not session.ended:
            return CommandResult.success()

        finished = session.track
        await self._finish_current(TrackFinishReason.COMPLETED)
        if QueueDomainService.replays_on_finish(self._queue):
            return await self._start_from_cursor(continuing=True)

        if self._queue.advance() is None:
            return self._exhaust(finished)
        return await self._start_from_cursor(continuing=True)

    async def _handle_decode_failed(self, command: _DecodeFailed) -> CommandResult:
        if not self._is_current(command.generation, "decode failure"):
            return CommandResult.success()

        track = self._session.track
        logger.error(LogTemplates.DECODE_GAVE_UP, track.path if track else "?", command.error)
        self._emit(
            PlaybackError(
                kind=ErrorKind.DECODE_ERROR,
                track=track,
                message=ErrorMessages.DECODE_FAILED.format(
                    path=track.path if track else "?", error=command.error
                ),
            )
        )
        await self._finish_current(TrackFinishReason.ERROR)
        self._failure_run += 1
        if self._failure_run >= self._queue.length or self._queue.advance() is None:
            return self._exhaust(track)
        return await self._start_from_cursor(continuing=True)

    async def _handle_device_failed(self, command: _DeviceFailed) -> CommandResult:
        if not self._is_current(command.generation, "device failure"):
            return CommandResult.success()

        track = self._session.track
        logger.error(LogTemplates.DEVICE_ERROR, command.error)
        self._emit(
            PlaybackError(
                kind=ErrorKind.DEVICE_ERROR,
                track=track,
                message=ErrorMessages.DEVICE_FAILED.format(error=command.error),
            )
        )
        await self._finish_current(TrackFinishReason.ERROR)
        self._set_state(PlaybackState.STOPPED)
        return CommandResult.success()

    # === Session helpers (called with the step lock held) ===

    async def _start_from_cursor(self, *, continuing: bool = False) -> CommandResult:
        """Load the track at the cursor, skipping undecodable ones.

        Consecutive failures, whether on open or mid-stream, are counted until
        a block reaches the device. A run as long as the queue ends exhausted
        instead of spinning. ``continuing`` keeps the count of the run that
        led here; user commands start a fresh one.
        """
        if not continuing:
            self._failure_run = 0
        track = self._queue.current
        while track is not None:
            decoder = await self._open_decoder(track)
            if decoder is not None:
                return self._install(track, decoder)

            self._failure_run += 1
            if self._failure_run >= self._queue.length:
                break
            track = self._queue.advance()

        return self._exhaust(self._queue.current)

    async def _open_decoder(self, track: Track) -> AudioDecoder | None:
        attempts = self._decode_retries + 1
        for attempt in range(attempts):
            try:
                decoder = await asyncio.to_thread(self._decoder_factory.open, track, self._format)
            except DecodeError as e:
                if attempt + 1 < attempts:
                    logger.warning(LogTemplates.DECODE_RETRY, track.path, e)
                    continue
                logger.error(LogTemplates.DECODE_GAVE_UP, track.path, e)
                self._emit(
                    PlaybackError(
                        kind=ErrorKind.DECODE_ERROR,
                        track=track,
                        message=ErrorMessages.DECODE_FAILED.format(path=track.path, error=e),
                    )
                )
                return None
            logger.debug(LogTemplates.DECODER_OPENED, track.path, decoder.duration)
            return decoder
        return None

    def _install(self, track: Track, decoder: AudioDecoder) -> CommandResult:
        duration = decoder.duration if decoder.duration is not None else track.duration_seconds
        refined = track.with_duration(duration)
        if refined is not track and self._queue.cursor is not None:
            self._queue.refine(self._queue.cursor, refined)

        self._generation += 1
        self._session = _Session(
            generation=self._generation,
            decoder=decoder,
            track=refined,
            duration=duration,
        )
        self._last_position_emit = 0.0

        logger.info(LogTemplates.TRACK_STARTED, refined.display_title, self._generation)
        self._emit(TrackStarted(track=refined, duration=duration, generation=self._generation))
        self._set_state(PlaybackState.PLAYING)
        self._wake.set()
        return CommandResult.success(track=refined)

    async def _finish_current(self, reason: TrackFinishReason) -> None:
        """Emit TrackFinished for the loaded track and release its decoder."""
        session = self._session
        if session.track is not None:
            logger.info(
                LogTemplates.TRACK_FINISHED,
                session.track.display_title,
                session.position,
                reason.value,
            )
            self._emit(
                TrackFinished(
                    track=session.track,
                    elapsed=session.position,
                    duration=session.duration,
                    reason=reason,
                )
            )
        await self._release_session()

    async def _release_session(self) -> None:
        decoder = self._session.decoder
        self._generation += 1
        self._session = _Session(generation=self._generation)
        if decoder is None:
            return
        if decoder is self._in_flight:
            # The loop is using it in a worker thread; it closes it once done.
            self._retired.append(decoder)
        else:
            await asyncio.to_thread(self._close_decoder, decoder)

    def _exhaust(self, last_track: Track | None) -> CommandResult:
        logger.info(LogTemplates.QUEUE_EXHAUSTED, last_track.display_title if last_track else "-")
        self._emit(QueueExhausted(last_track=last_track))
        self._set_state(PlaybackState.STOPPED)
        return CommandResult.success(ErrorMessages.QUEUE_EXHAUSTED)

    def _request_seek(self, target: float) -> CommandResult:
        session = self._session
        if session.decoder is None:
            return CommandResult.error(CommandStatus.NOTHING_LOADED, ErrorMessages.NOTHING_LOADED)

        clamped = PlaybackDomainService.clamp_seek(target, session.duration)
        session.position = clamped
        session.pending_seek = clamped
        session.stashed = None
        session.ended = False
        self._wake.set()
        logger.debug(LogTemplates.SEEK_REQUESTED, clamped, session.generation)
        return CommandResult.success(track=session.track, value=clamped)

    def _apply_volume(self, level: float) -> CommandResult:
        self._volume = PlaybackDomainService.clamp_volume(level)
        logger.info(LogTemplates.VOLUME_CHANGED, self._volume)
        self._emit(VolumeChanged(level=self._volume))
        return CommandResult.success(value=self._volume)

    def _set_state(self, state: PlaybackState) -> None:
        previous = self._state
        if previous == state:
            return
        if not previous.can_transition_to(state):
            raise InvalidOperationError(state.value, previous.value)
        self._state = state
        self._emit(PlaybackStateChanged(state=state, previous=previous))

    def _is_current(self, generation: int, what: str) -> bool:
        if generation == self._session.generation and self._session.decoder is not None:
            return True
        logger.debug(LogTemplates.STALE_RESULT_DISCARDED, what, generation, self._generation)
        return False

    def _emit(self, event: MusicEvent) -> None:
        if self._closed:
            return
        self._channel.publish(event)

    def _emit_queue_changed(self) -> None:
        self._emit(
            QueueChanged(
                length=self._queue.length,
                cursor=self._queue.cursor,
                mode=self._queue.mode,
                repeat=self._queue.repeat,
            )
        )

    # === Delivery loop ===

    async def _delivery_loop(self) -> None:
        while True:
            try:
                await self._delivery_step()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(LogTemplates.DELIVERY_LOOP_CRASHED)
                self._in_flight = None
                await asyncio.sleep(self._format.block_seconds)

    async def _delivery_step(self) -> None:
        await self._close_retired()

        async with self._lock:
            session = self._session
            decoder = session.decoder
            runnable = decoder is not None and not session.ended and (
                self._state == PlaybackState.PLAYING or session.pending_seek is not None
            )
            if not runnable:
                self._wake.clear()
            else:
                generation = session.generation
                seek_to = session.pending_seek
                session.pending_seek = None
                block = None if seek_to is not None else session.stashed
                session.stashed = None
                self._in_flight = decoder

        if not runnable:
            await self._wake.wait()
            return
        assert decoder is not None

        if seek_to is not None:
            await self._apply_seek(decoder, generation, seek_to)
            return

        if block is None:
            try:
                block = await asyncio.to_thread(decoder.read_block)
            except DecodeError as e:
                await self._on_read_failure(generation, e)
                return

        async with self._lock:
            self._in_flight = None
            session = self._session
            if session.generation != generation:
                logger.debug(
                    LogTemplates.STALE_RESULT_DISCARDED, "block", generation, self._generation
                )
                return
            if session.pending_seek is not None:
                return
            if block is None:
                session.ended = True
                self._commands.put_nowait((_TrackEnded(generation=generation), None))
                return
            if self._state != PlaybackState.PLAYING:
                session.stashed = block
                return
            gain = self._volume
            session.read_failures = 0
            self._failure_run = 0

        try:
            if not self._output.is_open:
                await asyncio.to_thread(self._output.open)
            await asyncio.to_thread(self._output.write, block.with_gain(gain))
        except DeviceError as e:
            await asyncio.to_thread(self._close_output)
            async with self._lock:
                if self._session.generation == generation:
                    self._session.ended = True
                    self._commands.put_nowait(
                        (_DeviceFailed(generation=generation, error=str(e)), None)
                    )
            return

        async with self._lock:
            session = self._session
            if session.generation != generation or session.pending_seek is not None:
                return
            session.position = max(session.position, block.end)
            if self._state == PlaybackState.PLAYING:
                self._maybe_emit_position(session)

    async def _apply_seek(self, decoder: AudioDecoder, generation: int, target: float) -> None:
        try:
            reached = await asyncio.to_thread(decoder.seek, target)
        except DecodeError as e:
            await self._on_read_failure(generation, e)
            return

        async with self._lock:
            self._in_flight = None
            session = self._session
            if session.generation != generation:
                logger.debug(
                    LogTemplates.STALE_RESULT_DISCARDED, "seek", generation, self._generation
                )
                return
            if session.pending_seek is not None:
                # A newer seek landed while this one was running.
                return
            session.position = reached
            logger.debug(LogTemplates.SEEK_APPLIED, reached)
            self._emit(PositionChanged(elapsed=reached, duration=session.duration))
            self._last_position_emit = time.monotonic()

    async def _on_read_failure(self, generation: int, error: DecodeError) -> None:
        async with self._lock:
            self._in_flight = None
            session = self._session
            if session.generation != generation:
                return
            session.read_failures += 1
            if session.read_failures <= self._decode_retries:
                logger.warning(
                    LogTemplates.DECODE_RETRY, session.track.path if session.track else "?", error
                )
                return
            session.ended = True
            self._commands.put_nowait(
                (_DecodeFailed(generation=generation, error=str(error)), None)
            )

    def _maybe_emit_position(self, session: _Session) -> None:
        now = time.monotonic()
        if self._position_interval and now - self._last_position_emit < self._position_interval:
            return
        self._last_position_emit = now
        self._emit(PositionChanged(elapsed=session.position, duration=session.duration))

    async def _close_retired(self) -> None:
        async with self._lock:
            if self._in_flight is not None or not self._retired:
                return
            retired = list(self._retired)
            self._retired.clear()
        for decoder in retired:
            await asyncio.to_thread(self._close_decoder, decoder)

    def _close_decoder(self, decoder: AudioDecoder) -> None:
        try:
            decoder.close()
        except DecodeError as e:
            logger.warning(LogTemplates.DECODER_CLOSE_FAILED, type(decoder).__name__, e)
        else:
            logger.debug(LogTemplates.DECODER_CLOSED, type(decoder).__name__)

    def _close_output(self) -> None:
        if not self._output.is_open:
            return
        try:
            self._output.close()
        except DeviceError as e:
            logger.warning(LogTemplates.DEVICE_ERROR, e)
