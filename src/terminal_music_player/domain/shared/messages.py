"""Centralized message constants for error messages, validation, and user feedback."""

from __future__ import annotations


class ErrorMessages:
    """Error messages for exceptions, command results and validation failures."""

    # Track Validation Errors
    EMPTY_TRACK_PATH = "Track path cannot be empty"

    # Queue Errors
    NO_TRACK_AVAILABLE = "Queue is empty and no track was given"
    QUEUE_INDEX_INVALID = "Queue index {index} is out of range (queue length {length})"
    QUEUE_EXHAUSTED = "No more tracks in queue"

    # Playback Errors
    NOTHING_LOADED = "No track is loaded"
    SEEK_OUT_OF_RANGE = "Cannot seek to {target:.2f}s: duration is unknown"
    INVALID_STATE = "Cannot {operation} while {state}"
    DECODE_FAILED = "Failed to decode '{path}': {error}"
    DEVICE_FAILED = "Audio output device failed: {error}"
    EVENTS_DROPPED = "{count} events dropped for a slow subscriber"
    CONTROLLER_CLOSED = "Playback controller is shut down"
    SUBSCRIPTION_CLOSED = "Subscription {name} is closed"
    UNEXPECTED_COMMAND_ERROR = "Unexpected error while handling {command}"

    # Audio Backend Errors
    NO_AUDIO_STREAM = "No audio stream in '{path}'"
    FILE_NOT_FOUND = "Audio file not found: {path}"
    FILE_EMPTY = "Audio file is empty: {path}"

    # Settings Validation Errors
    INVALID_DATABASE_URL = "Database URL must start with sqlite://"
    INVALID_LOG_LEVEL = "Invalid log level: {level}. Must be one of {valid_levels}"

    # Time/Date Validation Errors
    TIMEZONE_REQUIRED_UTC_DATETIME = "UtcDateTime requires a timezone-aware datetime"


class LogTemplates:
    """Log message templates for structured logging.

    Use these with logger.info(), logger.error(), etc. and pass values as parameters
    for proper log formatting and structured logging support.
    """

    # Database Lifecycle
    DATABASE_INITIALIZED = "Database initialized at %s"
    DATABASE_CLOSED = "Database manager closed"
    QUEUE_SAVED = "Saved queue (%d tracks, cursor=%s)"
    QUEUE_RESTORED = "Restored queue (%d tracks, cursor=%s)"
    QUEUE_DELETED = "Deleted persisted queue"

    # Controller Lifecycle
    CONTROLLER_STARTED = "Playback controller started"
    CONTROLLER_STOPPED = "Playback controller shut down"
    COMMAND_RECEIVED = "Command received: %s"
    COMMAND_FAILED = "Command %s failed: %s"
    COMMAND_UNEXPECTED_ERROR = "Unexpected error while handling %s"

    # Playback Operations
    TRACK_STARTED = "Started playing '%s' (generation %d)"
    TRACK_FINISHED = "Finished '%s' at %.2fs (%s)"
    PLAYBACK_PAUSED = "Paused playback at %.2fs"
    PLAYBACK_RESUMED = "Resumed playback at %.2fs"
    PLAYBACK_STOPPED = "Stopped playback"
    SEEK_REQUESTED = "Seek to %.2fs requested (generation %d)"
    SEEK_APPLIED = "Seek to %.2fs applied"
    VOLUME_CHANGED = "Volume set to %.2f"
    QUEUE_EXHAUSTED = "Queue exhausted after '%s'"
    STALE_RESULT_DISCARDED = "Discarding stale %s from generation %d (current %d)"

    # Queue Operations
    QUEUE_APPENDED = "Appended %d track(s), queue length %d"
    QUEUE_REMOVED = "Removed '%s' at index %d"
    QUEUE_MOVED = "Moved index %d to %d"
    QUEUE_CLEARED = "Cleared %d track(s) from queue"
    QUEUE_MODE_CHANGED = "Queue ordering mode: %s, repeat: %s"
    QUEUE_RESHUFFLED = "Started a new shuffle rotation over %d track(s)"

    # Audio Backend
    DECODER_OPENED = "Opened decoder for '%s' (duration=%s)"
    DECODER_CLOSED = "Closed decoder for '%s'"
    DECODER_CLOSE_FAILED = "Failed to close decoder for '%s': %s"
    DECODE_RETRY = "Decoding '%s' failed (%s), retrying once"
    DECODE_GAVE_UP = "Giving up on '%s': %s"
    DEVICE_OPENED = "Opened output device %s (%d Hz, %d channels)"
    DEVICE_CLOSED = "Closed output device"
    DEVICE_UNDERFLOW = "Output underflow"
    DEVICE_ERROR = "Output device error: %s"
    DELIVERY_LOOP_CRASHED = "Delivery loop crashed"

    # Events
    EVENTS_DROPPED = "Subscriber %s overflowed, dropped oldest event (%d pending drops)"
    LISTENER_FAILED = "Error in event listener for %s"

    # Scrobbling
    SCROBBLE_NOW_PLAYING = "Now playing: '%s'"
    SCROBBLE_SUBMITTED = "Scrobbled '%s' (%.0fs of %.0fs)"
    SCROBBLE_SKIPPED = "Not scrobbling '%s' (%.0fs of %s)"
    SCROBBLE_FAILED = "Scrobble submission failed for '%s'"

    # Application Lifecycle
    APP_STARTING = "Starting terminal music player (environment: {environment})"
    APP_STOPPED = "Player stopped"
    APP_KEYBOARD_INTERRUPT = "Received keyboard interrupt, shutting down"
    APP_FATAL_ERROR = "Fatal error: %s"
