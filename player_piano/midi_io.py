"""Record event streams as standard MIDI files.

Modification summary
--------------------
* Events are laid out on a fixed grid: event ``i`` starts at
  ``i * tick_ms`` milliseconds, mirroring the cadence at which the transport
  pushes them to clients.
* Multi-note events are voiced according to their type: chords and
  counterpoint sound together, arpeggios are staggered by ``step_ms`` and
  gestures such as insect bursts or animal calls play note after note.
* Pedal changes become control changes 64 (sustain), 66 (sostenuto) and
  67 (soft); ``allNotesOff`` becomes control change 123.
* Imports from ``mido`` are deferred so the engine and HTTP transport load
  even when the optional dependency is missing.

Example
-------
>>> from player_piano.engine import MusicEngine
>>> engine = MusicEngine(seed=3)
>>> events = [engine.generate_event() for _ in range(50)]
>>> record_events(events, "stream.mid")  # doctest: +SKIP
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, List, Tuple

if TYPE_CHECKING:
    from mido import Message, MidiFile

from .events import MidiEvent, Note

__all__ = [
    "event_to_messages",
    "record_events",
    "ms_to_ticks",
    "PEDAL_CONTROLLERS",
    "ALL_NOTES_OFF_CONTROLLER",
    "TICKS_PER_BEAT",
]

logger = logging.getLogger(__name__)

TICKS_PER_BEAT = 480
# The file tempo is fixed at 120 BPM so one beat lasts 500 ms.
MS_PER_BEAT = 500.0

PEDAL_CONTROLLERS = {"sustain": 64, "sostenuto": 66, "soft": 67}
ALL_NOTES_OFF_CONTROLLER = 123

# Types whose notes sound together; anything else with several notes is
# played one note after another.
_SIMULTANEOUS_TYPES = {"chord", "counterpoint"}
_SIMULTANEOUS_GESTURES = {"harmony", "slam"}


def _import_mido():
    try:
        import mido
    except ModuleNotFoundError as exc:
        raise ImportError(
            "mido is required to record MIDI files; install it with 'pip install mido'"
        ) from exc
    return mido


def ms_to_ticks(ms: float) -> int:
    """Convert milliseconds to MIDI ticks at the fixed file tempo."""

    return max(0, int(round(ms * TICKS_PER_BEAT / MS_PER_BEAT)))


def _onsets(event: MidiEvent) -> List[float]:
    """Return the start offset in milliseconds of every sounding note."""

    notes = event.sounding_notes
    if event.type in _SIMULTANEOUS_TYPES:
        return [0.0] * len(notes)
    if event.type == "furniture" and getattr(event, "gesture", "") in _SIMULTANEOUS_GESTURES:
        return [0.0] * len(notes)
    if event.type == "arpeggio":
        return [index * event.step_ms for index in range(len(notes))]
    if event.type == "parallel-motion":
        # Notes come in (lower, upper) pairs that sound together.
        onsets = []
        clock = 0.0
        for index, note in enumerate(notes):
            onsets.append(clock)
            if index % 2 == 1:
                clock += note.duration
        return onsets
    onsets = []
    clock = 0.0
    for note in notes:
        onsets.append(clock)
        clock += note.duration
    return onsets


def event_to_messages(event: MidiEvent, channel: int = 0) -> List[Tuple[int, "Message"]]:
    """Translate ``event`` into ``(tick_offset, Message)`` pairs.

    Offsets are absolute ticks relative to the start of the event. Silence
    produces no messages.
    """

    mido = _import_mido()
    messages: List[Tuple[int, "Message"]] = []
    if event.type == "pedal":
        pedal = event.pedal
        control = PEDAL_CONTROLLERS.get(pedal.type)
        if control is None:
            logger.debug("Skipping unknown pedal %r", pedal.type)
            return messages
        value = max(0, min(127, int(round(pedal.value * 127))))
        messages.append((0, mido.Message("control_change", channel=channel, control=control, value=value)))
        return messages
    if event.type == "allNotesOff":
        messages.append(
            (0, mido.Message("control_change", channel=channel, control=ALL_NOTES_OFF_CONTROLLER, value=0))
        )
        return messages

    notes: Tuple[Note, ...] = event.sounding_notes
    for onset, note in zip(_onsets(event), notes):
        start = ms_to_ticks(onset)
        stop = start + max(1, ms_to_ticks(note.duration))
        pitch = max(0, min(127, note.midi_number))
        velocity = max(1, min(127, note.velocity))
        messages.append((start, mido.Message("note_on", channel=channel, note=pitch, velocity=velocity)))
        messages.append((stop, mido.Message("note_off", channel=channel, note=pitch, velocity=0)))
    return messages


def record_events(events: Iterable[MidiEvent], output_file: str, tick_ms: float = 120.0) -> "MidiFile":
    """Write ``events`` to ``output_file`` and return the ``MidiFile``.

    Parameters
    ----------
    events:
        Events in stream order.
    output_file:
        Destination path; missing parent directories are created.
    tick_ms:
        Spacing between consecutive events in milliseconds.

    Raises
    ------
    ValueError
        If ``tick_ms`` is not positive.
    """

    mido = _import_mido()
    if tick_ms <= 0:
        raise ValueError("tick_ms must be positive")

    mid = mido.MidiFile(type=1, ticks_per_beat=TICKS_PER_BEAT)
    track = mido.MidiTrack()
    mid.tracks.append(track)
    track.append(mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(60000.0 / MS_PER_BEAT), time=0))
    track.append(mido.Message("program_change", program=0, time=0))

    # Collect absolute ticks first, then convert to deltas once sorted. Note
    # offs sort before note ons on the same tick so repeated pitches retrigger.
    timeline: List[Tuple[int, int, int, "Message"]] = []
    sequence = 0
    for index, event in enumerate(events):
        base = ms_to_ticks(index * tick_ms)
        for offset, message in event_to_messages(event):
            order = 0 if message.type == "note_off" else 1
            timeline.append((base + offset, order, sequence, message))
            sequence += 1
    timeline.sort(key=lambda item: item[:3])

    current = 0
    for tick, _order, _seq, message in timeline:
        track.append(message.copy(time=tick - current))
        current = tick

    Path(output_file).expanduser().parent.mkdir(parents=True, exist_ok=True)
    mid.save(output_file)
    logger.info("MIDI file saved to %s", output_file)
    return mid
