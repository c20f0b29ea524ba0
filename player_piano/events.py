"""Event descriptors emitted by the engine.

Each tick produces exactly one :class:`MidiEvent`. The event family is a
closed tagged union: every concrete class carries a ``type`` tag and converts
to and from a JSON-friendly dictionary whose keys use the camelCase names
expected by browser clients (``midiNumber``, ``currentKey`` ...).

Events that carry notes also carry the key and scale that were active when
they were generated. ``pedal``, ``silence`` and ``allNotesOff`` carry no
musical context.

Registers differ by variant. ``note``, ``chord``, ``counterpoint`` and
``toneRow`` events take their octaves from the parameter bundle of the tick.
``arpeggio`` and ``parallel-motion`` start on a bundle octave and may climb
past it as they stack scale degrees. The gesture variants keep registers of
their own whatever the bundle says: insect bursts sound in octaves 5-7, bird
and cicada calls in 6-7, frog croaks in 2-3 and window slams in the bass, so
a cold-weather bundle limited to octaves 1-5 does not pull them down. Every
note of every variant still lies inside the MIDI range.

Example
-------
>>> note = Note("C", 4, 60, 80, 500.0)
>>> event = NoteEvent(note, "C", "major")
>>> MidiEvent.from_json(event.to_json()) == event
True
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Type

__all__ = [
    "Note",
    "Pedal",
    "PEDAL_TYPES",
    "WeatherReading",
    "MidiEvent",
    "NoteEvent",
    "ChordEvent",
    "CounterpointEvent",
    "ArpeggioEvent",
    "ParallelMotionEvent",
    "InsectBurstEvent",
    "AnimalCallEvent",
    "CarPassEvent",
    "ToneRowEvent",
    "FurnitureEvent",
    "MarbleBounceEvent",
    "PedalEvent",
    "SilenceEvent",
    "AllNotesOffEvent",
    "EVENT_TYPES",
]

PEDAL_TYPES = ("sustain", "sostenuto", "soft")


@dataclass(frozen=True)
class Note:
    """A single pitched note.

    ``duration`` is expressed in milliseconds. Instances are immutable so an
    event can be handed to several subscribers without defensive copies.
    """

    name: str
    octave: int
    midi_number: int
    velocity: int
    duration: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "octave": self.octave,
            "midiNumber": self.midi_number,
            "velocity": self.velocity,
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Note":
        return cls(
            name=data["name"],
            octave=data["octave"],
            midi_number=data["midiNumber"],
            velocity=data["velocity"],
            duration=data["duration"],
        )


@dataclass(frozen=True)
class Pedal:
    """Change of pedal position; ``value`` lies in ``[0, 1]``."""

    type: str
    value: float

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "value": self.value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Pedal":
        return cls(type=data["type"], value=data["value"])


@dataclass(frozen=True)
class WeatherReading:
    """Weather observation pushed in by an external collaborator.

    ``temperature`` is in degrees Celsius and ``weather_code`` follows the
    WMO codes used by open-meteo. Either may be ``None`` when the upstream
    payload was incomplete; the mapper skips whatever is missing.
    """

    temperature: Optional[float]
    weather_code: Optional[int]
    description: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WeatherReading":
        """Build a reading from a client payload without ever raising.

        Both ``description`` and the browser's ``weatherDescription`` key are
        accepted. Values that cannot be converted become ``None``.
        """

        temperature = _coerce_number(data.get("temperature"), float)
        code = _coerce_number(data.get("weatherCode", data.get("weather_code")), int)
        description = data.get("weatherDescription", data.get("description", ""))
        if not isinstance(description, str):
            description = str(description)
        return cls(temperature=temperature, weather_code=code, description=description)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "temperature": self.temperature,
            "weatherCode": self.weather_code,
            "weatherDescription": self.description,
        }


def _coerce_number(value: Any, kind: type) -> Optional[Any]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    if kind is int:
        if not number.is_integer():
            return None
        return int(number)
    return number


# ---------------------------------------------------------------------------
# Event union
# ---------------------------------------------------------------------------

EVENT_TYPES: Dict[str, Type["MidiEvent"]] = {}


def _register(cls: Type["MidiEvent"]) -> Type["MidiEvent"]:
    EVENT_TYPES[cls.type] = cls
    return cls


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _encode(name: str, value: Any) -> Any:
    if isinstance(value, (Note, Pedal)):
        return value.to_dict()
    if name == "notes":
        return [note.to_dict() for note in value]
    if name == "position":
        x, y = value
        return {"x": x, "y": y}
    return value


def _decode(name: str, value: Any) -> Any:
    if name == "note":
        return Note.from_dict(value)
    if name == "notes":
        return tuple(Note.from_dict(item) for item in value)
    if name == "pedal":
        return Pedal.from_dict(value)
    if name == "position":
        return (value["x"], value["y"])
    return value


@dataclass(frozen=True)
class MidiEvent:
    """Base class of the event union.

    Subclasses only declare their fields; serialisation walks the dataclass
    fields and converts ``snake_case`` attribute names to camelCase keys.
    """

    type: ClassVar[str] = ""

    @property
    def sounding_notes(self) -> Tuple[Note, ...]:
        """Return every note the event asks the receiver to play."""

        return ()

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.type}
        for item in fields(self):
            payload[_camel(item.name)] = _encode(item.name, getattr(self, item.name))
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "MidiEvent":
        """Rebuild the concrete event described by ``data``.

        Raises
        ------
        ValueError
            If ``data`` names an unknown event type.
        """

        tag = data.get("type")
        cls = EVENT_TYPES.get(tag)  # type: ignore[arg-type]
        if cls is None:
            raise ValueError(f"Unknown event type: {tag!r}")
        kwargs = {}
        for item in fields(cls):
            key = _camel(item.name)
            if key in data:
                kwargs[item.name] = _decode(item.name, data[key])
        return cls(**kwargs)

    @staticmethod
    def from_json(text: str) -> "MidiEvent":
        return MidiEvent.from_dict(json.loads(text))


@_register
@dataclass(frozen=True)
class NoteEvent(MidiEvent):
    type: ClassVar[str] = "note"

    note: Note
    current_key: str
    current_scale: str

    @property
    def sounding_notes(self) -> Tuple[Note, ...]:
        return (self.note,)


@dataclass(frozen=True)
class _NotesEvent(MidiEvent):
    """Shared shape of every event carrying an ordered list of notes."""

    notes: Tuple[Note, ...]
    current_key: str
    current_scale: str

    def __post_init__(self) -> None:
        # Lists are accepted for convenience but stored as tuples so events
        # stay hashable and immutable.
        if not isinstance(self.notes, tuple):
            object.__setattr__(self, "notes", tuple(self.notes))

    @property
    def sounding_notes(self) -> Tuple[Note, ...]:
        return self.notes


@_register
@dataclass(frozen=True)
class ChordEvent(_NotesEvent):
    """Simultaneous notes; ``cluster`` marks semitone clusters outside the scale."""

    type: ClassVar[str] = "chord"

    cluster: bool = False


@_register
@dataclass(frozen=True)
class CounterpointEvent(_NotesEvent):
    type: ClassVar[str] = "counterpoint"


@_register
@dataclass(frozen=True)
class ArpeggioEvent(_NotesEvent):
    type: ClassVar[str] = "arpeggio"

    step_ms: float = 120.0
    direction: str = "up"


@_register
@dataclass(frozen=True)
class ParallelMotionEvent(_NotesEvent):
    """Scale fragment doubled at ``interval`` scale degrees."""

    type: ClassVar[str] = "parallel-motion"

    interval: int = 2


@_register
@dataclass(frozen=True)
class InsectBurstEvent(_NotesEvent):
    type: ClassVar[str] = "insectBurst"


@_register
@dataclass(frozen=True)
class AnimalCallEvent(_NotesEvent):
    type: ClassVar[str] = "animalCall"

    animal: str = "bird"
    chromatic: bool = False


@_register
@dataclass(frozen=True)
class CarPassEvent(_NotesEvent):
    """Doppler-shifted engine tone; pitches are chromatic by nature."""

    type: ClassVar[str] = "carPass"

    car_id: int = 0
    approaching: bool = True
    chromatic: bool = True


@_register
@dataclass(frozen=True)
class ToneRowEvent(_NotesEvent):
    type: ClassVar[str] = "toneRow"

    row_position: int = 0
    form: str = "P"


@_register
@dataclass(frozen=True)
class FurnitureEvent(_NotesEvent):
    type: ClassVar[str] = "furniture"

    furniture: str = ""
    gesture: str = ""


@_register
@dataclass(frozen=True)
class MarbleBounceEvent(MidiEvent):
    """A marble hitting the floor; ``position`` is ``(x, y)`` in ``[0, 1]``."""

    type: ClassVar[str] = "marble-bounce"

    note: Note
    current_key: str
    current_scale: str
    marble_id: int = 0
    position: Tuple[float, float] = (0.5, 0.0)

    @property
    def sounding_notes(self) -> Tuple[Note, ...]:
        return (self.note,)


@_register
@dataclass(frozen=True)
class PedalEvent(MidiEvent):
    type: ClassVar[str] = "pedal"

    pedal: Pedal


@_register
@dataclass(frozen=True)
class SilenceEvent(MidiEvent):
    """Nothing happens for ``duration`` milliseconds."""

    type: ClassVar[str] = "silence"

    duration: float


@_register
@dataclass(frozen=True)
class AllNotesOffEvent(MidiEvent):
    type: ClassVar[str] = "allNotesOff"
