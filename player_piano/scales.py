"""Scale and key lookup tables.

Every scale is stored as a list of semitone offsets from the tonic. The
engine never spells notes from these tables directly; it combines the offsets
with the current key (a pitch class ``0-11``) to obtain the legal pitch
classes for a tick.

Example
-------
>>> scale_pitch_classes(2, "major")
[2, 4, 6, 7, 9, 11, 1]
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

__all__ = [
    "NOTES",
    "NOTE_TO_SEMITONE",
    "SCALES",
    "CHAOTIC_SCALES",
    "MIN_OCTAVE",
    "MAX_OCTAVE",
    "canonical_scale",
    "key_to_pitch_class",
    "scale_pitch_classes",
]

# Sharp spellings are used for every emitted note name.
NOTES: List[str] = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

# Both spellings are accepted when a caller names a key.
NOTE_TO_SEMITONE: Dict[str, int] = {
    "C": 0,
    "B#": 0,
    "C#": 1,
    "Db": 1,
    "D": 2,
    "D#": 3,
    "Eb": 3,
    "E": 4,
    "Fb": 4,
    "E#": 5,
    "F": 5,
    "F#": 6,
    "Gb": 6,
    "G": 7,
    "G#": 8,
    "Ab": 8,
    "A": 9,
    "A#": 10,
    "Bb": 10,
    "B": 11,
    "Cb": 11,
}

SCALES: Dict[str, List[int]] = {
    "major": [0, 2, 4, 5, 7, 9, 11],
    "minor": [0, 2, 3, 5, 7, 8, 10],
    "dorian": [0, 2, 3, 5, 7, 9, 10],
    "phrygian": [0, 1, 3, 5, 7, 8, 10],
    "lydian": [0, 2, 4, 6, 7, 9, 11],
    "mixolydian": [0, 2, 4, 5, 7, 9, 10],
    "locrian": [0, 1, 3, 5, 6, 8, 10],
    "pentatonicMajor": [0, 2, 4, 7, 9],
    "pentatonicMinor": [0, 3, 5, 7, 10],
    "wholeTone": [0, 2, 4, 6, 8, 10],
    # Colours reserved for chaos mode.
    "chromatic": [0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11],
    "diminished": [0, 2, 3, 5, 6, 8, 9, 11],
    "augmented": [0, 3, 4, 7, 8, 11],
    "harmonicMinor": [0, 2, 3, 5, 7, 8, 11],
    "doubleHarmonic": [0, 1, 4, 5, 7, 8, 11],
    "hungarian": [0, 2, 3, 6, 7, 8, 11],
    "byzantine": [0, 1, 4, 5, 7, 8, 11],
    "oriental": [0, 1, 4, 5, 6, 9, 10],
}

CHAOTIC_SCALES: Tuple[str, ...] = (
    "chromatic",
    "diminished",
    "augmented",
    "harmonicMinor",
    "doubleHarmonic",
    "hungarian",
    "byzantine",
    "oriental",
)

# Octaves are numbered so that C0 is MIDI 12; octave 8 keeps B8 (119) inside
# the 0-127 MIDI range.
MIN_OCTAVE = 0
MAX_OCTAVE = 8

_CANONICAL_SCALES = {name.lower(): name for name in SCALES}


def canonical_scale(name: object) -> Optional[str]:
    """Return the registered spelling of ``name`` or ``None`` when unknown.

    Lookups are case-insensitive so ``"wholetone"`` resolves to
    ``"wholeTone"``. Non-string input is treated as unknown rather than
    raising, matching the no-op contract of the control surface.
    """

    if not isinstance(name, str):
        return None
    return _CANONICAL_SCALES.get(name.strip().lower())


def key_to_pitch_class(key: object) -> Optional[int]:
    """Translate ``key`` into a pitch class ``0-11``.

    ``key`` may be an integer pitch class or a note name such as ``"Eb"``.
    ``None`` is returned for anything that cannot be interpreted.
    """

    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key % 12 if 0 <= key <= 11 else None
    if isinstance(key, str):
        name = key.strip()
        if not name:
            return None
        name = name[0].upper() + name[1:]
        return NOTE_TO_SEMITONE.get(name)
    return None


def scale_pitch_classes(key: int, scale: str) -> List[int]:
    """Return the pitch classes of ``scale`` rooted on ``key``.

    The order follows the scale degrees so index arithmetic (e.g. stacking
    thirds with ``index + 2``) stays diatonic. Unknown scale names fall back
    to major.
    """

    intervals: Sequence[int] = SCALES.get(scale, SCALES["major"])
    return [(key + interval) % 12 for interval in intervals]
