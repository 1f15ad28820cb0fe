"""Keyboard input decoding and status-filter shortcuts."""

from dataclasses import dataclass

from bullscope.broker.models import ListView

# Escape sequences emitted by common terminals for navigation keys
_ESCAPE_SEQUENCES: dict[str, str] = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1bOA": "up",
    "\x1bOB": "down",
    "\x1bOC": "right",
    "\x1bOD": "left",
}

_CONTROL_KEYS: dict[str, str] = {
    "\t": "tab",
    "\r": "enter",
    "\n": "enter",
    "\x7f": "backspace",
    "\x08": "backspace",
    "\x1b": "escape",
}

STATUS_SHORTCUTS: dict[str, ListView] = {
    "1": ListView.LATEST,
    "2": ListView.WAIT,
    "3": ListView.ACTIVE,
    "4": ListView.COMPLETED,
    "5": ListView.FAILED,
    "6": ListView.DELAYED,
    "7": ListView.SCHEDULERS,
}


@dataclass(frozen=True)
class Key:
    """A decoded key press.

    ``name`` is the key name ("up", "enter", "q", ...); ``ctrl`` is set for
    control chords such as ctrl+c (name "c").
    """

    name: str
    ctrl: bool = False

    @property
    def is_digit(self) -> bool:
        return len(self.name) == 1 and self.name in "0123456789"


def parse_keys(data: str) -> list[Key]:
    """Split a chunk of raw terminal input into key presses."""
    keys: list[Key] = []
    i = 0
    while i < len(data):
        if data[i] == "\x1b":
            sequence = data[i : i + 3]
            if sequence in _ESCAPE_SEQUENCES:
                keys.append(Key(_ESCAPE_SEQUENCES[sequence]))
                i += 3
                continue
            if len(sequence) == 3 and sequence[1] == "[":
                # Unknown CSI sequence; swallow up to its final byte
                j = i + 2
                while j < len(data) and not ("@" <= data[j] <= "~"):
                    j += 1
                i = j + 1
                continue

        char = data[i]
        i += 1
        if char in _CONTROL_KEYS:
            keys.append(Key(_CONTROL_KEYS[char]))
        elif ord(char) < 32:
            # ctrl+a .. ctrl+z
            keys.append(Key(chr(ord(char) + 96), ctrl=True))
        else:
            keys.append(Key(char))
    return keys


def view_for_key(name: str) -> ListView | None:
    """Status filter bound to a number key, if any."""
    return STATUS_SHORTCUTS.get(name)
