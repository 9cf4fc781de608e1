from __future__ import annotations

DEFAULT_MAX_LENGTH = 3


class InputBuffer:
    """Bounded left-to-right digit buffer.

    Appending past ``max_length`` restarts the buffer with only the new digit,
    so a child who mistypes can never end up stuck with a full, useless entry.
    """

    def __init__(self, *, max_length: int = DEFAULT_MAX_LENGTH) -> None:
        if max_length <= 0:
            raise ValueError("max_length must be > 0")
        self._max_length = int(max_length)
        self._text = ""

    @property
    def text(self) -> str:
        return self._text

    @property
    def max_length(self) -> int:
        return self._max_length

    def push_digit(self, digit: str) -> bool:
        """Append one digit. Returns False (and changes nothing) for anything else."""

        if len(digit) != 1 or digit not in "0123456789":
            return False
        if len(self._text) + 1 > self._max_length:
            self._text = digit
        else:
            self._text += digit
        return True

    def clear(self) -> None:
        self._text = ""

    def backspace(self) -> None:
        self._text = self._text[:-1]

    def value(self) -> int | None:
        return _try_parse_int(self._text)


def _try_parse_int(text: str) -> int | None:
    s = text.strip()
    if not s:
        return None
    try:
        return int(s)
    except ValueError:
        return None
