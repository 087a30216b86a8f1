"""Searching in a buffer of lines.

Three kinds of search live here.  String searches cover ``/``, ``?``,
``n`` and ``N``, plus the ``:s`` and ``:g`` commands.  Character searches
within one line cover ``f``, ``F``, ``t`` and ``T`` and their repeats.
The rest are bracket matching, function finding (``[[`` / ``]]``) and the
word motions ``w``, ``b``, ``e`` and their upper-case forms.

A buffer is a non-empty list of strings, one per line, without line
terminators.  Positions are zero-based (row, index) pairs.  An index
equal to the length of its line is the end-of-line position.
"""

from __future__ import annotations

import enum
import string
from dataclasses import dataclass, field

from stevied.regcomp import Program, RegexpError, compile_pattern
from stevied.regexec import Match, expand
from stevied.regexec import search as _regsearch

BEGWORD = "([^a-zA-Z0-9_]|^)"
"""Replaces ``\\<`` in search patterns."""

ENDWORD = "([^a-zA-Z0-9_]|$)"
"""Replaces ``\\>`` in search patterns."""

_WORD_CHARS = frozenset(string.ascii_letters + string.digits + "_")
_BRACKETS = {"(": ")", "{": "}", "[": "]"}
_CLOSERS = {close: open_ for open_, close in _BRACKETS.items()}


class Direction(enum.Enum):
    """Direction of a search or motion."""

    FORWARD = "forward"
    BACKWARD = "backward"

    @property
    def other(self) -> Direction:
        """The opposite direction."""
        return Direction.BACKWARD if self is Direction.FORWARD else Direction.FORWARD


@dataclass(frozen=True, order=True)
class Position:
    """A place in the buffer: a row and a character index within it."""

    row: int
    index: int


class SearchError(ValueError):
    """Raised when a search or a search-based command cannot be carried out."""


@dataclass
class GlobResult:
    """Outcome of a global command.

    ``printed`` holds (1-based line number, text) for each printed line,
    ``count`` is the number of matching lines, and ``cursor`` is the row
    the cursor ends on, or ``None`` when nothing matched.
    """

    lines: list[str]
    count: int
    printed: list[tuple[int, str]] = field(default_factory=list)
    cursor: int | None = None


# -- buffer helpers ----------------------------------------------------


def _check_buffer(lines: list[str]) -> None:
    if not lines:
        raise ValueError("buffer must hold at least one line")


def _inc(lines: list[str], pos: Position) -> Position | None:
    """Step one character forward, crossing lines; ``None`` at end of file."""
    if pos.index < len(lines[pos.row]):
        return Position(pos.row, pos.index + 1)
    if pos.row + 1 < len(lines):
        return Position(pos.row + 1, 0)
    return None


def _dec(lines: list[str], pos: Position) -> Position | None:
    """Step one character back, crossing lines; ``None`` at start of file."""
    if pos.index > 0:
        return Position(pos.row, pos.index - 1)
    if pos.row > 0:
        return Position(pos.row - 1, len(lines[pos.row - 1]))
    return None


def _char_at(lines: list[str], pos: Position) -> str:
    text = lines[pos.row]
    return text[pos.index] if pos.index < len(text) else ""


# -- string searches ---------------------------------------------------


def map_pattern(pattern: str) -> tuple[str, bool]:
    """Translate the editor's search escapes into regular-expression syntax.

    Parentheses are made literal, ``\\/`` becomes ``/`` and ``\\<`` / ``\\>``
    become word-boundary groups.  Returns the mapped pattern and whether it
    contains a begin-word match.
    """
    out: list[str] = []
    begword = False
    chars = iter(pattern)
    for char in chars:
        if char in "()":
            out.append("\\" + char)
            continue
        if char != "\\":
            out.append(char)
            continue
        escaped = next(chars, "")
        if escaped == "/":
            out.append("/")
        elif escaped == "<":
            out.append(BEGWORD)
            begword = True
        elif escaped == ">":
            out.append(ENDWORD)
        else:
            out.append("\\" + escaped)
    return "".join(out), begword


def _compile(pattern: str) -> Program:
    try:
        return compile_pattern(pattern)
    except RegexpError as exc:
        raise SearchError("Invalid search string") from exc


def _adjust(found: Position | None, begword: bool) -> Position | None:
    # A begin-word match starts on the character before the word.
    if found is not None and begword and found.index != 0:
        return Position(found.row, found.index + 1)
    return found


def _forward(lines: list[str], pos: Position, program: Program,
             want_start: bool, wrapscan: bool,
             ignore_case: bool) -> Position | None:
    first_offset = min(pos.index + 1, len(lines[pos.row]))
    for row in range(pos.row, len(lines)):
        offset = first_offset if row == pos.row else 0
        found = _regsearch(program, lines[row], True, ignore_case, offset)
        if found is None:
            continue
        if want_start and row == pos.row:
            continue  # not really at the start of the line
        return Position(row, found.start)

    if not wrapscan:
        return None
    for row in range(pos.row + 1):
        found = _regsearch(program, lines[row], True, ignore_case)
        if found is not None:
            return Position(row, found.start)
    return None


def _last_start(program: Program, first: Match, ignore_case: bool,
                limit: int | None) -> int:
    """Start of the last match on the line, not beyond ``limit`` if given."""
    best, end = first.start, first.end
    while (following := _regsearch(program, first.text, False,
                                   ignore_case, end)) is not None:
        if limit is not None and following.start > limit:
            break
        best = following.start
        if following.end == end:
            break  # an empty match would repeat forever
        end = following.end
    return best


def _backward(lines: list[str], pos: Position, program: Program,
              want_start: bool, begword: bool, wrapscan: bool,
              ignore_case: bool) -> Position | None:
    start = _dec(lines, pos) or pos
    if begword:  # so we don't get stuck on one match
        start = _dec(lines, start) or start
    limit: int | None = 0 if want_start else start.index

    for row in range(start.row, -1, -1):
        found = _regsearch(program, lines[row], True, ignore_case)
        if found is None:
            limit = None
            continue
        if want_start:
            return Position(row, found.start)
        best = _last_start(program, found, ignore_case, limit)
        if limit is not None and best > limit:
            limit = None
            continue
        return Position(row, best)

    if not wrapscan:
        return None
    for row in range(len(lines) - 1, -1, -1):
        found = _regsearch(program, lines[row], True, ignore_case)
        if found is not None:
            if want_start:
                return Position(row, found.start)
            return Position(row, _last_start(program, found, ignore_case, None))
        if row == start.row:
            break
    return None


def find_forward(lines: list[str], pos: Position, pattern: str,
                 wrapscan: bool = True,
                 ignore_case: bool = False) -> Position | None:
    """Find ``pattern`` after ``pos``, wrapping to the top if ``wrapscan``."""
    _check_buffer(lines)
    mapped, begword = map_pattern(pattern)
    program = _compile(mapped)
    found = _forward(lines, pos, program, mapped.startswith("^"),
                     wrapscan, ignore_case)
    return _adjust(found, begword)


def find_backward(lines: list[str], pos: Position, pattern: str,
                  wrapscan: bool = True,
                  ignore_case: bool = False) -> Position | None:
    """Find ``pattern`` before ``pos``, wrapping to the bottom if ``wrapscan``."""
    _check_buffer(lines)
    mapped, begword = map_pattern(pattern)
    if not mapped:
        return None
    program = _compile(mapped)
    found = _backward(lines, pos, program, mapped.startswith("^"), begword,
                      wrapscan, ignore_case)
    return _adjust(found, begword)


class Searcher:
    """Remembers the last string and character searches so they can be repeated."""

    def __init__(self) -> None:
        self.last_pattern: str | None = None
        self.last_direction = Direction.FORWARD
        self.last_char = ""
        self.last_char_direction = Direction.FORWARD
        self.last_char_till = False

    def search(self, lines: list[str], pos: Position, direction: Direction,
               pattern: str, wrapscan: bool = True,
               ignore_case: bool = False) -> Position | None:
        """Search for ``pattern`` and remember it; ``None`` if not found."""
        self.last_pattern = pattern
        self.last_direction = direction
        if direction is Direction.BACKWARD:
            return find_backward(lines, pos, pattern, wrapscan, ignore_case)
        return find_forward(lines, pos, pattern, wrapscan, ignore_case)

    def repeat(self, lines: list[str], pos: Position, reverse: bool = False,
               wrapscan: bool = True,
               ignore_case: bool = False) -> Position | None:
        """Repeat the last search, in the other direction if ``reverse``."""
        if self.last_pattern is None:
            raise SearchError("No previous search pattern")
        saved = self.last_direction
        direction = saved.other if reverse else saved
        try:
            return self.search(lines, pos, direction, self.last_pattern,
                               wrapscan, ignore_case)
        finally:
            self.last_direction = saved

    def find_char(self, line: str, index: int, char: str,
                  direction: Direction, till: bool = False) -> int | None:
        """Find ``char`` in ``line`` from ``index``; land before it if ``till``.

        Returns the new index, or ``None`` if the character is not found.
        """
        self.last_char = char
        self.last_char_direction = direction
        self.last_char_till = till

        def step(at: int, towards: Direction) -> int | None:
            if towards is Direction.FORWARD:
                return at + 1 if at + 1 < len(line) else None
            return at - 1 if at > 0 else None

        current = index
        if till:  # skip one so repeated searches make progress
            skipped = step(current, direction)
            current = current if skipped is None else skipped
        while (moved := step(current, direction)) is not None:
            current = moved
            if line[current] == char:
                if till:
                    back = step(current, direction.other)
                    current = current if back is None else back
                return current
        return None

    def repeat_char(self, line: str, index: int,
                    reverse: bool = False) -> int | None:
        """Repeat the last character search, the other way if ``reverse``."""
        if not self.last_char:
            return None
        saved = self.last_char_direction
        direction = saved.other if reverse else saved
        try:
            return self.find_char(line, index, self.last_char, direction,
                                  self.last_char_till)
        finally:
            self.last_char_direction = saved


# -- colon commands ----------------------------------------------------


def _scan_field(command: str, start: int) -> tuple[str, int | None]:
    """Text from ``start`` up to an unescaped ``/`` and the slash's index."""
    slash = next(
        (i for i in range(start, len(command))
         if command[i] == "/" and command[i - 1] != "\\"),
        None,
    )
    if slash is None:
        return command[start:], None
    return command[start:slash], slash


def _row_range(lines: list[str], first: int, last: int | None) -> range:
    if last is None:
        last = first
    if last < first:  # the end is never met: run to the end of the buffer
        last = len(lines) - 1
    return range(first, min(last, len(lines) - 1) + 1)


def substitute(lines: list[str], first: int, last: int | None,
               command: str,
               ignore_case: bool = False) -> tuple[list[str], int, int | None]:
    """Carry out ``/pattern/replacement/[g]`` on rows ``first`` to ``last``.

    Returns the new lines, the number of lines changed and the row of the
    last changed line (``None`` if nothing matched).
    """
    _check_buffer(lines)
    pattern, slash = _scan_field(command, 1)
    if not pattern:
        raise SearchError("NULL pattern specified")
    replacement = ""
    do_all = False
    if slash is not None:
        replacement, end = _scan_field(command, slash + 1)
        do_all = end is not None and command[end + 1:end + 2] == "g"

    program = _compile(pattern)
    result = list(lines)
    changed = 0
    cursor: int | None = None
    for row in _row_range(lines, first, last):
        text = lines[row]
        found = _regsearch(program, text, True, ignore_case)
        if found is None:
            continue
        pieces: list[str] = []
        done = 0
        while found is not None:
            pieces.append(text[done:found.start])
            pieces.append(expand(found, replacement))
            done = found.end
            if not do_all:
                break
            found = _regsearch(program, text, False, ignore_case, done)
            if found is not None and found.start == found.end == done:
                break  # an empty match here would never advance
        pieces.append(text[done:])
        result[row] = "".join(pieces)
        changed += 1
        cursor = row
    return result, changed, cursor


def glob_lines(lines: list[str], first: int | None, last: int | None,
               command: str, ignore_case: bool = False) -> GlobResult:
    """Carry out ``/pattern/[dp]``: delete or print the matching lines.

    With ``first`` of ``None`` the whole buffer is searched.
    """
    _check_buffer(lines)
    pattern, slash = _scan_field(command, 1)
    action = ""
    if slash is not None:
        action = command[slash + 1:slash + 2]
    action = action or "p"
    if action not in ("d", "p"):
        raise SearchError("Invalid command character")
    program = _compile(pattern)

    rows = range(len(lines)) if first is None else _row_range(lines, first, last)
    kept: list[str] = []
    printed: list[tuple[int, str]] = []
    count = 0
    cursor: int | None = None
    for row, text in enumerate(lines):
        if row in rows and _regsearch(program, text, True, ignore_case):
            count += 1
            if action == "d":
                cursor = len(kept)
                continue
            printed.append((row + 1, text))
            cursor = row
        kept.append(text)

    if not kept:
        kept = [""]
    if cursor is not None:
        cursor = min(cursor, len(kept) - 1)
    return GlobResult(kept, count, printed, cursor)


# -- other searches ----------------------------------------------------


def match_bracket(lines: list[str], pos: Position) -> Position | None:
    """Find the bracket matching the one at ``pos``, or ``None``."""
    _check_buffer(lines)
    initial = _char_at(lines, pos)
    if initial in _BRACKETS:
        wanted, move = _BRACKETS[initial], _inc
    elif initial in _CLOSERS:
        wanted, move = _CLOSERS[initial], _dec
    else:
        return None

    depth = 0
    current: Position | None = pos
    while (current := move(lines, current)) is not None:
        char = _char_at(lines, current)
        if char == initial:
            depth += 1
        elif char == wanted:
            if depth == 0:
                return current
            depth -= 1
    return None


def find_function(lines: list[str], row: int,
                  direction: Direction) -> int | None:
    """Row of the next line starting with ``{`` in ``direction``, or ``None``."""
    _check_buffer(lines)
    rows = (range(row + 1, len(lines)) if direction is Direction.FORWARD
            else range(row - 1, -1, -1))
    return next((r for r in rows if lines[r].startswith("{")), None)


def _cls(char: str, bigword: bool) -> int:
    """Word class: 0 white space, 1 word characters, 2 everything else."""
    if char in (" ", "\t", ""):
        return 0
    if char in _WORD_CHARS:
        return 1
    return 1 if bigword else 2


def forward_word(lines: list[str], pos: Position,
                 bigword: bool = False) -> Position | None:
    """Start of the next word, or ``None`` at end of file."""
    _check_buffer(lines)

    def klass(at: Position) -> int:
        return _cls(_char_at(lines, at), bigword)

    start_class = klass(pos)
    current = _inc(lines, pos)
    if current is None:
        return None
    if start_class != 0:
        while klass(current) == start_class:
            current = _inc(lines, current)
            if current is None:
                return None
        if klass(current) != 0:
            return current
    while klass(current) == 0:
        if current.index == 0 and not lines[current.row]:
            break  # stop on a blank line
        current = _inc(lines, current)
        if current is None:
            return None
    return current


def backward_word(lines: list[str], pos: Position,
                  bigword: bool = False) -> Position | None:
    """Start of the current or previous word, or ``None`` at top of file."""
    _check_buffer(lines)

    def klass(at: Position) -> int:
        return _cls(_char_at(lines, at), bigword)

    start_class = klass(pos)
    current = _dec(lines, pos)
    if current is None:
        return None

    if klass(current) != start_class or start_class == 0:
        while klass(current) == 0:
            if current.index == 0 and not lines[current.row]:
                return current  # stop on a blank line
            current = _dec(lines, current)
            if current is None:
                return None
        start_class = klass(current)

    while klass(current) == start_class:
        current = _dec(lines, current)
        if current is None:
            return None
    return _inc(lines, current)


def end_of_word(lines: list[str], pos: Position,
                bigword: bool = False) -> Position | None:
    """End of the current or next word, or ``None`` at end of file."""
    _check_buffer(lines)

    def klass(at: Position) -> int:
        return _cls(_char_at(lines, at), bigword)

    start_class = klass(pos)
    if _inc(lines, pos) is None:
        return None
    current = pos

    if klass(current) != start_class or start_class == 0:
        while klass(current) == 0:
            current = _inc(lines, current)
            if current is None:
                return None
        start_class = klass(current)

    while klass(current) == start_class:
        current = _inc(lines, current)
        if current is None:
            return None
    return _dec(lines, current)