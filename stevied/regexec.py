"""Matching and substitution for compiled editor regular expressions."""

from __future__ import annotations

import string
from dataclasses import dataclass

from stevied.regcomp import NSUBEXP, Opcode, Program, RegexpError

_UPPER = str.maketrans(string.ascii_lowercase, string.ascii_uppercase)

Span = tuple[int, int]


@dataclass(frozen=True)
class Match:
    """The outcome of a successful :func:`search`.

    ``spans`` holds one entry per capture slot; slot 0 is the whole match.
    An entry is ``None`` when that group took no part in the match.
    """

    text: str
    spans: tuple[Span | None, ...]

    @property
    def start(self) -> int:
        """Offset of the first character of the whole match."""
        return self.spans[0][0]  # type: ignore[index]

    @property
    def end(self) -> int:
        """Offset just past the whole match."""
        return self.spans[0][1]  # type: ignore[index]

    def group_span(self, number: int = 0) -> Span | None:
        """Return ``(start, end)`` of group ``number``, or ``None`` if unset."""
        if not 0 <= number < len(self.spans):
            raise IndexError(f"no such group: {number}")
        return self.spans[number]

    def group(self, number: int = 0) -> str | None:
        """Return the text matched by group ``number``, or ``None`` if unset."""
        span = self.group_span(number)
        if span is None:
            return None
        return self.text[span[0]:span[1]]


class _Matcher:
    """Backtracking executor for one program over one string."""

    def __init__(self, program: Program, text: str, bol: int | None,
                 ignore_case: bool) -> None:
        self.nodes = program.nodes
        self.text = text
        self.bol = bol
        self.ignore_case = ignore_case
        self.pos = 0
        self.startp: list[int | None] = [None] * NSUBEXP
        self.endp: list[int | None] = [None] * NSUBEXP

    def fold(self, value: str) -> str:
        return value.translate(_UPPER) if self.ignore_case else value

    def attempt(self, at: int) -> bool:
        """Try a match beginning exactly at offset ``at``."""
        self.pos = at
        self.startp = [None] * NSUBEXP
        self.endp = [None] * NSUBEXP
        if self.match(0):
            self.startp[0] = at
            self.endp[0] = self.pos
            return True
        return False

    def spans(self) -> tuple[Span | None, ...]:
        return tuple(
            (start, end) if start is not None and end is not None else None
            for start, end in zip(self.startp, self.endp)
        )

    def match(self, index: int | None) -> bool:
        nodes = self.nodes
        text = self.text
        scan = index
        while scan is not None:
            node = nodes[scan]
            following = node.next
            op = node.op

            if op == Opcode.BOL:
                if self.pos != self.bol:
                    return False
            elif op == Opcode.EOL:
                if self.pos != len(text):
                    return False
            elif op == Opcode.ANY:
                if self.pos >= len(text):
                    return False
                self.pos += 1
            elif op == Opcode.EXACTLY:
                operand = node.operand
                segment = text[self.pos:self.pos + len(operand)]
                if self.fold(segment) != self.fold(operand):
                    return False
                self.pos += len(operand)
            elif op == Opcode.ANYOF:
                if self.pos >= len(text) or text[self.pos] not in node.operand:
                    return False
                self.pos += 1
            elif op == Opcode.ANYBUT:
                if self.pos >= len(text) or text[self.pos] in node.operand:
                    return False
                self.pos += 1
            elif op in (Opcode.NOTHING, Opcode.BACK):
                pass
            elif op == Opcode.OPEN:
                save = self.pos
                if not self.match(following):
                    return False
                # A later pass through the same group may already have set it.
                if self.startp[node.group] is None:
                    self.startp[node.group] = save
                return True
            elif op == Opcode.CLOSE:
                save = self.pos
                if not self.match(following):
                    return False
                if self.endp[node.group] is None:
                    self.endp[node.group] = save
                return True
            elif op == Opcode.BRANCH:
                if following is None or nodes[following].op != Opcode.BRANCH:
                    following = scan + 1  # single alternative: no choice
                else:
                    alternative: int | None = scan
                    while (alternative is not None
                           and nodes[alternative].op == Opcode.BRANCH):
                        save = self.pos
                        if self.match(alternative + 1):
                            return True
                        self.pos = save
                        alternative = nodes[alternative].next
                    return False
            elif op in (Opcode.STAR, Opcode.PLUS):
                return self._repeat_then(scan, following)
            elif op == Opcode.END:
                return True
            else:
                raise RegexpError("memory corruption")
            scan = following
        raise RegexpError("corrupted pointers")

    def _repeat_then(self, scan: int, following: int | None) -> bool:
        nodes = self.nodes
        text = self.text
        nextch = ""
        if following is not None and nodes[following].op == Opcode.EXACTLY:
            nextch = nodes[following].operand[0]
        minimum = 0 if nodes[scan].op == Opcode.STAR else 1
        save = self.pos
        count = self.repeat(scan + 1)
        while count >= minimum:
            if not nextch or (self.pos < len(text) and text[self.pos] == nextch):
                if self.match(following):
                    return True
            count -= 1
            self.pos = save + count
        return False

    def repeat(self, index: int) -> int:
        """Match the simple node at ``index`` as often as possible."""
        node = self.nodes[index]
        text = self.text
        scan = self.pos
        if node.op == Opcode.ANY:
            scan = len(text)
        elif node.op == Opcode.EXACTLY:
            wanted = self.fold(node.operand[0])
            while scan < len(text) and self.fold(text[scan]) == wanted:
                scan += 1
        elif node.op == Opcode.ANYOF:
            while scan < len(text) and text[scan] in node.operand:
                scan += 1
        elif node.op == Opcode.ANYBUT:
            while scan < len(text) and text[scan] not in node.operand:
                scan += 1
        else:
            raise RegexpError("internal foulup")
        count = scan - self.pos
        self.pos = scan
        return count


def _candidates(text: str, start: int, char: str, fold) -> list[int]:
    wanted = fold(char)
    return [i for i in range(start, len(text)) if fold(text[i]) == wanted]


def search(program: Program, text: str, at_bol: bool = True,
           ignore_case: bool = False, start: int = 0) -> Match | None:
    """Find the leftmost match of ``program`` in ``text`` from ``start``.

    ``^`` can only match at ``start``, and only when ``at_bol`` is true.
    ``$`` matches at the end of ``text``.  Offsets in the result are
    relative to the whole of ``text``.
    """
    if program is None or text is None:
        raise RegexpError("NULL parameter")
    if not 0 <= start <= len(text):
        raise ValueError(f"start {start} outside text of length {len(text)}")

    matcher = _Matcher(program, text, start if at_bol else None, ignore_case)
    fold = matcher.fold

    if program.must is not None:
        must = fold(program.must)
        if not any(
            fold(text[i:i + len(must)]) == must
            for i in _candidates(text, start, program.must[0], fold)
        ):
            return None

    if program.anchored:
        positions: list[int] | range = [start]
    elif program.start:
        positions = _candidates(text, start, program.start, fold)
    else:
        positions = range(start, len(text) + 1)

    for position in positions:
        if matcher.attempt(position):
            return Match(text, matcher.spans())
    return None


def expand(match: Match, template: str) -> str:
    """Build a replacement from ``template`` using the groups of ``match``.

    ``&`` stands for the whole match and ``\\0`` to ``\\9`` for groups;
    ``\\&`` and ``\\\\`` give a literal ``&`` and backslash.
    """
    if match is None or template is None:
        raise RegexpError("NULL parm to regsub")
    out: list[str] = []
    chars = iter(enumerate(template))
    for i, char in chars:
        following = template[i + 1] if i + 1 < len(template) else ""
        if char == "&":
            number = 0
        elif char == "\\" and following and "0" <= following <= "9":
            number = int(following)
            next(chars)
        else:
            if char == "\\" and following in ("\\", "&") and following:
                char = following
                next(chars)
            out.append(char)
            continue
        value = match.group(number)
        if value is not None:
            out.append(value)
    return "".join(out)