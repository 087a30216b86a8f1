"""Compiler for the editor's regular expressions.

A pattern is compiled into a linear list of nodes describing a
nondeterministic finite-state machine.  Each node carries an opcode, a
"next" link (an index into the node list) and, depending on the opcode,
a literal operand.  The operand of BRANCH, STAR and PLUS nodes is the
node that immediately follows them in the list.

Syntax: ``^ $ . [...] [^...] ( ) | * + ?`` and backslash escapes.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

NSUBEXP = 10
"""Number of capture slots, slot 0 being the whole match."""

MAGIC = 0o234
"""Leading byte of the serialised program; kept for size accounting."""

_MAX_SIZE = 32767
_META = "^$.[()|?+*\\"
_MULTI = "*+?"


class RegexpError(ValueError):
    """Raised when a pattern cannot be compiled."""


class Opcode(enum.IntEnum):
    """Node kinds of a compiled program."""

    END = 0  # end of program
    BOL = 1  # match "" at beginning of line
    EOL = 2  # match "" at end of line
    ANY = 3  # match any one character
    ANYOF = 4  # match any character in the operand
    ANYBUT = 5  # match any character not in the operand
    BRANCH = 6  # match this alternative, or the next
    BACK = 7  # match "", next link points backward
    EXACTLY = 8  # match the operand string
    NOTHING = 9  # match the empty string
    STAR = 10  # match the following simple node 0 or more times
    PLUS = 11  # match the following simple node 1 or more times
    OPEN = 20  # start of capture group ``group``
    CLOSE = 30  # end of capture group ``group``


class _Flag(enum.IntFlag):
    WORST = 0
    HASWIDTH = 1  # never matches the empty string
    SIMPLE = 2  # usable as a STAR/PLUS operand
    SPSTART = 4  # starts with * or +


_STRING_OPS = (Opcode.EXACTLY, Opcode.ANYOF, Opcode.ANYBUT)


@dataclass
class Node:
    """One node of a compiled program."""

    op: Opcode
    next: int | None = None
    operand: str = ""
    group: int = 0


@dataclass(frozen=True)
class Program:
    """A compiled regular expression.

    ``start`` is the character every match must begin with ("" if none is
    known), ``anchored`` tells whether matches can only begin at the start
    of a line, and ``must`` is a literal every match must contain, if the
    compiler found one worth checking.
    """

    nodes: tuple[Node, ...]
    start: str = ""
    anchored: bool = False
    must: str | None = None
    groups: int = 0
    size: int = field(default=0, compare=False)


class _Compiler:
    def __init__(self, pattern: str) -> None:
        self.pattern = pattern
        self.pos = 0
        self.npar = 1
        self.nodes: list[Node] = []

    # -- input helpers -------------------------------------------------

    def _peek(self, offset: int = 0) -> str:
        index = self.pos + offset
        return self.pattern[index] if index < len(self.pattern) else ""

    # -- emission helpers ----------------------------------------------

    def _node(self, op: Opcode, operand: str = "", group: int = 0) -> int:
        self.nodes.append(Node(op, None, operand, group))
        return len(self.nodes) - 1

    def _insert(self, op: Opcode, at: int) -> None:
        """Put a new operator node in front of the already-emitted operand."""
        for node in self.nodes:
            if node.next is not None and node.next >= at:
                node.next += 1
        self.nodes.insert(at, Node(op))

    def _next(self, index: int) -> int | None:
        return self.nodes[index].next

    def _tail(self, index: int, target: int) -> None:
        """Set the next link at the end of the chain starting at ``index``."""
        scan = index
        while (following := self.nodes[scan].next) is not None:
            scan = following
        self.nodes[scan].next = target

    def _optail(self, index: int | None, target: int) -> None:
        """Tail the operand chain of a BRANCH node; no-op for others."""
        if index is None or self.nodes[index].op != Opcode.BRANCH:
            return
        self._tail(index + 1, target)

    # -- grammar -------------------------------------------------------

    def reg(self, paren: bool) -> tuple[int, _Flag]:
        flags = _Flag.HASWIDTH
        parno = 0
        ret: int | None = None
        if paren:
            if self.npar >= NSUBEXP:
                raise RegexpError("too many ()")
            parno = self.npar
            self.npar += 1
            ret = self._node(Opcode.OPEN, group=parno)

        br, bflags = self.branch()
        if ret is not None:
            self._tail(ret, br)
        else:
            ret = br
        if not bflags & _Flag.HASWIDTH:
            flags &= ~_Flag.HASWIDTH
        flags |= bflags & _Flag.SPSTART

        while self._peek() == "|":
            self.pos += 1
            br, bflags = self.branch()
            self._tail(ret, br)
            if not bflags & _Flag.HASWIDTH:
                flags &= ~_Flag.HASWIDTH
            flags |= bflags & _Flag.SPSTART

        if paren:
            ender = self._node(Opcode.CLOSE, group=parno)
        else:
            ender = self._node(Opcode.END)
        self._tail(ret, ender)

        scan: int | None = ret
        while scan is not None:
            self._optail(scan, ender)
            scan = self._next(scan)

        if paren:
            closing = self._peek()
            self.pos += 1
            if closing != ")":
                raise RegexpError("unmatched ()")
        elif self.pos < len(self.pattern):
            if self._peek() == ")":
                raise RegexpError("unmatched ()")
            raise RegexpError("junk on end")
        return ret, flags

    def branch(self) -> tuple[int, _Flag]:
        flags = _Flag.WORST
        ret = self._node(Opcode.BRANCH)
        chain: int | None = None
        while self.pos < len(self.pattern) and self._peek() not in "|)":
            latest, pflags = self.piece()
            flags |= pflags & _Flag.HASWIDTH
            if chain is None:
                flags |= pflags & _Flag.SPSTART
            else:
                self._tail(chain, latest)
            chain = latest
        if chain is None:
            self._node(Opcode.NOTHING)
        return ret, flags

    def piece(self) -> tuple[int, _Flag]:
        ret, aflags = self.atom()
        op = self._peek()
        if not op or op not in _MULTI:
            return ret, aflags
        if not aflags & _Flag.HASWIDTH and op != "?":
            raise RegexpError("*+ operand could be empty")
        flags = _Flag.SPSTART if op != "+" else _Flag.HASWIDTH

        if op == "*" and aflags & _Flag.SIMPLE:
            self._insert(Opcode.STAR, ret)
        elif op == "*":
            # x* becomes (x&|) where & loops back to self.
            self._insert(Opcode.BRANCH, ret)
            self._optail(ret, self._node(Opcode.BACK))
            self._optail(ret, ret)
            self._tail(ret, self._node(Opcode.BRANCH))
            self._tail(ret, self._node(Opcode.NOTHING))
        elif op == "+" and aflags & _Flag.SIMPLE:
            self._insert(Opcode.PLUS, ret)
        elif op == "+":
            # x+ becomes x(&|) where & loops back to x.
            following = self._node(Opcode.BRANCH)
            self._tail(ret, following)
            self._tail(self._node(Opcode.BACK), ret)
            self._tail(following, self._node(Opcode.BRANCH))
            self._tail(ret, self._node(Opcode.NOTHING))
        else:
            # x? becomes (x|)
            self._insert(Opcode.BRANCH, ret)
            self._tail(ret, self._node(Opcode.BRANCH))
            following = self._node(Opcode.NOTHING)
            self._tail(ret, following)
            self._optail(ret, following)

        self.pos += 1
        nxt = self._peek()
        if nxt and nxt in _MULTI:
            raise RegexpError("nested *?+")
        return ret, flags

    def atom(self) -> tuple[int, _Flag]:
        flags = _Flag.WORST
        char = self._peek()
        self.pos += 1

        if char == "^":
            return self._node(Opcode.BOL), flags
        if char == "$":
            return self._node(Opcode.EOL), flags
        if char == ".":
            return self._node(Opcode.ANY), flags | _Flag.HASWIDTH | _Flag.SIMPLE
        if char == "[":
            return self._char_class(), flags | _Flag.HASWIDTH | _Flag.SIMPLE
        if char == "(":
            ret, inner = self.reg(True)
            return ret, flags | (inner & (_Flag.HASWIDTH | _Flag.SPSTART))
        if char in ("", "|", ")"):
            raise RegexpError("internal urp")
        if char in _MULTI:
            raise RegexpError("?+* follows nothing")
        if char == "\\":
            escaped = self._peek()
            if not escaped:
                raise RegexpError("trailing \\")
            self.pos += 1
            ret = self._node(Opcode.EXACTLY, escaped)
            return ret, flags | _Flag.HASWIDTH | _Flag.SIMPLE

        self.pos -= 1
        rest = self.pattern[self.pos:]
        length = next((i for i, c in enumerate(rest) if c in _META), len(rest))
        if length <= 0:
            raise RegexpError("internal disaster")
        ender = self._peek(length)
        if length > 1 and ender and ender in _MULTI:
            length -= 1  # leave the last char for the ?+* operator
        flags |= _Flag.HASWIDTH
        if length == 1:
            flags |= _Flag.SIMPLE
        literal = self.pattern[self.pos:self.pos + length]
        self.pos += length
        return self._node(Opcode.EXACTLY, literal), flags

    def _char_class(self) -> int:
        op = Opcode.ANYOF
        if self._peek() == "^":
            op = Opcode.ANYBUT
            self.pos += 1
        members: list[str] = []
        if self._peek() in ("]", "-") and self._peek():
            members.append(self._peek())
            self.pos += 1
        while self.pos < len(self.pattern) and self._peek() != "]":
            if self._peek() == "-":
                self.pos += 1
                if self._peek() in ("]", ""):
                    members.append("-")
                else:
                    low = ord(self.pattern[self.pos - 2]) + 1
                    high = ord(self.pattern[self.pos])
                    if low > high + 1:
                        raise RegexpError("invalid [] range")
                    members.extend(chr(c) for c in range(low, high + 1))
                    self.pos += 1
            else:
                members.append(self._peek())
                self.pos += 1
        if self._peek() != "]":
            raise RegexpError("unmatched []")
        self.pos += 1
        return self._node(op, "".join(members))

    # -- whole program -------------------------------------------------

    def size(self) -> int:
        total = 1  # magic byte
        for node in self.nodes:
            total += 3
            if node.op in _STRING_OPS:
                total += len(node.operand) + 1
        return total


def compile_pattern(pattern: str | None) -> Program:
    """Compile ``pattern`` into a :class:`Program`.

    Raises :class:`RegexpError` with the editor's message when the pattern
    is malformed.
    """
    if pattern is None:
        raise RegexpError("NULL argument")

    compiler = _Compiler(pattern)
    _, flags = compiler.reg(False)
    size = compiler.size()
    if size >= _MAX_SIZE:
        raise RegexpError("regexp too big")

    nodes = compiler.nodes
    start = ""
    anchored = False
    must: str | None = None

    first_next = nodes[0].next
    if first_next is not None and nodes[first_next].op == Opcode.END:
        scan: int | None = 1  # operand of the single top-level BRANCH
        head = nodes[1]
        if head.op == Opcode.EXACTLY:
            start = head.operand[0]
        elif head.op == Opcode.BOL:
            anchored = True

        if flags & _Flag.SPSTART:
            longest: str | None = None
            best = 0
            while scan is not None:
                node = nodes[scan]
                if node.op == Opcode.EXACTLY and len(node.operand) >= best:
                    longest = node.operand
                    best = len(node.operand)
                scan = node.next
            must = longest

    return Program(
        nodes=tuple(nodes),
        start=start,
        anchored=anchored,
        must=must,
        groups=compiler.npar - 1,
        size=size,
    )