# stevied

This library holds the pattern-matching and searching parts of a small vi-like text editor. It has no dependencies outside the standard library.

## Modules

- `stevied.regcomp`: `compile_pattern(pattern)` turns a pattern into a `Program`, which is a tuple of `Node`s, each with an `Opcode`.
  - Supported syntax: `^ $ . [...] [^...] ( ) | * + ?` and backslash escapes.
  - Up to nine capture groups are allowed.
  - A malformed pattern raises `RegexpError`, which is a subclass of `ValueError`. The message is the one the editor shows, for example `"unmatched ()"`, `"nested *?+"` or `"?+* follows nothing"`.
- `stevied.regexec`:
  - `search(program, text, at_bol, ignore_case, start)` returns the leftmost `Match`, or `None`.
    - `^` matches only at `start`, and only when `at_bol` is true.
    - `ignore_case` folds ASCII letters.
  - `Match` has `start`, `end`, `group(n)` and `group_span(n)`.
  - `expand(match, template)` builds a replacement string:
    - `&` is the whole match.
    - `\0`…`\9` are the groups.
    - `\&` and `\\` give a literal `&` and a literal backslash.
- `stevied.search` works on a buffer, which is a non-empty list of strings with one string per line. Positions are zero-based `Position(row, index)` values.
  - `find_forward` and `find_backward` search for a pattern, with optional wrap-around and case folding. The pattern understands `\<`, `\>` and `\/`, and a parenthesis in it matches a literal parenthesis.
  - `Searcher` remembers the last pattern and direction for `n`/`N`-style repeats (`search`, `repeat`). It also remembers the last character search for `f`/`F`/`t`/`T` (`find_char`, `repeat_char`). `repeat` raises `SearchError` if nothing has been searched yet.
  - `substitute(lines, first, last, "/pat/repl/g", ignore_case)` returns a tuple of three items: the new lines, the number of lines changed, and the row of the last line changed.
  - `glob_lines(lines, first, last, "/pat/d", ignore_case)` deletes the matching lines, and `"/pat/p"` (the default) prints them. It returns a `GlobResult`.
  - `match_bracket` finds the partner of `()`, `[]` or `{}`.
  - `find_function` finds the next or previous line that starts with `{`.
  - `forward_word`, `backward_word` and `end_of_word` give the word motions. Pass `bigword=True` for the `W`/`B`/`E` forms.
  - `Direction.FORWARD` and `Direction.BACKWARD` select the direction.
- `stevied.version`: `version_string()` returns the version banner.

## Examples

Compile a pattern, match it and expand a template:

```python
from stevied.regcomp import compile_pattern
from stevied.regexec import search, expand

prog = compile_pattern("f(o+)")
m = search(prog, "a foooo b", at_bol=True, ignore_case=False, start=0)
print(m.group(1))            # "oooo"
print(expand(m, "[&|\\1]"))  # "[foooo|oooo]"
```

Search a buffer, substitute and delete lines:

```python
from stevied.search import Position, find_forward, substitute, glob_lines

lines = ["alpha", "beta gamma"]
print(find_forward(lines, Position(0, 0), "gam"))   # Position(row=1, index=5)

new, changed, row = substitute(["foo bar foo"], 0, None, "/foo/baz/g")
print(new, changed, row)                            # ['baz bar baz'] 1 0

result = glob_lines(["a1", "b", "a2"], None, None, "/a/d")
print(result.lines, result.count)                   # ['b'] 2
```

## What it does not do

This is a library. It has no editor program, no command to run, no terminal or screen handling, no key input, no `:set` parameter table and no file reading or writing. Options such as wrap-around and ignore-case are passed to each function as arguments.

## Tests

```
pip install -e .[test]
pytest
```