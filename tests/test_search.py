import pytest

from stevied.search import (
    BEGWORD,
    ENDWORD,
    Direction,
    GlobResult,
    Position,
    SearchError,
    Searcher,
    backward_word,
    end_of_word,
    find_backward,
    find_forward,
    find_function,
    forward_word,
    glob_lines,
    map_pattern,
    match_bracket,
    substitute,
)


# -- map_pattern -------------------------------------------------------


def test_map_pattern_word_boundaries():
    assert map_pattern("\\<foo\\>") == (BEGWORD + "foo" + ENDWORD, True)


def test_map_pattern_makes_parentheses_literal():
    mapped, begword = map_pattern("a(b)")
    assert mapped == "a\\(b\\)"
    assert begword is False


def test_map_pattern_slash_and_other_escapes():
    assert map_pattern("a\\/b\\.c") == ("a/b\\.c", False)


# -- find_forward / find_backward --------------------------------------


def test_find_forward_next_line():
    lines = ["alpha", "beta gamma", "delta"]
    found = find_forward(lines, Position(0, 0), "gamma")
    assert found == Position(1, lines[1].index("gamma"))


def test_find_forward_skips_cursor_character():
    lines = ["aXa"]
    assert find_forward(lines, Position(0, 0), "a") == Position(0, lines[0].rindex("a"))


def test_find_forward_wrapscan():
    lines = ["target", "x", "y"]
    assert find_forward(lines, Position(2, 0), "target", wrapscan=True) == Position(0, 0)
    assert find_forward(lines, Position(2, 0), "target", wrapscan=False) is None


def test_find_forward_start_of_line():
    lines = ["ab", "bc"]
    assert find_forward(lines, Position(0, 0), "^b") == Position(1, 0)


def test_find_forward_ignore_case():
    lines = ["x", "HELLO"]
    assert find_forward(lines, Position(0, 0), "hello", ignore_case=True) == Position(1, 0)
    assert find_forward(lines, Position(0, 0), "hello", wrapscan=False) is None


def test_find_forward_begin_word_lands_on_word():
    lines = ["foobar bar"]
    found = find_forward(lines, Position(0, 0), "\\<bar")
    assert found == Position(0, lines[0].rindex("bar"))


def test_find_backward_previous_line_last_match():
    lines = ["foo x foo", "bar"]
    found = find_backward(lines, Position(1, 0), "foo")
    assert found == Position(0, lines[0].rindex("foo"))


def test_find_backward_same_line_before_cursor():
    lines = ["foo foo foo"]
    found = find_backward(lines, Position(0, lines[0].rindex("foo")), "foo")
    assert found == Position(0, lines[0].index("foo", 1))


def test_find_backward_empty_pattern_finds_nothing():
    assert find_backward(["abc"], Position(0, 2), "") is None


def test_find_backward_without_wrapscan():
    lines = ["a", "zzz", "b"]
    assert find_backward(lines, Position(0, 0), "zzz", wrapscan=False) is None
    assert find_backward(lines, Position(0, 0), "zzz", wrapscan=True) == Position(1, 0)


def test_invalid_pattern_raises():
    with pytest.raises(SearchError, match="Invalid search string"):
        find_forward(["abc"], Position(0, 0), "a**")


# -- Searcher ----------------------------------------------------------


def test_searcher_repeat_and_reverse():
    lines = ["x one", "x two", "x three"]
    searcher = Searcher()
    first = searcher.search(lines, Position(0, 0), Direction.FORWARD, "x")
    assert first == Position(1, 0)
    second = searcher.repeat(lines, first)
    assert second == Position(2, 0)
    back = searcher.repeat(lines, second, reverse=True)
    assert back == first
    assert searcher.last_direction is Direction.FORWARD


def test_searcher_repeat_without_pattern_raises():
    with pytest.raises(SearchError):
        Searcher().repeat(["abc"], Position(0, 0))


def test_find_char_forward_and_till():
    line = "hello world"
    searcher = Searcher()
    assert searcher.find_char(line, 0, "o", Direction.FORWARD) == line.index("o")
    assert searcher.find_char(line, 0, "o", Direction.FORWARD, till=True) == line.index("o") - 1


def test_repeat_char_continues_and_reverses():
    line = "hello world"
    searcher = Searcher()
    first = searcher.find_char(line, 0, "o", Direction.FORWARD)
    second = searcher.repeat_char(line, first)
    assert second == line.index("o", first + 1)
    assert searcher.repeat_char(line, second, reverse=True) == first
    assert searcher.last_char_direction is Direction.FORWARD


def test_find_char_missing_returns_none():
    searcher = Searcher()
    assert searcher.find_char("abc", 0, "z", Direction.FORWARD) is None
    assert Searcher().repeat_char("abc", 0) is None


# -- substitute --------------------------------------------------------


def test_substitute_global():
    lines = ["foo foo", "bar", "foo"]
    result, count, cursor = substitute(lines, 0, 2, "/foo/baz/g")
    assert result == [line.replace("foo", "baz") for line in lines]
    assert count == sum("foo" in line for line in lines)
    assert cursor == len(lines) - 1


def test_substitute_first_only():
    lines = ["foo foo"]
    result, count, _ = substitute(lines, 0, None, "/foo/baz/")
    assert result == [lines[0].replace("foo", "baz", 1)]
    assert count == 1


def test_substitute_groups_and_ampersand():
    assert substitute(["ab"], 0, 0, "/(a)(b)/\\2\\1/")[0] == ["ba"]
    assert substitute(["foo"], 0, 0, "/o/[&]/")[0] == ["f[o]o"]


def test_substitute_ignore_case_and_no_match():
    assert substitute(["FOO"], 0, 0, "/foo/x/", ignore_case=True)[0] == ["x"]
    lines = ["abc"]
    assert substitute(lines, 0, 0, "/zzz/x/") == (lines, 0, None)


def test_substitute_empty_pattern_raises():
    with pytest.raises(SearchError, match="NULL pattern specified"):
        substitute(["abc"], 0, 0, "//x/")


# -- glob_lines --------------------------------------------------------


def test_glob_delete_whole_buffer():
    lines = ["a1", "b", "a2"]
    result = glob_lines(lines, None, None, "/a/d")
    assert isinstance(result, GlobResult)
    assert result.lines == [line for line in lines if "a" not in line]
    assert result.count == sum("a" in line for line in lines)


def test_glob_delete_limited_range():
    lines = ["a1", "b", "a2"]
    result = glob_lines(lines, 0, 0, "/a/d")
    assert result.lines == lines[1:]
    assert result.count == 1


def test_glob_delete_everything_leaves_empty_line():
    assert glob_lines(["x", "x"], None, None, "/x/d").lines == [""]


def test_glob_print_default():
    lines = ["a1", "b", "a2"]
    result = glob_lines(lines, None, None, "/a")
    assert result.lines == lines
    assert result.printed == [(n + 1, t) for n, t in enumerate(lines) if "a" in t]


def test_glob_invalid_command_character():
    with pytest.raises(SearchError, match="Invalid command character"):
        glob_lines(["abc"], None, None, "/a/x")


# -- brackets and functions --------------------------------------------


def test_match_bracket_forward_and_backward():
    lines = ["f(a[b]c)"]
    open_at = Position(0, lines[0].index("("))
    close_at = Position(0, lines[0].index(")"))
    assert match_bracket(lines, open_at) == close_at
    assert match_bracket(lines, close_at) == open_at


def test_match_bracket_nested_and_multiline():
    assert match_bracket(["((x))"], Position(0, 0)) == Position(0, len("((x))") - 1)
    assert match_bracket(["{", "x", "}"], Position(0, 0)) == Position(2, 0)
    assert match_bracket(["abc"], Position(0, 0)) is None


def test_find_function():
    lines = ["int f()", "{", "}", "{"]
    assert find_function(lines, 0, Direction.FORWARD) == 1
    assert find_function(lines, 3, Direction.BACKWARD) == 1
    assert find_function(lines, 3, Direction.FORWARD) is None


# -- word motions ------------------------------------------------------


def test_forward_word():
    lines = ["foo bar"]
    assert forward_word(lines, Position(0, 0)) == Position(0, lines[0].index("bar"))


def test_forward_word_punctuation_and_bigword():
    lines = ["foo.bar baz"]
    assert forward_word(lines, Position(0, 0)) == Position(0, lines[0].index("."))
    assert forward_word(lines, Position(0, 0), bigword=True) == Position(0, lines[0].index("baz"))


def test_forward_word_stops_on_blank_line():
    lines = ["foo", "", "bar"]
    assert forward_word(lines, Position(0, 0)) == Position(1, 0)


def test_backward_word():
    lines = ["x", "foo bar"]
    bar = lines[1].index("bar")
    assert backward_word(lines, Position(1, bar)) == Position(1, 0)
    assert backward_word(lines, Position(1, bar + 1)) == Position(1, bar)


def test_end_of_word():
    lines = ["foo bar"]
    assert end_of_word(lines, Position(0, 0)) == Position(0, len("foo") - 1)
    assert end_of_word(lines, Position(0, len("foo"))) == Position(0, len(lines[0]) - 1)


def test_motions_are_ordered():
    lines = ["one two three", "four"]
    pos = Position(0, 0)
    visited = [pos]
    while (pos := forward_word(lines, pos)) is not None:
        visited.append(pos)
    assert visited == sorted(visited)
    assert visited[-1] == Position(1, 0)