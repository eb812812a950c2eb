import pytest

from macroproc.core import MacroEngine
from macroproc.exceptions import ParseError
from macroproc.expansion import MacroExpander


def test_nested_expansion(engine):
    engine.define("A", "1")
    engine.define("B", "A+A")
    assert engine.expand("B") == ("1+1", True)


def test_undefined_passes_through(engine):
    assert engine.expand("FOO") == ("FOO", False)


def test_empty_macro_is_a_macro(engine):
    engine.define("EMPTY")
    assert engine.expand("EMPTY") == ("", True)


def test_mutual_recursion_terminates(engine):
    engine.define("X", "X Y")
    engine.define("Y", "X")
    text, was_macro = engine.expand("X")
    assert was_macro
    assert text == "X X"


def test_self_reference(engine):
    engine.define("FOO", "FOO")
    assert engine.expand("FOO") == ("FOO", True)


def test_indirect_reference_from_both_sides(engine):
    engine.define("x", "(4 + y)")
    engine.define("y", "(2 * x)")
    assert engine.expand("x")[0] == "(4 + (2 * x))"
    assert engine.expand("y")[0] == "(2 * (4 + y))"


def test_same_macro_twice_in_value(engine):
    engine.define("I", "1")
    engine.define("J", "I + 2")
    engine.define("K", "I + J")
    assert engine.expand("K")[0] == "1 + 1 + 2"


def test_cycle_guard_is_per_call(table):
    table.put("A", "B A")
    table.put("B", "b")
    expander = MacroExpander(table)
    assert expander.expand("A")[0] == "b A"
    assert expander.expand("A")[0] == "b A"
    assert expander.seen == set()


def test_expand_text_keeps_delimiters(engine):
    engine.define("N", "10")
    assert engine.expander.expand_text("a[N] = N;\n") == "a[10] = 10;\n"


def test_expander_does_not_mutate_table(engine, table):
    engine.define("A", "B")
    engine.define("B", "A")
    engine.expand("A")
    assert sorted(table.items()) == [("A", "B"), ("B", "A")]


def test_long_chain(engine):
    engine.define("M0", "end")
    for i in range(1, 1000):
        engine.define(f"M{i}", f"M{i - 1}")
    assert engine.expand("M999") == ("end", True)
    assert engine.expander.seen == set()


def test_process_line_directives(engine):
    assert engine.process_line("#define A 1\n", is_directive=True) == ""
    assert engine.process_line("A + A\n") == "1 + 1\n"
    assert engine.process_line("#undef A\n", is_directive=True) == ""
    assert engine.process_line("A\n") == "A\n"


def test_process_line_inactive(engine):
    assert engine.process_line("#define A 1\n", is_directive=True,
                               active=False) == ""
    assert "A" not in engine.symbols
    assert engine.process_line("text\n", active=False) == ""


def test_process_line_unknown_directive(engine):
    with pytest.raises(ParseError):
        engine.process_line("#include <x.h>\n", is_directive=True)


@pytest.mark.parametrize("definition,expected", [
    ("NAME=VALUE", ("NAME", "VALUE")),
    ("NAME VALUE", ("NAME", "VALUE")),
    ("NAME", ("NAME", "")),
    ("NAME =  a b  ", ("NAME", "a b")),
    ("NAME\t(1 + 2)", ("NAME", "(1 + 2)")),
])
def test_define_from_string(engine, definition, expected):
    engine.define_from_string(definition)
    name, value = expected
    assert engine.symbols.get(name) == value


def test_define_without_name(engine):
    with pytest.raises(ParseError):
        engine.define_from_string("=1")
    with pytest.raises(ParseError):
        engine.process_line("#define\n", is_directive=True)


def test_undef_without_name_is_ignored(engine, caplog):
    engine.define("A", "1")
    engine.process_line("#undef   \n", is_directive=True)
    assert engine.symbols.get("A") == "1"
    assert "without a macro name" in caplog.text


def test_undef_absent(engine):
    assert not engine.undef("NOPE")
    assert not engine.undef("NOPE")
    assert len(engine.symbols) == 0


def test_predefined_macros():
    engine = MacroEngine(defines={"DEBUG": "1", "EMPTY": ""})
    assert engine.expand("DEBUG") == ("1", True)
    assert engine.expand("EMPTY") == ("", True)


def test_long_chain_in_text(engine):
    engine.define("M0", "end")
    for i in range(1, 1000):
        engine.define(f"M{i}", f"(M{i - 1})")
    text = engine.expander.expand_text("M999;\n")
    assert text == "(" * 999 + "end" + ")" * 999 + ";\n"


def test_nul_in_definition(engine):
    with pytest.raises(ParseError):
        engine.define("A", "x\0y")
    with pytest.raises(ParseError) as excinfo:
        engine.process_line("#define B x\0y\n", is_directive=True)
    assert "NUL character" in str(excinfo.value.__cause__)
    assert len(engine.symbols) == 0
