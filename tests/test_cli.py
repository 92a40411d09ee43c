import cli

DEFINITIONS = """
evens:
type: dfa
states: q0, q1
alphabet: 0, 1
start: q0
accept: q0
transitions:
q0,0,q1
q0,1,q0
q1,0,q0
q1,1,q1

ab:
type: cfg
productions:
S -> A B
A -> a A | a
B -> b B | b
"""


def run_session(monkeypatch, capsys, commands, argv=()):
    feed = iter(commands)

    def fake_input(prompt=""):
        try:
            return next(feed)
        except StopIteration:
            raise EOFError

    monkeypatch.setattr("builtins.input", fake_input)
    cli.main(list(argv))
    return capsys.readouterr().out


def test_session(tmp_path, monkeypatch, capsys):
    path = tmp_path / "defs.txt"
    path.write_text(DEFINITIONS, encoding="utf-8")

    out = run_session(
        monkeypatch,
        capsys,
        [
            f"load {path}",
            "list",
            "run evens 00",
            "parse ab aabb",
            "classify ab",
            "pump regular 2 2 aaa x=,y=a,z=aa L = {a^n | n ≥ 0}",
            "delete evens",
            "run evens 00",
            "bogus",
            "exit",
        ],
    )

    assert "Loaded 1 automata: evens and 1 grammars: ab" in out
    assert "evens: DFA, 2 states" in out
    assert "Result: ACCEPTED" in out
    assert "Parse tree: S(A(a,A(a)),B(b,B(b)))" in out
    assert "ab: Type 2 - Context-Free Grammar" in out
    assert "Pumped string: aaaa" in out
    assert "Deleted: evens" in out
    assert "Automaton not found: evens" in out
    assert "Unknown command: bogus" in out
    assert out.rstrip().endswith("Goodbye!")


def test_conversion_command(tmp_path, monkeypatch, capsys):
    path = tmp_path / "nfa.txt"
    path.write_text(
        "type: nfa\nstates: q0, q1\nalphabet: a\nstart: q0\naccept: q1\n"
        "transitions:\nq0,a,q0\nq0,a,q1\n",
        encoding="utf-8",
    )

    out = run_session(monkeypatch, capsys, ["to_dfa nfa", "show nfa_dfa", "run nfa_dfa aa"], argv=[str(path)])

    assert "Created: nfa_dfa" in out
    assert "{q0,q1}" in out
    assert "Result: ACCEPTED" in out


def test_errors_are_reported_not_raised(monkeypatch, capsys):
    out = run_session(monkeypatch, capsys, ["load /does/not/exist.txt", "pump regular x 1 a y=a L"])

    assert out.count("Error:") == 2
