import pytest

from automaton import (
    EPSILON,
    AutomatonKind,
    FATransition,
    InvalidModelError,
    MooreTransition,
    build_dfa,
    build_moore,
    build_nfa,
    build_tm,
    validate_dfa,
    validate_moore,
    validate_pda,
    validate_tm,
)

EVEN_ZEROS = [
    ("q0", "0", "q1"),
    ("q0", "1", "q0"),
    ("q1", "0", "q0"),
    ("q1", "1", "q1"),
]


def test_build_dfa_coerces_tuples():
    dfa = build_dfa(["q0", "q1"], ["0", "1"], EVEN_ZEROS, "q0", ["q0"])

    assert dfa.kind == AutomatonKind.DFA
    assert dfa.states == ("q0", "q1")
    assert all(isinstance(t, FATransition) for t in dfa.transitions)
    assert dfa.transition_map()[("q1", "0")].target == "q0"
    assert dfa.is_accepting("q0")
    assert not dfa.is_accepting("q1")


def test_validate_dfa_collects_every_error():
    errors = validate_dfa(
        ["q0", "q1"],
        ["0", "1"],
        [("q0", "0", "q1"), ("q0", "2", "q1"), ("q1", "0", "qx")],
        "qs",
        ["q9"],
    )
    reasons = [e.reason for e in errors]

    assert "Start state must be one of the defined states" in reasons
    assert "Final state 'q9' is not in the state set" in reasons
    assert "Transition symbol '2' is not in alphabet" in reasons
    assert "Transition to state 'qx' is not valid" in reasons
    assert "Missing transition from state 'q0' on symbol '1'" in reasons
    assert "Missing transition from state 'q1' on symbol '1'" in reasons


def test_validate_dfa_reports_state_and_symbol():
    errors = validate_dfa(["q0"], ["a", "b"], [("q0", "a", "q0")], "q0")

    assert len(errors) == 1
    assert errors[0].state == "q0"
    assert errors[0].symbol == "b"
    assert str(errors[0]) == "Missing transition from state 'q0' on symbol 'b'"


def test_validate_dfa_rejects_duplicates_and_epsilon():
    errors = validate_dfa(
        ["q0"],
        ["a", EPSILON],
        [("q0", "a", "q0"), ("q0", "a", "q0")],
        "q0",
    )
    reasons = [e.reason for e in errors]

    assert f"'{EPSILON}' cannot be a DFA input symbol" in reasons
    assert "Duplicate transition from state 'q0' on symbol 'a'" in reasons


def test_partial_dfa_allowed_when_not_required_total():
    assert validate_dfa(["q0"], ["a", "b"], [("q0", "a", "q0")], "q0", require_total=False) == []


def test_build_raises_with_all_errors():
    with pytest.raises(InvalidModelError) as info:
        build_dfa(["q0"], [], [("q0", "a", "q1")], "q1")

    assert len(info.value.errors) >= 3
    assert isinstance(info.value, ValueError)
    assert "At least one symbol in alphabet is required" in str(info.value)


def test_epsilon_closure_follows_chains():
    nfa = build_nfa(
        ["q0", "q1", "q2", "q3"],
        ["a"],
        [("q0", EPSILON, "q1"), ("q1", EPSILON, "q2"), ("q2", "a", "q3")],
        "q0",
        ["q3"],
    )

    assert nfa.epsilon_closure(["q0"]) == frozenset({"q0", "q1", "q2"})
    assert nfa.epsilon_closure(["q3"]) == frozenset({"q3"})
    assert nfa.input_symbols == ("a",)


def test_ordered_uses_declaration_order():
    nfa = build_nfa(["b", "a", "c"], ["x"], [], "b")

    assert nfa.ordered({"c", "a", "b"}) == ["b", "a", "c"]


def test_validate_moore_requires_total_output_function():
    errors = validate_moore(
        ["q0", "q1"],
        ["0"],
        [MooreTransition("q0", "0", "q1")],
        "q0",
        {"q0": "a", "q2": "b"},
    )
    reasons = [e.reason for e in errors]

    assert "Missing output for state 'q1'" in reasons
    assert "Output defined for unknown state 'q2'" in reasons


def test_build_moore_derives_output_alphabet():
    moore = build_moore(
        ["q0", "q1"],
        ["0"],
        [("q0", "0", "q1"), ("q1", "0", "q0")],
        "q0",
        {"q0": "a", "q1": "b"},
    )

    assert moore.output_alphabet == ("a", "b")
    assert moore.output_of("q1") == "b"


def test_validate_pda_checks_stack_symbols():
    errors = validate_pda(
        ["q0"],
        ["a"],
        [("q0", "a", "X", "q0", "AY")],
        "q0",
        ["q0"],
        ["A", "Z"],
        "Z",
    )
    symbols = {e.symbol for e in errors}

    assert symbols == {"X", "Y"}


def test_validate_tm():
    errors = validate_tm(
        ["q0", "qa"],
        ["0", "_"],
        [("q0", "0", "qa", "1", "S")],
        "q0",
        "qa",
        "qa",
    )
    reasons = [e.reason for e in errors]

    assert "Accept and reject states must differ" in reasons
    assert "Blank symbol '_' cannot be an input symbol" in reasons
    assert "Head move 'S' must be 'L' or 'R'" in reasons


def test_build_tm_accepts_tape_symbols():
    tm = build_tm(
        ["q0", "qa"],
        ["0"],
        [("q0", "0", "q0", "X", "R"), ("q0", "_", "qa", "_", "L")],
        "q0",
        "qa",
        tape_alphabet=["X"],
    )

    assert tm.kind == AutomatonKind.TM
    assert tm.blank_symbol == "_"
    assert tm.reject_state is None


def test_malformed_rows_are_reported():
    errors = validate_dfa(["q0"], ["a"], [("q0", "a")], "q0", ["q0"])

    assert "Transition ('q0', 'a') has 2 fields, expected 3" in [e.reason for e in errors]

    with pytest.raises(InvalidModelError) as info:
        build_dfa(["q0"], ["a"], [("q0", "a"), ("q0", "a", "q0", "extra")], "q0")

    reasons = [e.reason for e in info.value.errors]
    assert "Transition ('q0', 'a') has 2 fields, expected 3" in reasons
    assert "Transition ('q0', 'a', 'q0', 'extra') has 4 fields, expected 3" in reasons


def test_pda_rows_may_omit_push():
    assert validate_pda(["q0"], ["a"], [("q0", "a", "Z", "q0")], "q0") == []

    errors = validate_pda(["q0"], ["a"], [("q0", "a", "q0")], "q0")
    assert [e.reason for e in errors] == ["Transition ('q0', 'a', 'q0') has 3 fields, expected 4 or 5"]


def test_moore_output_function_is_read_only():
    moore = build_moore(["q0"], ["0"], [("q0", "0", "q0")], "q0", {"q0": "a"})

    with pytest.raises(TypeError):
        moore.output_function["q0"] = "b"
    assert moore.output_of("q0") == "a"
    assert hash(moore) == hash(build_moore(["q0"], ["0"], [("q0", "0", "q0")], "q0", {"q0": "a"}))
