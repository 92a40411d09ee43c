import pytest

from automaton import EPSILON, build_dfa, build_mealy, build_moore, build_nfa, build_pda, build_tm
from simulators import (
    TAPE_LEFT_PADDING,
    TAPE_RIGHT_PADDING,
    simulate,
    simulate_dfa,
    simulate_mealy,
    simulate_moore,
    simulate_nfa,
    simulate_pda,
    simulate_tm,
)


def even_zeros_dfa():
    return build_dfa(
        ["q0", "q1"],
        ["0", "1"],
        [("q0", "0", "q1"), ("q0", "1", "q0"), ("q1", "0", "q0"), ("q1", "1", "q1")],
        "q0",
        ["q0"],
    )


def ends_with_ab_nfa():
    return build_nfa(
        ["q0", "q1", "q2"],
        ["a", "b"],
        [("q0", "a", "q0"), ("q0", "b", "q0"), ("q0", "a", "q1"), ("q1", "b", "q2")],
        "q0",
        ["q2"],
    )


def anbn_pda():
    # The last pushed symbol ends up on top of the stack
    return build_pda(
        ["q0", "q1", "q2"],
        ["a", "b"],
        [
            ("q0", "a", "Z", "q0", "ZA"),
            ("q0", "a", "A", "q0", "AA"),
            ("q0", "b", "A", "q1", ""),
            ("q1", "b", "A", "q1", ""),
            ("q1", EPSILON, "Z", "q2", "Z"),
        ],
        "q0",
        ["q2"],
        ["A", "Z"],
        "Z",
    )


def small_tm(transitions=None):
    return build_tm(
        ["q0", "q1", "qaccept", "qreject"],
        ["0", "1"],
        transitions
        or [
            ("q0", "0", "q1", "1", "R"),
            ("q0", "1", "q0", "1", "R"),
            ("q0", "_", "qaccept", "_", "R"),
        ],
        "q0",
        "qaccept",
        "qreject",
    )


@pytest.mark.parametrize(
    "word, accepted",
    [("", True), ("00", True), ("1001", True), ("0", False), ("10", False)],
)
def test_dfa_acceptance(word, accepted):
    assert simulate_dfa(even_zeros_dfa(), word).accepted is accepted


def test_dfa_trace_shape():
    trace = simulate_dfa(even_zeros_dfa(), "01")

    assert [s.title for s in trace] == ["Initialize", "Transition", "Transition", "Final Check"]
    assert [s.state for s in trace] == ["q0", "q1", "q1", "q1"]
    assert trace[1].remaining_input == "1"
    assert trace[1].transitions[0].symbol == "0"
    assert trace.final_step.is_final
    assert trace.final_step.accepted is False


def test_dfa_is_deterministic():
    dfa = even_zeros_dfa()

    assert simulate_dfa(dfa, "0110") == simulate_dfa(dfa, "0110")


def test_dfa_missing_transition_is_error_step():
    partial = build_dfa(["q0"], ["a", "b"], [("q0", "a", "q0")], "q0", ["q0"], require_total=False)

    trace = simulate_dfa(partial, "ab")

    assert trace.final_step.title == "Transition Failed"
    assert trace.final_step.is_error
    assert trace.final_step.position == 1
    assert not trace.accepted


def test_dfa_simulator_rejects_other_kinds():
    with pytest.raises(ValueError):
        simulate_dfa(ends_with_ab_nfa(), "ab")


@pytest.mark.parametrize(
    "word, accepted",
    [("ab", True), ("aab", True), ("bab", True), ("a", False), ("aba", False), ("", False)],
)
def test_nfa_acceptance(word, accepted):
    assert simulate_nfa(ends_with_ab_nfa(), word).accepted is accepted


def test_nfa_tracks_active_sets():
    trace = simulate_nfa(ends_with_ab_nfa(), "ab")

    assert trace[0].states == ("q0",)
    assert trace[1].states == ("q0", "q1")
    assert trace[2].states == ("q0", "q2")
    assert len(trace[1].transitions) == 2


def test_nfa_epsilon_moves_and_dead_end():
    nfa = build_nfa(
        ["s", "t", "u"],
        ["a"],
        [("s", EPSILON, "t"), ("t", "a", "u")],
        "s",
        ["u"],
    )

    assert simulate_nfa(nfa, "a").accepted
    trace = simulate_nfa(nfa, "aa")
    assert trace.final_step.title == "No Transitions"
    assert trace.final_step.is_error


@pytest.mark.parametrize(
    "word, accepted, last",
    [
        ("aabb", True, "Accept"),
        ("ab", True, "Accept"),
        ("aab", False, "Stack Mismatch"),
        ("abab", False, "No Transition"),
        ("ba", False, "Stack Mismatch"),
        ("c", False, "No Transition"),
    ],
)
def test_pda_anbn(word, accepted, last):
    trace = simulate_pda(anbn_pda(), word)

    assert trace.accepted is accepted
    assert trace.final_step.title == last


def test_pda_stack_contents():
    trace = simulate_pda(anbn_pda(), "aabb")

    stacks = [s.stack for s in trace]
    assert stacks[0] == ("Z",)
    assert stacks[1] == ("Z", "A")
    assert stacks[2] == ("Z", "A", "A")
    assert trace.final_step.stack == ("Z",)
    assert trace.final_step.state == "q2"


def test_pda_step_ceiling():
    looping = build_pda(
        ["q0", "q1"],
        ["a"],
        [("q0", EPSILON, EPSILON, "q0", "A")],
        "q0",
        ["q1"],
        ["A", "Z"],
    )

    trace = simulate_pda(looping, "a", max_steps=10)

    assert trace.final_step.title == "Timeout"
    assert trace.final_step.timeout
    assert trace.result.timeout
    assert not trace.accepted


def test_tm_accepts():
    trace = simulate_tm(small_tm(), "11")

    assert trace.accepted
    assert trace.final_step.state == "qaccept"
    assert not trace.result.timeout
    assert trace.final_step.step_count == 3


def test_tm_halts_without_timeout():
    trace = simulate_tm(small_tm(), "110")

    assert trace.final_step.is_final
    assert not trace.result.timeout
    assert len(trace) < 10


def test_tm_tape_layout():
    trace = simulate_tm(small_tm(), "10")
    first = trace[0]

    assert len(first.tape) == TAPE_LEFT_PADDING + 2 + TAPE_RIGHT_PADDING
    assert first.head == TAPE_LEFT_PADDING
    assert first.tape[first.head] == "1"


def test_tm_reject_state():
    tm = small_tm([("q0", "0", "qreject", "0", "R"), ("q0", "1", "q0", "1", "R")])

    trace = simulate_tm(tm, "10")

    assert trace.final_step.title == "Reject"
    assert not trace.accepted


def test_tm_timeout_never_hangs():
    tm = small_tm([("q0", "_", "q0", "_", "R")])

    trace = simulate_tm(tm, "", max_steps=50)

    assert trace.final_step.title == "Timeout"
    assert trace.result.timeout
    assert trace.final_step.step_count == 50


def test_tm_grows_tape_to_the_left():
    tm = small_tm([("q0", "_", "q1", "_", "L"), ("q1", "_", "q1", "_", "L")])

    trace = simulate_tm(tm, "", max_steps=TAPE_LEFT_PADDING + 3)

    assert trace.result.timeout
    assert trace.final_step.head == 0
    assert len(trace.final_step.tape) > TAPE_LEFT_PADDING + TAPE_RIGHT_PADDING


def test_mealy_outputs_on_edges():
    mealy = build_mealy(
        ["q0", "q1"],
        ["0", "1"],
        [("q0", "0", "q1", "x"), ("q0", "1", "q0", "y"), ("q1", "0", "q1", "y"), ("q1", "1", "q0", "x")],
        "q0",
    )

    trace = simulate_mealy(mealy, "011")

    assert trace.result.output == "xxy"
    assert [s.output for s in trace][-1] == "xxy"


def test_moore_emits_start_output():
    moore = build_moore(
        ["q0", "q1", "q2"],
        ["0", "1"],
        [("q0", "0", "q1"), ("q0", "1", "q0"), ("q1", "0", "q2"), ("q1", "1", "q0"), ("q2", "0", "q2"), ("q2", "1", "q1")],
        "q0",
        {"q0": "a", "q1": "b", "q2": "a"},
    )

    trace = simulate_moore(moore, "101")

    assert trace[0].output == "a"
    assert trace.result.output == "aaba"


def test_transducer_missing_transition_keeps_partial_output():
    mealy = build_mealy(["q0", "q1"], ["0", "1"], [("q0", "0", "q1", "x")], "q0")

    trace = simulate_mealy(mealy, "01")

    assert trace.final_step.is_error
    assert trace.result.output == "x"
    assert not trace.accepted


def test_simulate_dispatches_on_kind():
    assert simulate(even_zeros_dfa(), "00").accepted
    assert simulate(anbn_pda(), "ab", max_steps=20).accepted
