import json

import pytest

from automaton import FATransition
from traces import Result, Step, Trace


def test_trace_requires_final_last_step():
    with pytest.raises(ValueError):
        Trace((Step("Initialize", "start"),), Result(accepted=False))

    with pytest.raises(ValueError):
        Trace((), Result(accepted=False))


def test_trace_sequence_behaviour():
    steps = (
        Step("Initialize", "start", state="q0"),
        Step("Final Check", "done", state="q1", is_final=True, accepted=True),
    )
    trace = Trace(steps, Result(accepted=True))

    assert len(trace) == 2
    assert trace[0].state == "q0"
    assert [s.title for s in trace] == ["Initialize", "Final Check"]
    assert trace.final_step is steps[-1]
    assert trace.accepted


def test_to_dict_is_json_ready():
    transition = FATransition("q0", "a", "q1")
    trace = Trace(
        (
            Step("Transition", "q0 to q1", transitions=(transition,), data={"seen": {"b", "a"}}),
            Step("Complete", "done", output="xy", is_final=True, accepted=True),
        ),
        Result(accepted=True, output="xy"),
    )

    data = trace.to_dict()

    assert data["steps"][0]["transitions"] == [{"source": "q0", "symbol": "a", "target": "q1"}]
    assert data["steps"][0]["data"]["seen"] == ["a", "b"]
    assert data["result"]["output"] == "xy"
    json.dumps(data)


def test_format_mentions_verdict_and_output():
    trace = Trace(
        (Step("Timeout", "Maximum steps (3) reached", is_final=True, timeout=True),),
        Result(accepted=False, output="01", timeout=True),
    )

    text = trace.format()

    assert "Timeout: Maximum steps (3) reached" in text
    assert "Result: REJECTED (timeout)" in text
    assert "Output: 01" in text


def test_step_data_is_read_only():
    step = Step("Match", "matched", data={"production": "S → a"})

    with pytest.raises(TypeError):
        step.data["production"] = "S → b"
    assert step.data == {"production": "S → a"}
    assert hash(step) == hash(Step("Match", "matched", data={"production": "S → b"}))
