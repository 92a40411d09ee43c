import pytest

from automaton import EPSILON, InvalidModelError
from grammar import (
    DEFAULT_MAX_PARSE_STEPS,
    HIERARCHY,
    Grammar,
    GrammarType,
    ParseNode,
    build_grammar,
    classify_grammar,
    detect_grammar_type,
    parse,
    validate_grammar,
)


def ab_grammar():
    return build_grammar(
        {
            "S": [["A", "B"]],
            "A": [["a", "A"], ["a"]],
            "B": [["b", "B"], ["b"]],
        },
        "S",
    )


def balanced_grammar():
    return build_grammar({"S": [["a", "S", "b"], [EPSILON]]}, "S")


def test_build_grammar_collects_symbols():
    g = ab_grammar()

    assert g.S == "S"
    assert g.N == ["S", "A", "B"]
    assert g.Sigma == {"a", "b"}
    assert g.P["A"] == [("a", "A"), ("a",)]
    assert "A -> a A | a" in str(g)


def test_validate_grammar_errors():
    errors = validate_grammar(
        {"S": [["a", EPSILON], []], "A": []},
        "X",
        terminals=["a"],
    )
    reasons = " / ".join(e.reason for e in errors)

    assert "Start symbol 'X' has no productions" in reasons
    assert f"'{EPSILON}' must stand alone" in reasons
    assert "Empty right-hand side for 'S'" in reasons
    assert "Non-terminal 'A' has no alternatives" in reasons


def test_validate_grammar_unknown_symbol():
    errors = validate_grammar({"S": [["a", "c"]]}, "S", terminals=["a"])

    assert len(errors) == 1
    assert errors[0].symbol == "c"


def test_build_grammar_raises():
    with pytest.raises(InvalidModelError):
        build_grammar({}, "S")


def test_parse_tree_for_example():
    trace = parse(ab_grammar(), "aabb")

    assert trace.accepted
    assert str(trace.result.parse_tree) == "S(A(a,A(a)),B(b,B(b)))"
    assert trace.final_step.title == "Generate Parse Tree"
    assert trace.final_step.details == "S(A(a,A(a)),B(b,B(b)))"


def test_parse_records_steps():
    titles = [s.title for s in parse(ab_grammar(), "ab")]

    assert titles[:2] == ["Initialize Parser", "Begin Parsing"]
    assert "Try Production" in titles
    assert "Match Terminal" in titles
    assert "Parse Successful" in titles


@pytest.mark.parametrize("word", ["a", "b", "ba", "aabbc", "abab"])
def test_parse_rejects(word):
    trace = parse(ab_grammar(), word)

    assert not trace.accepted
    assert trace.result.parse_tree is None
    assert any(s.title == "Parse Failed" for s in trace)


def test_parse_needs_whole_input():
    # The first derivation found only covers "ab"
    g = build_grammar({"S": [["A", "B"]], "A": [["a"]], "B": [["b"], ["b", "B"]]}, "S")

    trace = parse(g, "abb")

    assert trace.accepted
    assert str(trace.result.parse_tree) == "S(A(a),B(b,B(b)))"
    assert any(s.title == "Backtrack" for s in trace)


@pytest.mark.parametrize("word, accepted", [("", True), ("ab", True), ("aabb", True), ("aab", False)])
def test_parse_epsilon_productions(word, accepted):
    assert parse(balanced_grammar(), word).accepted is accepted


def test_epsilon_leaf():
    tree = parse(balanced_grammar(), "").result.parse_tree

    assert str(tree) == f"S({EPSILON})"
    assert tree.leaves() == ""


def test_left_recursion_stops_at_depth_limit():
    g = build_grammar({"S": [["S", "a"], ["a"]]}, "S")

    trace = parse(g, "a" * 30, max_depth=20)

    assert not trace.accepted
    assert any(s.title == "Depth Limit Reached" for s in trace)


@pytest.mark.parametrize("word", ["a" * 12 + "b", "b" + "a" * 12])
def test_ambiguous_grammar_rejects_quickly(word):
    g = build_grammar({"S": [["S", "S"], ["a"]]}, "S")

    trace = parse(g, word)

    assert not trace.accepted
    assert not trace.result.timeout
    assert not any(s.title == "Try Production" for s in trace)
    assert trace[-2].title == "Parse Failed"


def test_nullable_ambiguous_grammar_terminates():
    g = build_grammar({"S": [["S", "S"], ["a", "S", "b"], [EPSILON]]}, "S")

    rejected = parse(g, "abba")
    bounded = parse(g, "abab")

    assert not rejected.accepted
    assert not rejected.result.timeout
    assert bounded.accepted or bounded.result.timeout
    assert len(bounded) <= DEFAULT_MAX_PARSE_STEPS + 3


def test_search_stops_at_step_limit():
    g = build_grammar({"S": [["S", "S"], ["a"]]}, "S")

    trace = parse(g, "aaaa", max_steps=5)

    assert not trace.accepted
    assert trace.result.timeout
    assert any(s.title == "Search Limit Reached" and s.is_error for s in trace)
    assert trace.final_step.title == "Generate Parse Tree"


def test_long_ambiguous_word_terminates():
    g = build_grammar({"S": [["S", "S"], ["a"]]}, "S")

    trace = parse(g, "a" * 16)

    assert trace.accepted or trace.result.timeout
    assert len(trace) <= DEFAULT_MAX_PARSE_STEPS + 3


def test_multi_character_terminals():
    g = build_grammar({"E": [["id", "+", "E"], ["id"]]}, "E")

    assert parse(g, "id+id").accepted
    assert not parse(g, "id+").accepted


def test_parse_node_helpers():
    node = ParseNode("S", (ParseNode("a"), ParseNode("T", (ParseNode("b"),))))

    assert node.depth() == 2
    assert node.leaves() == "ab"
    assert ParseNode("a").is_leaf


REGULAR = [
    (("S",), ("a", "S")),
    (("S",), ("b", "A")),
    (("A",), ("a", "A")),
    (("A",), ("b", "S")),
    (("A",), (EPSILON,)),
]
CONTEXT_FREE = [(("S",), ("a", "S", "b")), (("S",), (EPSILON,))]
CONTEXT_SENSITIVE = [
    (("S",), ("a", "S", "B", "C")),
    (("S",), ("a", "B", "C")),
    (("C", "B"), ("B", "C")),
    (("a", "B"), ("a", "b")),
    (("b", "B"), ("b", "b")),
    (("b", "C"), ("b", "c")),
    (("c", "C"), ("c", "c")),
]
UNRESTRICTED = [(("S",), ("A", "B")), (("A", "B"), ("a",))]


@pytest.mark.parametrize(
    "productions, expected",
    [
        (REGULAR, GrammarType.TYPE_3),
        (CONTEXT_FREE, GrammarType.TYPE_2),
        (CONTEXT_SENSITIVE, GrammarType.TYPE_1),
        (UNRESTRICTED, GrammarType.TYPE_0),
    ],
)
def test_detect_grammar_type(productions, expected):
    assert detect_grammar_type(productions, "S") == expected


def test_classify_grammar_trace():
    trace = classify_grammar(CONTEXT_FREE, "S")

    assert trace.result.grammar_type == GrammarType.TYPE_2
    assert trace[0].title == "Chomsky Hierarchy Overview"
    assert "Violated by S → aSb" in trace[1].details
    assert trace.final_step.title == "Properties"
    assert HIERARCHY[GrammarType.TYPE_2].machine == "Pushdown Automaton"


def test_grammar_classifies_itself():
    assert ab_grammar().grammar_type() == GrammarType.TYPE_2
    assert build_grammar({"S": [["a", "S"], ["a"]]}, "S").grammar_type() == GrammarType.TYPE_3
    assert balanced_grammar().classify().result.grammar_type == GrammarType.TYPE_2


def test_add_production_builds_grammar_incrementally():
    g = Grammar()
    g.set_start_symbol("S")
    g.add_production("S", ["a", "S"])
    g.add_production("S", [])
    g.add_production("S", ["a", "S"])

    assert g.P["S"] == [("a", "S"), (EPSILON,)]
