from collections import defaultdict
from typing_extensions import *

from graphviz import Digraph

from automaton import (
    EPSILON,
    Automaton,
    AutomatonKind,
    MealyTransition,
    PDATransition,
    TMTransition,
    Transition,
)
from traces import Step

ACTIVE_FILL = "gold"
ACTIVE_EDGE = "red"


def edge_label(transition: Transition) -> str:
    if isinstance(transition, PDATransition):
        return f"{transition.symbol}, {transition.stack_top} → {transition.push or EPSILON}"
    if isinstance(transition, TMTransition):
        return f"{transition.read} → {transition.write}, {transition.move}"
    if isinstance(transition, MealyTransition):
        return f"{transition.symbol}/{transition.output}"
    return transition.symbol


def _state_label(automaton: Automaton, state: str) -> str:
    if automaton.kind == AutomatonKind.MOORE:
        return f"{state}/{automaton.output_of(state)}"
    return state


def _is_accepting(automaton: Automaton, state: str) -> bool:
    if automaton.kind == AutomatonKind.TM:
        return state == automaton.accept_state
    return automaton.is_accepting(state)


def to_digraph(automaton: Automaton, step: Optional[Step] = None) -> Digraph:
    """
    Graphviz description of `automaton`.

    With a `step`, its current state(s) are filled and the transitions it
    fired are drawn in red. Nothing is rendered.
    """
    title = automaton.kind.name
    dot = Digraph(
        name=title,
        format="png",
        graph_attr={
            "rankdir": "LR",
            "splines": "true",
            "nodesep": "0.8",
            "ranksep": "1.2",
            "label": title,
            "labelloc": "t",
            "fontsize": "14",
            "fontname": "Arial",
            "bgcolor": "white",
            "pad": "0.5",
        },
        node_attr={
            "shape": "circle",
            "fontsize": "14",
            "fontname": "Arial",
            "style": "filled",
            "fillcolor": "lightblue",
            "color": "black",
            "penwidth": "2",
        },
        edge_attr={
            "fontsize": "12",
            "fontname": "Arial",
            "arrowsize": "0.8",
            "penwidth": "1.5",
            "color": "black",
        },
    )

    active: Set[str] = set()
    fired: Set[Transition] = set()
    if step is not None:
        active.update(step.states)
        if step.state is not None:
            active.add(step.state)
        fired.update(step.transitions)

    # Graphviz ids are positional so state names never need quoting
    ids = {state: f"s{index}" for index, state in enumerate(automaton.states)}

    dot.node("__start__", shape="point", width="0.01", style="invis")
    for state in automaton.states:
        attrs: Dict[str, str] = {}
        if _is_accepting(automaton, state):
            attrs.update(shape="doublecircle", fillcolor="lightgreen", peripheries="2")
        elif automaton.kind == AutomatonKind.TM and state == automaton.reject_state:
            attrs.update(fillcolor="lightcoral")
        if state in active:
            attrs.update(fillcolor=ACTIVE_FILL)
        dot.node(ids[state], label=_state_label(automaton, state), **attrs)

    dot.edge("__start__", ids[automaton.start_state], penwidth="2")

    grouped: Dict[Tuple[str, str], List[Transition]] = defaultdict(list)
    for t in automaton.transitions:
        grouped[(t.source, t.target)].append(t)

    multiline = automaton.kind in (AutomatonKind.PDA, AutomatonKind.TM)
    for (source, target), transitions in grouped.items():
        labels = [edge_label(t) for t in transitions]
        attrs = {"label": "\n".join(labels) if multiline else ", ".join(labels)}
        if source == target:
            attrs.update(headport="n", tailport="n")
        if any(t in fired for t in transitions):
            attrs.update(color=ACTIVE_EDGE, fontcolor=ACTIVE_EDGE, penwidth="2.5")
        dot.edge(ids[source], ids[target], **attrs)

    return dot


def render(
    automaton: Automaton,
    filename: str = "automaton",
    step: Optional[Step] = None,
    view: bool = False,
) -> str:
    """Render to `filename`.png and return the written path."""
    return to_digraph(automaton, step).render(filename, view=view, cleanup=True)
