import logging
from collections import deque
from typing_extensions import *

from automaton import (
    Automaton,
    AutomatonKind,
    FATransition,
    InvalidModelError,
    MealyTransition,
    MooreTransition,
    ValidationError,
    build_dfa,
    build_mealy,
    build_moore,
    build_nfa,
)
from traces import Result, Step, Trace

logger = logging.getLogger(__name__)


def subset_name(states: Iterable[str]) -> str:
    """Canonical DFA state name for a set of NFA states: sorted, deduplicated."""
    return "{" + ",".join(sorted(set(states))) + "}"


# -----------------------------------------------------------------------------
# NFA <-> DFA
# -----------------------------------------------------------------------------


def nfa_to_dfa(nfa: Automaton) -> Trace:
    """
    Subset (powerset) construction.

    Only subsets reachable from closure({start}) are materialized, explored
    breadth first. Empty successor sets are dropped rather than turned into a
    dead state, so the resulting DFA may be partial.

    Subset names are not escaped: if two subsets would get the same name
    (possible only when state names contain ",", "{" or "}") an
    InvalidModelError is raised instead of merging them.
    """
    if nfa.kind not in (AutomatonKind.NFA, AutomatonKind.DFA):
        raise ValueError(f"Subset construction is only defined for NFA, got {nfa.kind.name}")

    alphabet = nfa.input_symbols
    steps = [
        Step(
            title="Initialize",
            description="Starting subset construction algorithm",
            details=f"NFA has {len(nfa.states)} states, alphabet: {{{', '.join(alphabet)}}}",
        )
    ]

    names: Dict[FrozenSet[str], str] = {}
    dfa_states: List[str] = []
    dfa_accepting: List[str] = []
    dfa_transitions: List[FATransition] = []

    taken: Dict[str, FrozenSet[str]] = {}

    def register(subset: FrozenSet[str]) -> Tuple[str, bool]:
        if subset in names:
            return names[subset], False
        name = subset_name(subset)
        if name in taken:
            raise InvalidModelError(
                [
                    ValidationError(
                        f"Subsets {{{', '.join(sorted(taken[name]))}}} and "
                        f"{{{', '.join(sorted(subset))}}} are both named '{name}'; "
                        "state names containing ',', '{' or '}' are ambiguous",
                        state=name,
                    )
                ]
            )
        taken[name] = subset
        names[subset] = name
        dfa_states.append(name)
        if any(nfa.is_accepting(s) for s in subset):
            dfa_accepting.append(name)
        return name, True

    start = nfa.epsilon_closure([nfa.start_state])
    start_name, _ = register(start)
    steps.append(
        Step(
            title="Create Start State",
            description=f"DFA start state: {start_name}",
            details=f"Epsilon closure of {{{nfa.start_state}}} = {{{', '.join(sorted(start))}}}",
            state=start_name,
            states=tuple(sorted(start)),
        )
    )

    queue = deque([start])
    while queue:
        subset = queue.popleft()
        name = names[subset]
        members = sorted(subset)
        steps.append(
            Step(
                title="Process State",
                description=f"Processing state {name}",
                details=f"Contains NFA states: {{{', '.join(members)}}}",
                state=name,
                states=tuple(members),
            )
        )

        for symbol in alphabet:
            reached = [t.target for t in nfa.transitions if t.source in subset and t.symbol == symbol]
            if not reached:
                continue

            successor = nfa.epsilon_closure(reached)
            successor_name, is_new = register(successor)
            transition = FATransition(name, symbol, successor_name)
            dfa_transitions.append(transition)
            if is_new:
                queue.append(successor)

            steps.append(
                Step(
                    title="Add Transition",
                    description=f"{name} --{symbol}--> {successor_name}",
                    details=(
                        f"On symbol '{symbol}': {{{', '.join(members)}}} → "
                        f"{{{', '.join(sorted(successor))}}}"
                    ),
                    state=successor_name,
                    states=tuple(sorted(successor)),
                    transitions=(transition,),
                )
            )

    dfa = build_dfa(
        dfa_states,
        alphabet,
        dfa_transitions,
        start_name,
        dfa_accepting,
        require_total=False,
    )
    steps.append(
        Step(
            title="Conversion Complete",
            description=f"Generated DFA with {len(dfa_states)} states",
            details=f"Final states: {{{', '.join(dfa_accepting)}}}",
            is_final=True,
            accepted=True,
        )
    )
    logger.debug(
        "Subset construction: %d NFA states -> %d DFA states",
        len(nfa.states),
        len(dfa_states),
    )
    return Trace(tuple(steps), Result(accepted=True, automaton=dfa))


def dfa_to_nfa(dfa: Automaton) -> Trace:
    """Every DFA already is an NFA; the model is copied unchanged."""
    if dfa.kind != AutomatonKind.DFA:
        raise ValueError(f"DFA to NFA is only defined for DFA, got {dfa.kind.name}")

    nfa = build_nfa(
        dfa.states,
        dfa.alphabet,
        dfa.transitions,
        dfa.start_state,
        dfa.ordered(dfa.accepting_states),
    )
    finals = ", ".join(dfa.ordered(dfa.accepting_states))
    steps = (
        Step(
            title="Initialize Conversion",
            description="Converting DFA to equivalent NFA",
            details="Every DFA is already a valid NFA by definition",
        ),
        Step(
            title="Copy States",
            description=f"Copying {len(dfa.states)} states from DFA",
            details=f"States: {{{', '.join(dfa.states)}}}",
            states=dfa.states,
        ),
        Step(
            title="Copy Alphabet",
            description="Copying alphabet symbols",
            details=f"Alphabet: {{{', '.join(dfa.alphabet)}}}",
        ),
        Step(
            title="Copy Transitions",
            description=f"Copying {len(dfa.transitions)} transitions",
            details="All DFA transitions are deterministic, so they remain valid in NFA",
            transitions=dfa.transitions,
        ),
        Step(
            title="Set Start State",
            description=f"Start state: {dfa.start_state}",
            details="Same start state as original DFA",
            state=dfa.start_state,
        ),
        Step(
            title="Set Final States",
            description=f"Final states: {{{finals}}}",
            details="Same final states as original DFA",
        ),
        Step(
            title="Conversion Complete",
            description="DFA successfully converted to NFA",
            details="The resulting NFA is deterministic and equivalent to the original DFA",
            is_final=True,
            accepted=True,
        ),
    )
    return Trace(steps, Result(accepted=True, automaton=nfa))


# -----------------------------------------------------------------------------
# Mealy <-> Moore
# -----------------------------------------------------------------------------


def pair_name(state: str, output: str) -> str:
    return f"({state},{output})"


def bootstrap_output(mealy: Automaton, start_output: Optional[str] = None) -> Tuple[str, str]:
    """
    Output of the Moore start state and the rule that chose it.

    Rules, first that applies:
        1. the explicit `start_output`
        2. output of the first transition entering the Mealy start state
        3. output of the first transition leaving the Mealy start state
        4. first symbol of the output alphabet
        5. the empty string
    """
    if start_output is not None:
        return start_output, "given explicitly"
    for t in mealy.transitions:
        if t.target == mealy.start_state:
            return t.output, f"taken from incoming transition {t}"
    for t in mealy.transitions:
        if t.source == mealy.start_state:
            return t.output, f"taken from outgoing transition {t}"
    if mealy.output_alphabet:
        return mealy.output_alphabet[0], "first symbol of the output alphabet"
    return "", "no output available, using the empty string"


def mealy_to_moore(mealy: Automaton, start_output: Optional[str] = None) -> Trace:
    """
    Split every Mealy state by the output that led into it.

    Each Moore state is a (Mealy state, output) pair named "(state,output)"
    whose state output is that output.
    Pair names that would coincide raise InvalidModelError.
    """
    if mealy.kind != AutomatonKind.MEALY:
        raise ValueError(f"Mealy to Moore is only defined for MEALY, got {mealy.kind.name}")

    steps = [
        Step(
            title="Initialize Conversion",
            description="Converting Mealy Machine to Moore Machine",
            details="Each Moore state will represent (Mealy state, output) pairs",
        )
    ]

    initial, rule = bootstrap_output(mealy, start_output)
    steps.append(
        Step(
            title="Choose Start Output",
            description=f"Moore start state outputs '{initial}'",
            details=f"Start output {rule}",
            state=mealy.start_state,
            output=initial,
        )
    )

    pairs: Dict[Tuple[str, str], str] = {}
    for t in mealy.transitions:
        pairs.setdefault((t.target, t.output), pair_name(t.target, t.output))
    pairs.setdefault((mealy.start_state, initial), pair_name(mealy.start_state, initial))
    start_name = pairs[(mealy.start_state, initial)]

    owners: Dict[str, Tuple[str, str]] = {}
    for pair, name in pairs.items():
        if name in owners:
            raise InvalidModelError(
                [
                    ValidationError(
                        f"Pairs {owners[name]} and {pair} are both named '{name}'; "
                        "state names or outputs containing ',', '(' or ')' are ambiguous",
                        state=name,
                    )
                ]
            )
        owners[name] = pair

    steps.append(
        Step(
            title="Identify State-Output Pairs",
            description=f"Found {len(pairs)} unique (state, output) combinations",
            details=f"Pairs: {'; '.join(pairs.values())}",
            states=tuple(pairs.values()),
        )
    )

    output_function = {name: output for (_, output), name in pairs.items()}
    steps.append(
        Step(
            title="Create Moore States",
            description=f"Created {len(pairs)} Moore states",
            details=f"States: {{{', '.join(pairs.values())}}}",
            states=tuple(pairs.values()),
        )
    )

    lookup = mealy.transition_map()
    moore_transitions: List[MooreTransition] = []
    for (state, _), name in pairs.items():
        for symbol in mealy.alphabet:
            t = lookup.get((state, symbol))
            if t is None:
                continue
            transition = MooreTransition(name, symbol, pairs[(t.target, t.output)])
            if transition not in moore_transitions:
                moore_transitions.append(transition)

    steps.append(
        Step(
            title="Create Moore Transitions",
            description=f"Created {len(moore_transitions)} Moore transitions",
            details="Each transition preserves input symbols but removes outputs",
            transitions=tuple(moore_transitions),
        )
    )

    outputs = list(mealy.output_alphabet)
    if initial not in outputs:
        outputs.append(initial)
    moore = build_moore(
        list(pairs.values()),
        mealy.alphabet,
        moore_transitions,
        start_name,
        output_function,
        outputs,
    )
    steps.append(
        Step(
            title="Conversion Complete",
            description="Mealy machine successfully converted to Moore machine",
            details=f"Moore machine has {len(moore.states)} states",
            is_final=True,
            accepted=True,
        )
    )
    logger.debug(
        "Mealy -> Moore: %d states -> %d states", len(mealy.states), len(moore.states)
    )
    return Trace(tuple(steps), Result(accepted=True, automaton=moore))


def moore_to_mealy(moore: Automaton) -> Trace:
    """Move each state's output onto the edges entering it. Exact, same states."""
    if moore.kind != AutomatonKind.MOORE:
        raise ValueError(f"Moore to Mealy is only defined for MOORE, got {moore.kind.name}")

    mealy_transitions = [
        MealyTransition(t.source, t.symbol, t.target, moore.output_of(t.target))
        for t in moore.transitions
    ]
    mealy = build_mealy(
        moore.states,
        moore.alphabet,
        mealy_transitions,
        moore.start_state,
        moore.output_alphabet,
    )
    steps = (
        Step(
            title="Initialize Conversion",
            description="Converting Moore Machine to Mealy Machine",
            details="States remain the same, but outputs move to transitions",
        ),
        Step(
            title="Copy States",
            description=f"Copying {len(moore.states)} states",
            details=f"States: {{{', '.join(moore.states)}}}",
            states=moore.states,
        ),
        Step(
            title="Convert Transitions",
            description=f"Created {len(mealy_transitions)} Mealy transitions",
            details="Output of target state in Moore machine becomes transition output in Mealy machine",
            transitions=tuple(mealy_transitions),
        ),
        Step(
            title="Remove State Outputs",
            description="State outputs are no longer needed",
            details=(
                f"Start state output '{moore.output_of(moore.start_state)}' "
                "is emitted before any input and has no Mealy counterpart"
            ),
        ),
        Step(
            title="Conversion Complete",
            description="Moore machine successfully converted to Mealy machine",
            details=f"Mealy machine has {len(mealy.states)} states",
            is_final=True,
            accepted=True,
        ),
    )
    return Trace(steps, Result(accepted=True, automaton=mealy))


CONVERTERS: Dict[str, Callable[..., Trace]] = {
    "to_dfa": nfa_to_dfa,
    "to_nfa": dfa_to_nfa,
    "to_moore": mealy_to_moore,
    "to_mealy": moore_to_mealy,
}
