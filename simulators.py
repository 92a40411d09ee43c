import logging
from typing_extensions import *

from automaton import EPSILON, LEFT, RIGHT, Automaton, AutomatonKind
from traces import Result, Step, Trace

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 100
TAPE_LEFT_PADDING = 5
TAPE_RIGHT_PADDING = 15


def _require(automaton: Automaton, *kinds: AutomatonKind):
    if automaton.kind not in kinds:
        names = " / ".join(k.name for k in kinds)
        raise ValueError(
            f"This simulation is only defined for {names}, got {automaton.kind.name}"
        )


def _symbols(word: Union[str, Sequence[str]]) -> List[str]:
    return list(word)


def _set_label(states: Iterable[str]) -> str:
    return "{" + ", ".join(states) + "}"


# -----------------------------------------------------------------------------
# Finite automata
# -----------------------------------------------------------------------------


def simulate_dfa(dfa: Automaton, word: Union[str, Sequence[str]]) -> Trace:
    """
    Run a DFA on `word`, one symbol per step.

    A missing (state, symbol) transition rejects immediately with an error
    step, so partial DFAs (e.g. from subset construction) are handled too.
    """
    _require(dfa, AutomatonKind.DFA)
    symbols = _symbols(word)
    text = "".join(symbols)
    lookup = dfa.transition_map()
    current = dfa.start_state

    steps = [
        Step(
            title="Initialize",
            description=f"Starting at state '{current}'",
            details=f'Input: "{text}"',
            state=current,
            remaining_input=text,
            position=0,
        )
    ]

    for i, symbol in enumerate(symbols):
        transition = lookup.get((current, symbol))
        if transition is None:
            steps.append(
                Step(
                    title="Transition Failed",
                    description=f"No transition from '{current}' on symbol '{symbol}'",
                    details=f"Input rejected at position {i}",
                    state=current,
                    remaining_input="".join(symbols[i:]),
                    position=i,
                    is_final=True,
                    is_error=True,
                    accepted=False,
                )
            )
            logger.debug("DFA rejected %r: stuck in %s", text, current)
            return Trace(tuple(steps), Result(accepted=False))

        current = transition.target
        remaining = "".join(symbols[i + 1 :])
        steps.append(
            Step(
                title="Transition",
                description=f"From '{transition.source}' to '{transition.target}' on '{symbol}'",
                details=f'Remaining input: "{remaining}"',
                state=current,
                remaining_input=remaining,
                position=i + 1,
                transitions=(transition,),
            )
        )

    accepted = dfa.is_accepting(current)
    finals = ", ".join(dfa.ordered(dfa.accepting_states))
    steps.append(
        Step(
            title="Final Check",
            description=f"Ended in state '{current}' - {'ACCEPTED' if accepted else 'REJECTED'}",
            details=f"Final states: {{{finals}}}",
            state=current,
            remaining_input="",
            position=len(symbols),
            is_final=True,
            accepted=accepted,
        )
    )
    logger.debug("DFA %s %r", "accepted" if accepted else "rejected", text)
    return Trace(tuple(steps), Result(accepted=accepted))


def simulate_nfa(nfa: Automaton, word: Union[str, Sequence[str]]) -> Trace:
    """
    Run an NFA on `word` by tracking the set of active states.

    Each step records the whole active set (after ε-closure) and every
    transition that fired on the consumed symbol.
    """
    _require(nfa, AutomatonKind.NFA, AutomatonKind.DFA)
    symbols = _symbols(word)
    text = "".join(symbols)
    active = nfa.epsilon_closure([nfa.start_state])

    steps = [
        Step(
            title="Initialize",
            description=f"Starting states: {_set_label(nfa.ordered(active))}",
            details=f'Input: "{text}"',
            states=tuple(nfa.ordered(active)),
            remaining_input=text,
            position=0,
        )
    ]

    for i, symbol in enumerate(symbols):
        fired = tuple(
            t
            for t in nfa.transitions
            if t.source in active and t.symbol == symbol and symbol != EPSILON
        )
        active = nfa.epsilon_closure(t.target for t in fired)

        if not active:
            steps.append(
                Step(
                    title="No Transitions",
                    description=f"No transitions available for symbol '{symbol}'",
                    details=f"Input rejected at position {i}",
                    states=(),
                    remaining_input="".join(symbols[i:]),
                    position=i,
                    is_final=True,
                    is_error=True,
                    accepted=False,
                )
            )
            logger.debug("NFA rejected %r: empty state set", text)
            return Trace(tuple(steps), Result(accepted=False))

        ordered = nfa.ordered(active)
        remaining = "".join(symbols[i + 1 :])
        steps.append(
            Step(
                title="Transition",
                description=f"On '{symbol}' → {_set_label(ordered)}",
                details=f'Remaining input: "{remaining}"',
                states=tuple(ordered),
                remaining_input=remaining,
                position=i + 1,
                transitions=fired,
            )
        )

    ordered = nfa.ordered(active)
    accepting = [s for s in ordered if nfa.is_accepting(s)]
    accepted = bool(accepting)
    steps.append(
        Step(
            title="Final Check",
            description=f"Final states: {_set_label(ordered)} - {'ACCEPTED' if accepted else 'REJECTED'}",
            details=(
                f"Accepting states: {_set_label(accepting)}"
                if accepted
                else "No accepting states found"
            ),
            states=tuple(ordered),
            remaining_input="",
            position=len(symbols),
            is_final=True,
            accepted=accepted,
        )
    )
    logger.debug("NFA %s %r", "accepted" if accepted else "rejected", text)
    return Trace(tuple(steps), Result(accepted=accepted))


# -----------------------------------------------------------------------------
# Transducers
# -----------------------------------------------------------------------------


def simulate_mealy(mealy: Automaton, word: Union[str, Sequence[str]]) -> Trace:
    _require(mealy, AutomatonKind.MEALY)
    symbols = _symbols(word)
    text = "".join(symbols)
    lookup = mealy.transition_map()
    current = mealy.start_state
    output = ""

    steps = [
        Step(
            title="Initialize",
            description="Starting Mealy Machine simulation",
            details=f'Input: "{text}", Start state: {current}',
            state=current,
            remaining_input=text,
            output="",
            position=0,
        )
    ]

    for i, symbol in enumerate(symbols):
        transition = lookup.get((current, symbol))
        if transition is None:
            steps.append(
                Step(
                    title="Transition Failed",
                    description=f"No transition from '{current}' on input '{symbol}'",
                    details=f"Machine halts at position {i}",
                    state=current,
                    remaining_input="".join(symbols[i:]),
                    output=output,
                    position=i,
                    is_final=True,
                    is_error=True,
                    accepted=False,
                )
            )
            return Trace(tuple(steps), Result(accepted=False, output=output))

        current = transition.target
        output += transition.output
        steps.append(
            Step(
                title="Transition",
                description=str(transition),
                details=f"Input: '{symbol}', Output: '{transition.output}'",
                state=current,
                remaining_input="".join(symbols[i + 1 :]),
                output=output,
                position=i + 1,
                transitions=(transition,),
            )
        )

    steps.append(
        Step(
            title="Complete",
            description="Input processed successfully",
            details=f'Final output: "{output}"',
            state=current,
            remaining_input="",
            output=output,
            position=len(symbols),
            is_final=True,
            accepted=True,
        )
    )
    return Trace(tuple(steps), Result(accepted=True, output=output))


def simulate_moore(moore: Automaton, word: Union[str, Sequence[str]]) -> Trace:
    """Moore machines emit output(start) before reading anything."""
    _require(moore, AutomatonKind.MOORE)
    symbols = _symbols(word)
    text = "".join(symbols)
    lookup = moore.transition_map()
    current = moore.start_state
    output = moore.output_of(current)

    steps = [
        Step(
            title="Initialize",
            description="Starting Moore Machine simulation",
            details=f'Input: "{text}", Start state: {current}, Initial output: "{output}"',
            state=current,
            remaining_input=text,
            output=output,
            position=0,
        )
    ]

    for i, symbol in enumerate(symbols):
        transition = lookup.get((current, symbol))
        if transition is None:
            steps.append(
                Step(
                    title="Transition Failed",
                    description=f"No transition from '{current}' on input '{symbol}'",
                    details=f"Machine halts at position {i}",
                    state=current,
                    remaining_input="".join(symbols[i:]),
                    output=output,
                    position=i,
                    is_final=True,
                    is_error=True,
                    accepted=False,
                )
            )
            return Trace(tuple(steps), Result(accepted=False, output=output))

        current = transition.target
        emitted = moore.output_of(current)
        output += emitted
        steps.append(
            Step(
                title="Transition",
                description=str(transition),
                details=f"Input: '{symbol}', New state output: '{emitted}'",
                state=current,
                remaining_input="".join(symbols[i + 1 :]),
                output=output,
                position=i + 1,
                transitions=(transition,),
            )
        )

    steps.append(
        Step(
            title="Complete",
            description="Input processed successfully",
            details=f'Final output: "{output}"',
            state=current,
            remaining_input="",
            output=output,
            position=len(symbols),
            is_final=True,
            accepted=True,
        )
    )
    return Trace(tuple(steps), Result(accepted=True, output=output))


# -----------------------------------------------------------------------------
# Pushdown automata
# -----------------------------------------------------------------------------


def simulate_pda(
    pda: Automaton,
    word: Union[str, Sequence[str]],
    max_steps: int = DEFAULT_MAX_STEPS,
) -> Trace:
    """
    Follow a single computation path of a PDA.

    Among the transitions leaving the current state on the next input symbol
    or ε, the first declared one whose stack top matches (or is ε) is taken;
    other branches are never explored. Acceptance is by final state with the
    whole input consumed. After `max_steps` moves the run stops with a
    timeout step.
    """
    _require(pda, AutomatonKind.PDA)
    symbols = _symbols(word)
    text = "".join(symbols)
    current = pda.start_state
    stack: List[str] = [pda.start_stack_symbol]
    position = 0

    def snapshot(**kwargs) -> Step:
        return Step(
            state=current,
            stack=tuple(stack),
            remaining_input="".join(symbols[position:]),
            position=position,
            **kwargs,
        )

    steps = [
        snapshot(
            title="Initialize",
            description="Starting PDA simulation",
            details=f'Input: "{text}", Stack: [{", ".join(stack)}]',
        )
    ]

    step_count = 0
    while step_count < max_steps:
        step_count += 1

        if position >= len(symbols) and pda.is_accepting(current):
            steps.append(
                snapshot(
                    title="Accept",
                    description=f"Input accepted - reached final state {current}",
                    details=f"All input consumed, stack: [{', '.join(stack)}]",
                    step_count=step_count,
                    is_final=True,
                    accepted=True,
                )
            )
            logger.debug("PDA accepted %r", text)
            return Trace(tuple(steps), Result(accepted=True))

        symbol = symbols[position] if position < len(symbols) else None
        top = stack[-1] if stack else None

        candidates = [
            t
            for t in pda.transitions
            if t.source == current and (t.symbol == EPSILON or t.symbol == symbol)
        ]
        if not candidates:
            steps.append(
                snapshot(
                    title="No Transition",
                    description=f"No applicable transition from {current}",
                    details=f"Input: '{symbol or EPSILON}', Stack top: '{top or ''}'",
                    step_count=step_count,
                    is_final=True,
                    is_error=True,
                    accepted=False,
                )
            )
            return Trace(tuple(steps), Result(accepted=False))

        matching = [t for t in candidates if t.stack_top == EPSILON or t.stack_top == top]
        if not matching:
            steps.append(
                snapshot(
                    title="Stack Mismatch",
                    description=f"Expected '{candidates[0].stack_top}' on stack top, found '{top or 'empty'}'",
                    details="No transition from this configuration can be applied",
                    step_count=step_count,
                    transitions=(candidates[0],),
                    is_final=True,
                    is_error=True,
                    accepted=False,
                )
            )
            return Trace(tuple(steps), Result(accepted=False))

        transition = matching[0]
        current = transition.target
        if transition.stack_top != EPSILON:
            stack.pop()
        stack.extend(transition.push)
        if transition.symbol != EPSILON:
            position += 1

        steps.append(
            snapshot(
                title="Transition",
                description=f"{transition.source} → {transition.target}",
                details=(
                    f"Read: '{transition.symbol}', Pop: '{transition.stack_top}', "
                    f"Push: '{transition.push or EPSILON}'"
                ),
                step_count=step_count,
                transitions=(transition,),
            )
        )

    steps.append(
        snapshot(
            title="Timeout",
            description=f"Maximum steps ({max_steps}) reached",
            details="PDA may be in infinite loop - simulation stopped",
            step_count=step_count,
            is_final=True,
            accepted=False,
            timeout=True,
        )
    )
    logger.debug("PDA timed out on %r after %d steps", text, max_steps)
    return Trace(tuple(steps), Result(accepted=False, timeout=True))


# -----------------------------------------------------------------------------
# Turing machines
# -----------------------------------------------------------------------------


def simulate_tm(
    tm: Automaton,
    word: Union[str, Sequence[str]],
    max_steps: int = DEFAULT_MAX_STEPS,
) -> Trace:
    """
    Run a deterministic single-tape TM.

    Halting is checked in this order: accept state, reject state, missing
    transition, step ceiling. Only the ceiling sets `timeout`.
    """
    _require(tm, AutomatonKind.TM)
    symbols = _symbols(word)
    text = "".join(symbols)
    blank = tm.blank_symbol
    lookup = {(t.source, t.read): t for t in reversed(tm.transitions)}

    tape: List[str] = [blank] * TAPE_LEFT_PADDING + symbols + [blank] * TAPE_RIGHT_PADDING
    head = TAPE_LEFT_PADDING
    current = tm.start_state
    step_count = 0

    def snapshot(**kwargs) -> Step:
        return Step(
            state=current,
            tape=tuple(tape),
            head=head,
            step_count=step_count,
            **kwargs,
        )

    steps = [
        snapshot(
            title="Initialize",
            description="Starting Turing Machine simulation",
            details=f'Input: "{text}", Start state: {current}',
        )
    ]

    while True:
        if current == tm.accept_state:
            steps.append(
                snapshot(
                    title="Accept",
                    description=f"Reached accept state: {current}",
                    details=f"Input accepted after {step_count} steps",
                    is_final=True,
                    accepted=True,
                )
            )
            logger.debug("TM accepted %r in %d steps", text, step_count)
            return Trace(tuple(steps), Result(accepted=True))

        if tm.reject_state is not None and current == tm.reject_state:
            steps.append(
                snapshot(
                    title="Reject",
                    description=f"Reached reject state: {current}",
                    details=f"Input rejected after {step_count} steps",
                    is_final=True,
                    accepted=False,
                )
            )
            return Trace(tuple(steps), Result(accepted=False))

        read = tape[head]
        transition = lookup.get((current, read))
        if transition is None:
            steps.append(
                snapshot(
                    title="No Transition",
                    description=f"No transition from {current} on symbol '{read}'",
                    details="Machine halts - input rejected",
                    is_final=True,
                    is_error=True,
                    accepted=False,
                )
            )
            return Trace(tuple(steps), Result(accepted=False))

        if step_count >= max_steps:
            steps.append(
                snapshot(
                    title="Timeout",
                    description=f"Maximum steps ({max_steps}) reached",
                    details="Machine may be in infinite loop - simulation stopped",
                    is_final=True,
                    accepted=False,
                    timeout=True,
                )
            )
            logger.debug("TM timed out on %r after %d steps", text, max_steps)
            return Trace(tuple(steps), Result(accepted=False, timeout=True))

        tape[head] = transition.write
        current = transition.target
        if transition.move == RIGHT:
            head += 1
            if head >= len(tape):
                tape.append(blank)
        elif transition.move == LEFT:
            head -= 1
            if head < 0:
                tape.insert(0, blank)
                head = 0
        else:
            raise ValueError(f"Invalid head move '{transition.move}' in {transition}")
        step_count += 1

        steps.append(
            snapshot(
                title="Transition",
                description=f"{transition.source} → {transition.target}",
                details=f"Read '{transition.read}', Write '{transition.write}', Move {transition.move}",
                transitions=(transition,),
            )
        )


# -----------------------------------------------------------------------------
# Dispatch
# -----------------------------------------------------------------------------

SIMULATORS: Dict[AutomatonKind, Callable[..., Trace]] = {
    AutomatonKind.DFA: simulate_dfa,
    AutomatonKind.NFA: simulate_nfa,
    AutomatonKind.PDA: simulate_pda,
    AutomatonKind.TM: simulate_tm,
    AutomatonKind.MEALY: simulate_mealy,
    AutomatonKind.MOORE: simulate_moore,
}


def simulate(automaton: Automaton, word: Union[str, Sequence[str]], **kwargs) -> Trace:
    """Run the simulator matching `automaton.kind`."""
    return SIMULATORS[automaton.kind](automaton, word, **kwargs)
