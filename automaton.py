import logging
from dataclasses import MISSING, dataclass, field, fields
from enum import Enum
from types import MappingProxyType
from typing_extensions import *

logger = logging.getLogger(__name__)

EPSILON = "ε"
DEFAULT_START_STACK = "Z"
DEFAULT_BLANK = "_"
LEFT = "L"
RIGHT = "R"


class AutomatonKind(Enum):
    DFA = "dfa"
    NFA = "nfa"
    PDA = "pda"
    TM = "tm"
    MEALY = "mealy"
    MOORE = "moore"


# -----------------------------------------------------------------------------
# Transition variants
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class FATransition:
    """(source, symbol, target) for DFA/NFA. NFA symbols may be EPSILON."""

    source: str
    symbol: str
    target: str

    def __str__(self):
        return f"{self.source} --{self.symbol}--> {self.target}"


@dataclass(frozen=True)
class MealyTransition:
    source: str
    symbol: str
    target: str
    output: str

    def __str__(self):
        return f"{self.source} --{self.symbol}/{self.output}--> {self.target}"


@dataclass(frozen=True)
class MooreTransition:
    source: str
    symbol: str
    target: str

    def __str__(self):
        return f"{self.source} --{self.symbol}--> {self.target}"


@dataclass(frozen=True)
class PDATransition:
    """
    (source, input, stack_top, target, push).

    `symbol` and `stack_top` are EPSILON when the move ignores them; `push`
    is a string of stack symbols, empty for "push nothing". The last symbol
    of `push` ends up on top of the stack.
    """

    source: str
    symbol: str
    stack_top: str
    target: str
    push: str = ""

    def __str__(self):
        push = self.push or EPSILON
        return f"{self.source} --{self.symbol}, {self.stack_top} → {push}--> {self.target}"


@dataclass(frozen=True)
class TMTransition:
    source: str
    read: str
    target: str
    write: str
    move: str

    def __str__(self):
        return f"{self.source} --{self.read} → {self.write}, {self.move}--> {self.target}"


Transition = Union[
    FATransition, MealyTransition, MooreTransition, PDATransition, TMTransition
]

TRANSITION_TYPES: Dict[AutomatonKind, type] = {
    AutomatonKind.DFA: FATransition,
    AutomatonKind.NFA: FATransition,
    AutomatonKind.PDA: PDATransition,
    AutomatonKind.TM: TMTransition,
    AutomatonKind.MEALY: MealyTransition,
    AutomatonKind.MOORE: MooreTransition,
}


# -----------------------------------------------------------------------------
# Validation errors
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class ValidationError:
    reason: str
    state: Optional[str] = None
    symbol: Optional[str] = None

    def __str__(self):
        return self.reason


class InvalidModelError(ValueError):
    """Raised by the build_* constructors with every problem found."""

    def __init__(self, errors: Sequence[ValidationError]):
        self.errors: List[ValidationError] = list(errors)
        super().__init__("; ".join(str(e) for e in self.errors))


# -----------------------------------------------------------------------------
# Model
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Automaton:
    """
    Unified, immutable automaton model.

    Which optional fields matter depends on `kind`:
        DFA / NFA:  accepting_states
        PDA:        accepting_states, stack_alphabet, start_stack_symbol
        TM:         blank_symbol, tape_alphabet, accept_state, reject_state
        MEALY:      output_alphabet (outputs live on the transitions)
        MOORE:      output_alphabet, output_function (state -> output)

    States and alphabets are tuples in declaration order so that every
    algorithm walking them is reproducible.
    """

    kind: AutomatonKind
    states: Tuple[str, ...]
    alphabet: Tuple[str, ...]
    transitions: Tuple[Transition, ...]
    start_state: str
    accepting_states: FrozenSet[str] = frozenset()
    output_alphabet: Tuple[str, ...] = ()
    output_function: Mapping[str, str] = field(default_factory=dict, hash=False)
    stack_alphabet: Tuple[str, ...] = ()
    start_stack_symbol: str = DEFAULT_START_STACK
    tape_alphabet: Tuple[str, ...] = ()
    blank_symbol: str = DEFAULT_BLANK
    accept_state: Optional[str] = None
    reject_state: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "output_function", MappingProxyType(dict(self.output_function)))

    # -------------------------------------------------------------------------
    # Transition helpers
    # -------------------------------------------------------------------------

    def transitions_from(self, state: str) -> List[Transition]:
        return [t for t in self.transitions if t.source == state]

    def transition_map(self) -> Dict[Tuple[str, str], Transition]:
        """(state, symbol) -> first declared transition. Not for PDA/TM."""
        if self.kind in (AutomatonKind.PDA, AutomatonKind.TM):
            raise ValueError(f"transition_map is not defined for {self.kind.name}")

        result: Dict[Tuple[str, str], Transition] = {}
        for t in self.transitions:
            result.setdefault((t.source, t.symbol), t)
        return result

    def targets(self, state: str, symbol: str) -> List[str]:
        return [
            t.target
            for t in self.transitions
            if t.source == state and t.symbol == symbol
        ]

    def epsilon_closure(self, states: Iterable[str]) -> FrozenSet[str]:
        """All states reachable from `states` using only ε-moves."""
        closure = set(states)
        stack = list(closure)
        while stack:
            s = stack.pop()
            for next_state in self.targets(s, EPSILON):
                if next_state not in closure:
                    closure.add(next_state)
                    stack.append(next_state)
        return frozenset(closure)

    def ordered(self, states: Iterable[str]) -> List[str]:
        """Return `states` in declaration order."""
        members = set(states)
        return [s for s in self.states if s in members]

    @property
    def input_symbols(self) -> Tuple[str, ...]:
        return tuple(a for a in self.alphabet if a != EPSILON)

    def is_accepting(self, state: str) -> bool:
        return state in self.accepting_states

    def output_of(self, state: str) -> str:
        return self.output_function.get(state, "")

    def __str__(self):
        lines = [
            f"{self.kind.name}",
            f"  States: {{{', '.join(self.states)}}}",
            f"  Alphabet: {{{', '.join(self.alphabet)}}}",
            f"  Start: {self.start_state}",
        ]
        if self.kind in (AutomatonKind.DFA, AutomatonKind.NFA, AutomatonKind.PDA):
            lines.append(
                f"  Accepting: {{{', '.join(self.ordered(self.accepting_states))}}}"
            )
        if self.kind == AutomatonKind.MOORE:
            outputs = ", ".join(f"{s}:{self.output_of(s)}" for s in self.states)
            lines.append(f"  Outputs: {outputs}")
        if self.kind == AutomatonKind.PDA:
            lines.append(f"  Start stack: {self.start_stack_symbol}")
        if self.kind == AutomatonKind.TM:
            lines.append(f"  Accept: {self.accept_state}  Reject: {self.reject_state}")
            lines.append(f"  Blank: {self.blank_symbol}")
        lines.append("  Transitions:")
        lines.extend(f"    {t}" for t in self.transitions)
        return "\n".join(lines)


# -----------------------------------------------------------------------------
# Validation
# -----------------------------------------------------------------------------


def _unique(items: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(items))


def _arity(cls: type) -> Tuple[int, int]:
    """(required, total) field counts of a transition class."""
    all_fields = fields(cls)
    required = sum(
        1 for f in all_fields if f.default is MISSING and f.default_factory is MISSING
    )
    return required, len(all_fields)


def _coerce(
    kind: AutomatonKind, transitions: Iterable[Any]
) -> Tuple[Tuple[Transition, ...], List[ValidationError]]:
    """Transition objects from tuples or objects; malformed rows become errors."""
    cls = TRANSITION_TYPES[kind]
    required, total = _arity(cls)
    expected = str(total) if required == total else f"{required} or {total}"
    result = []
    errors: List[ValidationError] = []
    for t in transitions:
        if isinstance(t, cls):
            result.append(t)
        elif kind == AutomatonKind.MOORE and isinstance(t, FATransition):
            result.append(MooreTransition(t.source, t.symbol, t.target))
        elif isinstance(t, (tuple, list)) and required <= len(t) <= total:
            result.append(cls(*t))
        else:
            row = tuple(t) if isinstance(t, (tuple, list)) else (t,)
            errors.append(
                ValidationError(
                    f"Transition {row} has {len(row)} fields, expected {expected}",
                    state=str(row[0]) if row else None,
                )
            )
    return tuple(result), errors


def _check_common(
    states: Sequence[str],
    start_state: Optional[str],
    transitions: Sequence[Transition],
    final_states: Iterable[str] = (),
) -> List[ValidationError]:
    errors: List[ValidationError] = []
    known = set(states)

    if not states:
        errors.append(ValidationError("At least one state is required"))

    if not start_state or start_state not in known:
        errors.append(
            ValidationError(
                "Start state must be one of the defined states", state=start_state
            )
        )

    for final in final_states:
        if final not in known:
            errors.append(
                ValidationError(
                    f"Final state '{final}' is not in the state set", state=final
                )
            )

    for t in transitions:
        if t.source not in known:
            errors.append(
                ValidationError(
                    f"Transition from state '{t.source}' is not valid", state=t.source
                )
            )
        if t.target not in known:
            errors.append(
                ValidationError(
                    f"Transition to state '{t.target}' is not valid", state=t.target
                )
            )
    return errors


def _check_symbols(
    transitions: Sequence[Transition],
    alphabet: Sequence[str],
    allow_epsilon: bool,
) -> List[ValidationError]:
    errors: List[ValidationError] = []
    known = set(alphabet)
    for t in transitions:
        symbol = t.read if isinstance(t, TMTransition) else t.symbol
        if symbol == EPSILON and allow_epsilon:
            continue
        if symbol not in known:
            errors.append(
                ValidationError(
                    f"Transition symbol '{symbol}' is not in alphabet",
                    state=t.source,
                    symbol=symbol,
                )
            )
    return errors


def _check_deterministic(
    transitions: Sequence[Transition],
) -> List[ValidationError]:
    errors: List[ValidationError] = []
    seen: Set[Tuple[str, str]] = set()
    for t in transitions:
        symbol = t.read if isinstance(t, TMTransition) else t.symbol
        key = (t.source, symbol)
        if key in seen:
            errors.append(
                ValidationError(
                    f"Duplicate transition from state '{t.source}' on symbol '{symbol}'",
                    state=t.source,
                    symbol=symbol,
                )
            )
        seen.add(key)
    return errors


def validate_dfa(
    states: Sequence[str],
    alphabet: Sequence[str],
    transitions: Iterable[Any],
    start_state: Optional[str],
    accepting_states: Iterable[str] = (),
    require_total: bool = True,
) -> List[ValidationError]:
    transitions, errors = _coerce(AutomatonKind.DFA, transitions)

    if not alphabet:
        errors.append(ValidationError("At least one symbol in alphabet is required"))
    if EPSILON in alphabet:
        errors.append(
            ValidationError(
                f"'{EPSILON}' cannot be a DFA input symbol", symbol=EPSILON
            )
        )

    errors += _check_common(states, start_state, transitions, accepting_states)
    errors += _check_symbols(transitions, alphabet, allow_epsilon=False)
    errors += _check_deterministic(transitions)

    if require_total:
        covered = {(t.source, t.symbol) for t in transitions}
        for state in states:
            for symbol in alphabet:
                if symbol == EPSILON:
                    continue
                if (state, symbol) not in covered:
                    errors.append(
                        ValidationError(
                            f"Missing transition from state '{state}' on symbol '{symbol}'",
                            state=state,
                            symbol=symbol,
                        )
                    )
    return errors


def validate_nfa(
    states: Sequence[str],
    alphabet: Sequence[str],
    transitions: Iterable[Any],
    start_state: Optional[str],
    accepting_states: Iterable[str] = (),
) -> List[ValidationError]:
    transitions, errors = _coerce(AutomatonKind.NFA, transitions)
    errors += _check_common(states, start_state, transitions, accepting_states)
    errors += _check_symbols(transitions, alphabet, allow_epsilon=True)
    return errors


def validate_mealy(
    states: Sequence[str],
    alphabet: Sequence[str],
    transitions: Iterable[Any],
    start_state: Optional[str],
    output_alphabet: Sequence[str] = (),
) -> List[ValidationError]:
    transitions, errors = _coerce(AutomatonKind.MEALY, transitions)
    errors += _check_common(states, start_state, transitions)
    errors += _check_symbols(transitions, alphabet, allow_epsilon=False)
    errors += _check_deterministic(transitions)

    if output_alphabet:
        outputs = set(output_alphabet)
        for t in transitions:
            if t.output not in outputs:
                errors.append(
                    ValidationError(
                        f"Output '{t.output}' is not in the output alphabet",
                        state=t.source,
                        symbol=t.output,
                    )
                )
    return errors


def validate_moore(
    states: Sequence[str],
    alphabet: Sequence[str],
    transitions: Iterable[Any],
    start_state: Optional[str],
    output_function: Mapping[str, str],
    output_alphabet: Sequence[str] = (),
) -> List[ValidationError]:
    transitions, errors = _coerce(AutomatonKind.MOORE, transitions)
    errors += _check_common(states, start_state, transitions)
    errors += _check_symbols(transitions, alphabet, allow_epsilon=False)
    errors += _check_deterministic(transitions)

    known = set(states)
    for state in states:
        if state not in output_function:
            errors.append(
                ValidationError(f"Missing output for state '{state}'", state=state)
            )
    for state, output in output_function.items():
        if state not in known:
            errors.append(
                ValidationError(
                    f"Output defined for unknown state '{state}'", state=state
                )
            )
        elif output_alphabet and output not in output_alphabet:
            errors.append(
                ValidationError(
                    f"Output '{output}' is not in the output alphabet",
                    state=state,
                    symbol=output,
                )
            )
    return errors


def validate_pda(
    states: Sequence[str],
    alphabet: Sequence[str],
    transitions: Iterable[Any],
    start_state: Optional[str],
    accepting_states: Iterable[str] = (),
    stack_alphabet: Sequence[str] = (),
    start_stack_symbol: str = DEFAULT_START_STACK,
) -> List[ValidationError]:
    transitions, errors = _coerce(AutomatonKind.PDA, transitions)
    errors += _check_common(states, start_state, transitions, accepting_states)
    errors += _check_symbols(transitions, alphabet, allow_epsilon=True)

    if stack_alphabet:
        stack_symbols = set(stack_alphabet)
        if start_stack_symbol not in stack_symbols:
            errors.append(
                ValidationError(
                    f"Start stack symbol '{start_stack_symbol}' is not in the stack alphabet",
                    symbol=start_stack_symbol,
                )
            )
        for t in transitions:
            if t.stack_top != EPSILON and t.stack_top not in stack_symbols:
                errors.append(
                    ValidationError(
                        f"Stack symbol '{t.stack_top}' is not in the stack alphabet",
                        state=t.source,
                        symbol=t.stack_top,
                    )
                )
            for pushed in t.push:
                if pushed not in stack_symbols:
                    errors.append(
                        ValidationError(
                            f"Pushed symbol '{pushed}' is not in the stack alphabet",
                            state=t.source,
                            symbol=pushed,
                        )
                    )
    return errors


def validate_tm(
    states: Sequence[str],
    alphabet: Sequence[str],
    transitions: Iterable[Any],
    start_state: Optional[str],
    accept_state: Optional[str],
    reject_state: Optional[str] = None,
    blank_symbol: str = DEFAULT_BLANK,
    tape_alphabet: Sequence[str] = (),
) -> List[ValidationError]:
    transitions, errors = _coerce(AutomatonKind.TM, transitions)
    errors += _check_common(states, start_state, transitions)
    known = set(states)

    if not accept_state or accept_state not in known:
        errors.append(
            ValidationError(
                "Accept state must be one of the defined states", state=accept_state
            )
        )
    if reject_state is not None and reject_state not in known:
        errors.append(
            ValidationError(
                "Reject state must be one of the defined states", state=reject_state
            )
        )
    if reject_state is not None and reject_state == accept_state:
        errors.append(
            ValidationError(
                "Accept and reject states must differ", state=reject_state
            )
        )
    if blank_symbol in alphabet:
        errors.append(
            ValidationError(
                f"Blank symbol '{blank_symbol}' cannot be an input symbol",
                symbol=blank_symbol,
            )
        )

    tape_symbols = set(alphabet) | set(tape_alphabet) | {blank_symbol}
    for t in transitions:
        for symbol in (t.read, t.write):
            if symbol not in tape_symbols:
                errors.append(
                    ValidationError(
                        f"Tape symbol '{symbol}' is not in the tape alphabet",
                        state=t.source,
                        symbol=symbol,
                    )
                )
        if t.move not in (LEFT, RIGHT):
            errors.append(
                ValidationError(
                    f"Head move '{t.move}' must be '{LEFT}' or '{RIGHT}'",
                    state=t.source,
                    symbol=t.read,
                )
            )
    errors += _check_deterministic(transitions)
    return errors


# -----------------------------------------------------------------------------
# Constructors
# -----------------------------------------------------------------------------


def _raise_if(errors: List[ValidationError], kind: AutomatonKind):
    if errors:
        logger.debug("%s rejected with %d validation error(s)", kind.name, len(errors))
        raise InvalidModelError(errors)


def build_dfa(
    states: Iterable[str],
    alphabet: Iterable[str],
    transitions: Iterable[Any],
    start_state: str,
    accepting_states: Iterable[str] = (),
    require_total: bool = True,
) -> Automaton:
    states, alphabet = _unique(states), _unique(alphabet)
    transitions, shape_errors = _coerce(AutomatonKind.DFA, transitions)
    accepting_states = _unique(accepting_states)
    _raise_if(
        shape_errors + validate_dfa(
            states, alphabet, transitions, start_state, accepting_states, require_total
        ),
        AutomatonKind.DFA,
    )
    return Automaton(
        kind=AutomatonKind.DFA,
        states=states,
        alphabet=alphabet,
        transitions=transitions,
        start_state=start_state,
        accepting_states=frozenset(accepting_states),
    )


def build_nfa(
    states: Iterable[str],
    alphabet: Iterable[str],
    transitions: Iterable[Any],
    start_state: str,
    accepting_states: Iterable[str] = (),
) -> Automaton:
    states, alphabet = _unique(states), _unique(alphabet)
    transitions, shape_errors = _coerce(AutomatonKind.NFA, transitions)
    accepting_states = _unique(accepting_states)
    _raise_if(
        shape_errors + validate_nfa(states, alphabet, transitions, start_state, accepting_states),
        AutomatonKind.NFA,
    )
    return Automaton(
        kind=AutomatonKind.NFA,
        states=states,
        alphabet=alphabet,
        transitions=transitions,
        start_state=start_state,
        accepting_states=frozenset(accepting_states),
    )


def build_mealy(
    states: Iterable[str],
    alphabet: Iterable[str],
    transitions: Iterable[Any],
    start_state: str,
    output_alphabet: Iterable[str] = (),
) -> Automaton:
    states, alphabet = _unique(states), _unique(alphabet)
    transitions, shape_errors = _coerce(AutomatonKind.MEALY, transitions)
    output_alphabet = _unique(output_alphabet) or _unique(t.output for t in transitions)
    _raise_if(
        shape_errors + validate_mealy(states, alphabet, transitions, start_state, output_alphabet),
        AutomatonKind.MEALY,
    )
    return Automaton(
        kind=AutomatonKind.MEALY,
        states=states,
        alphabet=alphabet,
        transitions=transitions,
        start_state=start_state,
        output_alphabet=output_alphabet,
    )


def build_moore(
    states: Iterable[str],
    alphabet: Iterable[str],
    transitions: Iterable[Any],
    start_state: str,
    output_function: Mapping[str, str],
    output_alphabet: Iterable[str] = (),
) -> Automaton:
    states, alphabet = _unique(states), _unique(alphabet)
    transitions, shape_errors = _coerce(AutomatonKind.MOORE, transitions)
    output_function = dict(output_function)
    output_alphabet = _unique(output_alphabet) or _unique(
        output_function[s] for s in states if s in output_function
    )
    _raise_if(
        shape_errors + validate_moore(
            states, alphabet, transitions, start_state, output_function, output_alphabet
        ),
        AutomatonKind.MOORE,
    )
    return Automaton(
        kind=AutomatonKind.MOORE,
        states=states,
        alphabet=alphabet,
        transitions=transitions,
        start_state=start_state,
        output_alphabet=output_alphabet,
        output_function=output_function,
    )


def build_pda(
    states: Iterable[str],
    alphabet: Iterable[str],
    transitions: Iterable[Any],
    start_state: str,
    accepting_states: Iterable[str] = (),
    stack_alphabet: Iterable[str] = (),
    start_stack_symbol: str = DEFAULT_START_STACK,
) -> Automaton:
    states, alphabet = _unique(states), _unique(alphabet)
    transitions, shape_errors = _coerce(AutomatonKind.PDA, transitions)
    accepting_states = _unique(accepting_states)
    stack_alphabet = _unique(stack_alphabet)
    _raise_if(
        shape_errors + validate_pda(
            states,
            alphabet,
            transitions,
            start_state,
            accepting_states,
            stack_alphabet,
            start_stack_symbol,
        ),
        AutomatonKind.PDA,
    )
    return Automaton(
        kind=AutomatonKind.PDA,
        states=states,
        alphabet=alphabet,
        transitions=transitions,
        start_state=start_state,
        accepting_states=frozenset(accepting_states),
        stack_alphabet=stack_alphabet,
        start_stack_symbol=start_stack_symbol,
    )


def build_tm(
    states: Iterable[str],
    alphabet: Iterable[str],
    transitions: Iterable[Any],
    start_state: str,
    accept_state: str,
    reject_state: Optional[str] = None,
    blank_symbol: str = DEFAULT_BLANK,
    tape_alphabet: Iterable[str] = (),
) -> Automaton:
    states, alphabet = _unique(states), _unique(alphabet)
    transitions, shape_errors = _coerce(AutomatonKind.TM, transitions)
    tape_alphabet = _unique(tape_alphabet)
    _raise_if(
        shape_errors + validate_tm(
            states,
            alphabet,
            transitions,
            start_state,
            accept_state,
            reject_state,
            blank_symbol,
            tape_alphabet,
        ),
        AutomatonKind.TM,
    )
    return Automaton(
        kind=AutomatonKind.TM,
        states=states,
        alphabet=alphabet,
        transitions=transitions,
        start_state=start_state,
        tape_alphabet=tape_alphabet,
        blank_symbol=blank_symbol,
        accept_state=accept_state,
        reject_state=reject_state,
    )
