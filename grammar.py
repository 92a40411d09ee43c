import logging
from dataclasses import dataclass
from enum import Enum
from typing_extensions import *

from automaton import EPSILON, InvalidModelError, ValidationError
from traces import Result, Step, Trace

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 20
DEFAULT_MAX_PARSE_STEPS = 10_000


class GrammarType(Enum):
    TYPE_0 = 0  # Unrestricted grammar
    TYPE_1 = 1  # Context-sensitive grammar
    TYPE_2 = 2  # Context-free grammar (CFG)
    TYPE_3 = 3  # Regular grammar


@dataclass(frozen=True)
class HierarchyEntry:
    label: str
    description: str
    machine: str
    language: str
    properties: Tuple[str, ...]
    example: str


HIERARCHY: Dict[GrammarType, HierarchyEntry] = {
    GrammarType.TYPE_0: HierarchyEntry(
        label="Type 0 - Unrestricted Grammar",
        description="No restrictions on production rules",
        machine="Turing Machine",
        language="Recursively enumerable languages",
        properties=("Most general", "Turing-complete", "May not halt"),
        example="S → aSBC | abC\nCB → BC\nbB → bb\nbC → bc\ncC → cc",
    ),
    GrammarType.TYPE_1: HierarchyEntry(
        label="Type 1 - Context-Sensitive Grammar",
        description="α → β where |α| ≤ |β| (non-contracting)",
        machine="Linear Bounded Automaton",
        language="Context-sensitive languages",
        properties=("Non-contracting", "Decidable", "Exponential space"),
        example="S → aSBC | aBC\naB → ab\nbB → bb\nbC → bc\ncC → cc",
    ),
    GrammarType.TYPE_2: HierarchyEntry(
        label="Type 2 - Context-Free Grammar",
        description="A → α where A is non-terminal",
        machine="Pushdown Automaton",
        language="Context-free languages",
        properties=("Stack-based", "Polynomial parsing", "Programming languages"),
        example="S → aSb | ab\nS → SS | ε",
    ),
    GrammarType.TYPE_3: HierarchyEntry(
        label="Type 3 - Regular Grammar",
        description="A → aB or A → a (right-linear)",
        machine="Finite Automaton",
        language="Regular languages",
        properties=("Most restrictive", "Linear time", "Pattern matching"),
        example="S → aS | bA\nA → aA | bS | ε",
    ),
}


class Grammar:
    """
    Context-free grammar.

    P maps each non-terminal to its alternatives in declaration order; each
    alternative is a tuple of symbols and (EPSILON,) is the empty string.
    Every symbol without productions of its own is a terminal.
    """

    def __init__(self):
        self.N: List[str] = []  # Non-terminals, declaration order
        self.Sigma: Set[str] = set()  # Terminals
        self.P: Dict[str, List[Tuple[str, ...]]] = {}  # Productions
        self.S: str = ""  # Start symbol
        self.EPSILON = EPSILON

    # ------------------------------------------------------------------ #
    # Basic symbol / production management
    # ------------------------------------------------------------------ #

    def add_non_terminal(self, symbol: str):
        if symbol not in self.N:
            self.N.append(symbol)
        self.Sigma.discard(symbol)

    def add_terminal(self, symbol: str):
        if symbol == self.EPSILON or symbol in self.N:
            return
        self.Sigma.add(symbol)

    def set_start_symbol(self, symbol: str):
        self.S = symbol
        self.add_non_terminal(symbol)

    def add_production(self, lhs: str, rhs: Sequence[str]):
        rhs = tuple(rhs) if rhs else (self.EPSILON,)
        self.add_non_terminal(lhs)
        alternatives = self.P.setdefault(lhs, [])
        if rhs not in alternatives:
            alternatives.append(rhs)

    def is_non_terminal(self, symbol: str) -> bool:
        return symbol in self.P

    def productions(self) -> Iterator[Tuple[str, Tuple[str, ...]]]:
        for lhs in self.N:
            for rhs in self.P.get(lhs, []):
                yield lhs, rhs

    def rules(self) -> List[Tuple[Tuple[str, ...], Tuple[str, ...]]]:
        return [((lhs,), rhs) for lhs, rhs in self.productions()]

    def grammar_type(self) -> GrammarType:
        return detect_grammar_type(self.rules(), self.S, self.N)

    def classify(self) -> Trace:
        return classify_grammar(self.rules(), self.S, self.N)

    # ------------------------------------------------------------------ #
    # Introspection / pretty-printing
    # ------------------------------------------------------------------ #

    def __str__(self):
        result = "Grammar\n"
        result += f"  Non-terminals: {{{', '.join(self.N)}}}\n"
        result += f"  Terminals: {{{', '.join(sorted(self.Sigma))}}}\n"
        result += f"  Start symbol: {self.S}\n"
        result += "  Productions:\n"
        for lhs in self.N:
            if lhs not in self.P:
                continue
            alternatives = [" ".join(rhs) for rhs in self.P[lhs]]
            result += f"    {lhs} -> {' | '.join(alternatives)}\n"
        return result


# ---------------------------------------------------------------------- #
# Validation / construction
# ---------------------------------------------------------------------- #


def validate_grammar(
    productions: Mapping[str, Sequence[Sequence[str]]],
    start_symbol: Optional[str],
    terminals: Optional[Iterable[str]] = None,
) -> List[ValidationError]:
    errors: List[ValidationError] = []

    if not productions:
        errors.append(ValidationError("At least one production is required"))

    if not start_symbol or start_symbol not in productions:
        errors.append(
            ValidationError(
                f"Start symbol '{start_symbol}' has no productions", state=start_symbol
            )
        )

    known_terminals = set(terminals) if terminals is not None else None
    for lhs, alternatives in productions.items():
        if not alternatives:
            errors.append(
                ValidationError(f"Non-terminal '{lhs}' has no alternatives", state=lhs)
            )
        for rhs in alternatives:
            if not rhs:
                errors.append(
                    ValidationError(
                        f"Empty right-hand side for '{lhs}', write '{EPSILON}' instead",
                        state=lhs,
                    )
                )
            if EPSILON in rhs and len(rhs) > 1:
                errors.append(
                    ValidationError(
                        f"'{EPSILON}' must stand alone in a production of '{lhs}'",
                        state=lhs,
                        symbol=EPSILON,
                    )
                )
            if known_terminals is None:
                continue
            for symbol in rhs:
                if symbol != EPSILON and symbol not in productions and symbol not in known_terminals:
                    errors.append(
                        ValidationError(
                            f"Symbol '{symbol}' in a production of '{lhs}' is neither terminal nor non-terminal",
                            state=lhs,
                            symbol=symbol,
                        )
                    )
    return errors


def build_grammar(
    productions: Mapping[str, Sequence[Sequence[str]]],
    start_symbol: str,
    terminals: Optional[Iterable[str]] = None,
) -> Grammar:
    if terminals is not None:
        terminals = list(terminals)
    errors = validate_grammar(productions, start_symbol, terminals)
    if errors:
        raise InvalidModelError(errors)

    g = Grammar()
    g.set_start_symbol(start_symbol)
    for lhs in productions:
        g.add_non_terminal(lhs)
    for lhs, alternatives in productions.items():
        for rhs in alternatives:
            g.add_production(lhs, rhs)
            for symbol in rhs:
                if symbol not in productions:
                    g.add_terminal(symbol)
    for symbol in terminals or ():
        g.add_terminal(symbol)
    return g


# ---------------------------------------------------------------------- #
# Parsing (bounded backtracking recursive descent)
# ---------------------------------------------------------------------- #


@dataclass(frozen=True)
class ParseNode:
    symbol: str
    children: Tuple["ParseNode", ...] = ()

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def depth(self) -> int:
        if not self.children:
            return 0
        return 1 + max(child.depth() for child in self.children)

    def leaves(self) -> str:
        if not self.children:
            return "" if self.symbol == EPSILON else self.symbol
        return "".join(child.leaves() for child in self.children)

    def __str__(self):
        if not self.children:
            return self.symbol
        return f"{self.symbol}({','.join(str(c) for c in self.children)})"


class _SearchExhausted(Exception):
    pass


class _Parser:
    def __init__(self, grammar: Grammar, text: str, max_depth: int, max_steps: int):
        self.grammar = grammar
        self.text = text
        self.max_depth = max_depth
        self.max_steps = max_steps
        self.steps: List[Step] = []
        self.hit_ceiling = False
        self._reach: Dict[Tuple[str, int, int], FrozenSet[int]] = {}

    def record(self, title: str, description: str, details: str, position: int, **data):
        if len(self.steps) >= self.max_steps:
            raise _SearchExhausted
        self.steps.append(
            Step(
                title=title,
                description=description,
                details=details,
                position=position,
                remaining_input=self.text[position:],
                data=data,
            )
        )

    def note_ceiling(self, symbol: str, position: int):
        if not self.hit_ceiling:
            self.hit_ceiling = True
            self.record(
                "Depth Limit Reached",
                f"Recursion deeper than {self.max_depth} levels abandoned",
                "Grammars with left recursion cannot be fully explored",
                position,
                symbol=symbol,
            )

    def reachable(self, symbol: str, position: int, depth: int) -> FrozenSet[int]:
        """End positions `derive` can reach, memoized per (symbol, position, depth)."""
        key = (symbol, position, depth)
        if key in self._reach:
            return self._reach[key]

        ends: Set[int] = set()
        if depth > self.max_depth:
            self.note_ceiling(symbol, position)
        elif not self.grammar.is_non_terminal(symbol):
            if symbol and self.text.startswith(symbol, position):
                ends.add(position + len(symbol))
        else:
            for rhs in self.grammar.P[symbol]:
                if rhs == (EPSILON,):
                    ends.add(position)
                else:
                    ends |= self.reachable_sequence(rhs, position, depth + 1)

        self._reach[key] = frozenset(ends)
        return self._reach[key]

    def reachable_sequence(self, rhs: Sequence[str], position: int, depth: int) -> FrozenSet[int]:
        frontier = {position}
        for symbol in rhs:
            frontier = {end for start in frontier for end in self.reachable(symbol, start, depth)}
            if not frontier:
                break
        return frozenset(frontier)

    def derive(self, symbol: str, position: int, depth: int) -> Iterator[Tuple[int, ParseNode]]:
        """Yield every (end, tree) for `symbol` starting at `position`."""
        if depth > self.max_depth:
            self.note_ceiling(symbol, position)
            return

        if not self.grammar.is_non_terminal(symbol):
            if symbol and self.text.startswith(symbol, position):
                self.record(
                    "Match Terminal",
                    f"Matched terminal '{symbol}' at position {position}",
                    "Terminal symbol matches input character",
                    position,
                    production=f"Terminal: {symbol}",
                )
                yield position + len(symbol), ParseNode(symbol)
            return

        for rhs in self.grammar.P[symbol]:
            production = f"{symbol} → {' '.join(rhs)}"
            if rhs == (EPSILON,):
                self.record(
                    "Apply Production",
                    f"Applied production: {production}",
                    "Epsilon production - no input consumed",
                    position,
                    production=production,
                )
                yield position, ParseNode(symbol, (ParseNode(EPSILON),))
                continue

            # dead alternatives are skipped without being tried
            if not self.reachable_sequence(rhs, position, depth + 1):
                continue

            self.record(
                "Try Production",
                f"Trying production: {production}",
                f"Attempting to derive from position {position}",
                position,
                production=production,
            )
            for end, children in self.derive_sequence(rhs, position, depth + 1):
                self.record(
                    "Production Success",
                    f"Successfully applied: {production}",
                    f"Derived symbols from position {position} to {end}",
                    end,
                    production=production,
                )
                yield end, ParseNode(symbol, children)

    def derive_sequence(
        self, rhs: Sequence[str], position: int, depth: int
    ) -> Iterator[Tuple[int, Tuple[ParseNode, ...]]]:
        if not rhs:
            yield position, ()
            return
        for middle, node in self.derive(rhs[0], position, depth):
            if not self.reachable_sequence(rhs[1:], middle, depth):
                continue
            for end, rest in self.derive_sequence(rhs[1:], middle, depth):
                yield end, (node,) + rest


def parse(
    grammar: Grammar,
    word: str,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_steps: int = DEFAULT_MAX_PARSE_STEPS,
) -> Trace:
    """
    Recognize `word` from the start symbol and build a parse tree.

    Alternatives are tried in declaration order with backtracking; a
    derivation only counts if it consumes the whole input. Recursion deeper
    than `max_depth` is cut off, which keeps left-recursive grammars finite.

    Before searching, the end positions reachable from every (symbol,
    position, depth) are computed once, so words outside the language are
    rejected without enumerating derivations and dead branches are never
    entered. The search itself records at most `max_steps` steps; past that
    it stops with a "Search Limit Reached" step and `timeout` set.
    """
    parser = _Parser(grammar, word, max_depth, max_steps)
    tree: Optional[ParseNode] = None
    timed_out = False
    furthest = 0
    try:
        parser.record(
            "Initialize Parser",
            f'Starting to parse "{word}" with start symbol {grammar.S}',
            f"Grammar rules: {len(grammar.P)} non-terminals",
            0,
        )
        parser.record(
            "Begin Parsing",
            f'Attempting to derive "{word}" from {grammar.S}',
            "Using top-down recursive descent approach",
            0,
        )
        ends = parser.reachable(grammar.S, 0, 0)
        furthest = max(ends, default=0)
        if len(word) in ends:
            for end, candidate in parser.derive(grammar.S, 0, 0):
                if end == len(word):
                    tree = candidate
                    break
                parser.record(
                    "Backtrack",
                    f"Derivation stops at position {end} of {len(word)}",
                    "Unconsumed input remains, trying another derivation",
                    end,
                )
    except _SearchExhausted:
        timed_out = True
        parser.steps.append(
            Step(
                title="Search Limit Reached",
                description=f"Search stopped after {max_steps} steps",
                details="The grammar is too ambiguous to explore within the step limit",
                position=furthest,
                remaining_input=word[furthest:],
                is_error=True,
            )
        )

    if tree is not None:
        parser.steps.append(
            Step(
                title="Parse Successful",
                description=f'Successfully parsed "{word}"',
                details="String belongs to the language defined by the grammar",
                position=len(word),
                remaining_input="",
            )
        )
    else:
        parser.steps.append(
            Step(
                title="Parse Failed",
                description=f'Failed to parse "{word}"',
                details=f"String does not belong to the language defined by the grammar. Stopped at position {furthest}",
                position=furthest,
                remaining_input=word[furthest:],
            )
        )

    steps = parser.steps + [
        Step(
            title="Generate Parse Tree",
            description="Parse tree generated" if tree else "No parse tree (parsing failed)",
            details=str(tree) if tree else "Invalid input string",
            is_final=True,
            accepted=tree is not None,
            data={"tree": tree} if tree else {},
        )
    ]
    logger.debug("Parsed %r: %s", word, "accepted" if tree else "rejected")
    return Trace(tuple(steps), Result(accepted=tree is not None, parse_tree=tree, timeout=timed_out))


# ---------------------------------------------------------------------- #
# Chomsky hierarchy
# ---------------------------------------------------------------------- #

Production = Tuple[Sequence[str], Sequence[str]]


def _default_non_terminals(productions: Sequence[Production]) -> Set[str]:
    symbols: Set[str] = set()
    for lhs, rhs in productions:
        for symbol in list(lhs) + list(rhs):
            if symbol[:1].isupper():
                symbols.add(symbol)
    return symbols


def _type_violations(
    productions: Sequence[Production], start: str, non_terminals: Set[str]
) -> Dict[GrammarType, Optional[Production]]:
    """First production breaking each restricted type, None if there is none."""
    violations: Dict[GrammarType, Optional[Production]] = {
        GrammarType.TYPE_3: None,
        GrammarType.TYPE_2: None,
        GrammarType.TYPE_1: None,
    }

    def flag(grammar_type: GrammarType, production: Production):
        if violations[grammar_type] is None:
            violations[grammar_type] = production

    for production in productions:
        lhs, rhs = tuple(production[0]), tuple(production[1])
        is_epsilon = rhs == (EPSILON,)

        # Type 2 / 3: a single non-terminal on the left
        if not (len(lhs) == 1 and lhs[0] in non_terminals):
            flag(GrammarType.TYPE_2, production)
            flag(GrammarType.TYPE_3, production)
        elif not is_epsilon:
            # Type 3: terminals optionally followed by one non-terminal
            body = rhs[:-1] if rhs and rhs[-1] in non_terminals else rhs
            if any(symbol in non_terminals for symbol in body):
                flag(GrammarType.TYPE_3, production)

        # Type 1: non-contracting, S -> ε allowed
        if is_epsilon:
            if lhs != (start,):
                flag(GrammarType.TYPE_1, production)
        elif len(rhs) < len(lhs):
            flag(GrammarType.TYPE_1, production)

    return violations


def detect_grammar_type(
    productions: Sequence[Production],
    start: str,
    non_terminals: Optional[Iterable[str]] = None,
) -> GrammarType:
    nts = set(non_terminals) if non_terminals is not None else _default_non_terminals(productions)
    violations = _type_violations(productions, start, nts)
    for grammar_type in (GrammarType.TYPE_3, GrammarType.TYPE_2, GrammarType.TYPE_1):
        if violations[grammar_type] is None:
            return grammar_type
    return GrammarType.TYPE_0


def _production_label(production: Production) -> str:
    return f"{''.join(production[0])} → {''.join(production[1])}"


def classify_grammar(
    productions: Sequence[Production],
    start: str,
    non_terminals: Optional[Iterable[str]] = None,
) -> Trace:
    """Place a grammar in the Chomsky hierarchy and explain the placement."""
    nts = set(non_terminals) if non_terminals is not None else _default_non_terminals(productions)
    violations = _type_violations(productions, start, nts)

    steps = [
        Step(
            title="Chomsky Hierarchy Overview",
            description="The Chomsky hierarchy classifies formal grammars into four types",
            details="Each type has specific restrictions and corresponding machine models",
        )
    ]

    result = GrammarType.TYPE_0
    for grammar_type in (GrammarType.TYPE_3, GrammarType.TYPE_2, GrammarType.TYPE_1):
        entry = HIERARCHY[grammar_type]
        offending = violations[grammar_type]
        steps.append(
            Step(
                title=f"Check {entry.label}",
                description=entry.description,
                details=(
                    "Every production satisfies the restriction"
                    if offending is None
                    else f"Violated by {_production_label(offending)}"
                ),
                data={"type": grammar_type.value, "satisfied": offending is None},
            )
        )
        if offending is None:
            result = grammar_type
            break

    entry = HIERARCHY[result]
    steps.append(
        Step(
            title=f"Focus on {entry.label}",
            description=entry.description,
            details=f"Recognized by: {entry.machine}",
            data={"type": result.value},
        )
    )
    steps.append(
        Step(
            title="Grammar Example",
            description="Example grammar for this type",
            details=entry.example,
        )
    )
    steps.append(
        Step(
            title="Properties",
            description=f"Key properties: {', '.join(entry.properties)}",
            details=f"Language class: {entry.language}",
            data={"properties": list(entry.properties)},
            is_final=True,
            accepted=True,
        )
    )
    return Trace(tuple(steps), Result(accepted=True, grammar_type=result))
