import logging
import os
import re
from typing_extensions import *

from automaton import (
    DEFAULT_BLANK,
    DEFAULT_START_STACK,
    EPSILON,
    Automaton,
    AutomatonKind,
    build_dfa,
    build_mealy,
    build_moore,
    build_nfa,
    build_pda,
    build_tm,
)
from grammar import Grammar, build_grammar

logger = logging.getLogger(__name__)

EPSILON_ALIASES = {"ε", "eps", "epsilon", "EPSILON", "λ"}

KIND_NAMES: Dict[str, AutomatonKind] = {
    "dfa": AutomatonKind.DFA,
    "dea": AutomatonKind.DFA,
    "nfa": AutomatonKind.NFA,
    "nea": AutomatonKind.NFA,
    "enfa": AutomatonKind.NFA,
    "pda": AutomatonKind.PDA,
    "pushdown": AutomatonKind.PDA,
    "tm": AutomatonKind.TM,
    "turing": AutomatonKind.TM,
    "mealy": AutomatonKind.MEALY,
    "moore": AutomatonKind.MOORE,
}
GRAMMAR_NAMES = {"cfg", "grammar"}

# Keys whose value continues on the following lines
MULTILINE_KEYS = {"transitions", "output", "productions"}

_FIELD_SEPARATOR = re.compile(r"\s*(?:->|→|,)\s*")
_KEY_LINE = re.compile(r"^([a-z_]+):\s*(.*)$")


def normalize_symbol(symbol: str) -> str:
    symbol = symbol.strip()
    return EPSILON if symbol in EPSILON_ALIASES else symbol


def _content_lines(text: str) -> Iterator[Tuple[int, str]]:
    for number, line in enumerate(text.split("\n"), start=1):
        if "#" in line:
            line = line[: line.index("#")]
        line = line.strip()
        if line:
            yield number, line


# -----------------------------------------------------------------------------
# Field parsers
# -----------------------------------------------------------------------------


def parse_list(text: str) -> List[str]:
    """Comma (or whitespace) separated items, empties dropped, order kept."""
    return [item for item in re.split(r"[,\s]+", text.strip()) if item]


def parse_transitions(text: str, arity: int) -> List[Tuple[str, ...]]:
    """
    One transition per line, fields separated by commas or arrows.

    Lines with the wrong number of fields are skipped with a warning.
    """
    rows: List[Tuple[str, ...]] = []
    for number, line in _content_lines(text):
        fields = tuple(_FIELD_SEPARATOR.split(line))
        if len(fields) != arity:
            logger.warning(
                "Skipping transition on line %d: expected %d fields, got %d (%r)",
                number,
                arity,
                len(fields),
                line,
            )
            continue
        rows.append(fields)
    return rows


def parse_output_function(text: str) -> Dict[str, str]:
    """Moore outputs, one `state,output` (or `state: output`) per line."""
    outputs: Dict[str, str] = {}
    for number, line in _content_lines(text):
        fields = [f.strip() for f in re.split(r"[,:=]", line, maxsplit=1)]
        if len(fields) != 2 or not fields[0]:
            logger.warning("Skipping output on line %d: %r", number, line)
            continue
        outputs[fields[0]] = fields[1]
    return outputs


def parse_decomposition(text: str) -> Dict[str, str]:
    """`x=aa, y=a, z=bbb` -> {"x": "aa", "y": "a", "z": "bbb"}."""
    parts: Dict[str, str] = {}
    for item in text.split(","):
        if "=" not in item:
            if item.strip():
                logger.warning("Ignoring decomposition part without '=': %r", item)
            continue
        name, value = (s.strip() for s in item.split("=", 1))
        if name:
            parts[name] = value
    return parts


def parse_grammar(text: str, start_symbol: Optional[str] = None) -> Grammar:
    """
    Productions like `S -> a S b | ε`, one left-hand side per line.

    Symbols on the right are whitespace separated. `→` and `::=` are
    accepted as arrows; a line `start: X` picks the start symbol, otherwise
    the first left-hand side is used.
    """
    productions: Dict[str, List[List[str]]] = {}
    for number, line in _content_lines(text):
        key = _KEY_LINE.match(line)
        if key and "->" not in line:
            if key.group(1) == "start":
                start_symbol = start_symbol or key.group(2).strip()
            continue

        line = line.replace("→", "->").replace("::=", "->")
        if "->" not in line:
            logger.warning("Skipping grammar line %d without '->': %r", number, line)
            continue

        lhs, rhs = (s.strip() for s in line.split("->", 1))
        if not lhs:
            logger.warning("Skipping grammar line %d without left-hand side", number)
            continue
        alternatives = productions.setdefault(lhs, [])
        for alternative in rhs.split("|"):
            symbols = [normalize_symbol(s) for s in alternative.split()]
            alternatives.append(symbols or [EPSILON])

    if start_symbol is None and productions:
        start_symbol = next(iter(productions))
    return build_grammar(productions, start_symbol)


# -----------------------------------------------------------------------------
# Definition blocks
# -----------------------------------------------------------------------------


def _split_block(block: str) -> Dict[str, str]:
    """Map each `key:` of a block to its value; multi-line keys collect lines."""
    fields: Dict[str, str] = {}
    current: Optional[str] = None

    for number, line in _content_lines(block):
        key = _KEY_LINE.match(line)
        if key:
            name, value = key.group(1), key.group(2).strip()
            fields[name] = value
            current = name if name in MULTILINE_KEYS else None
        elif current is not None:
            fields[current] = (fields[current] + "\n" + line).strip()
        elif "->" in line or "→" in line:
            # Bare productions without a `productions:` header
            fields["productions"] = (fields.get("productions", "") + "\n" + line).strip()
        else:
            logger.warning("Ignoring line %d outside any section: %r", number, line)
    return fields


def _symbols(row: Tuple[str, ...], *positions: int) -> Tuple[str, ...]:
    return tuple(
        normalize_symbol(value) if index in positions else value.strip()
        for index, value in enumerate(row)
    )


def build_automaton(kind: AutomatonKind, fields: Mapping[str, str]) -> Automaton:
    """Build an automaton of `kind` from the raw text fields of a block."""
    states = parse_list(fields.get("states", ""))
    alphabet = [normalize_symbol(s) for s in parse_list(fields.get("alphabet", ""))]
    start = fields.get("start", "").strip()
    accepting = parse_list(fields.get("accept", ""))
    text = fields.get("transitions", "")

    if kind == AutomatonKind.DFA:
        rows = [_symbols(r) for r in parse_transitions(text, 3)]
        return build_dfa(states, alphabet, rows, start, accepting)

    if kind == AutomatonKind.NFA:
        rows = [_symbols(r, 1) for r in parse_transitions(text, 3)]
        return build_nfa(states, alphabet, rows, start, accepting)

    if kind == AutomatonKind.PDA:
        rows = []
        for row in parse_transitions(text, 5):
            source, symbol, top, target, push = _symbols(row, 1, 2, 4)
            rows.append((source, symbol, top, target, "" if push == EPSILON else push))
        return build_pda(
            states,
            alphabet,
            rows,
            start,
            accepting,
            parse_list(fields.get("stack_alphabet", "")),
            fields.get("start_stack", "").strip() or DEFAULT_START_STACK,
        )

    if kind == AutomatonKind.TM:
        rows = [_symbols(r) for r in parse_transitions(text, 5)]
        accept_state = fields.get("accept_state", "").strip() or (
            accepting[0] if accepting else ""
        )
        return build_tm(
            states,
            alphabet,
            rows,
            start,
            accept_state,
            fields.get("reject_state", "").strip() or None,
            fields.get("blank", "").strip() or DEFAULT_BLANK,
            parse_list(fields.get("tape_alphabet", "")),
        )

    if kind == AutomatonKind.MEALY:
        rows = [_symbols(r) for r in parse_transitions(text, 4)]
        return build_mealy(
            states, alphabet, rows, start, parse_list(fields.get("output_alphabet", ""))
        )

    rows = [_symbols(r) for r in parse_transitions(text, 3)]
    return build_moore(
        states,
        alphabet,
        rows,
        start,
        parse_output_function(fields.get("output", "")),
        parse_list(fields.get("output_alphabet", "")),
    )


def parse_definition(block: str) -> Union[Automaton, Grammar]:
    """Parse one `type: ...` block into an automaton or a grammar."""
    fields = _split_block(block)
    type_name = fields.get("type", "").strip().lower()

    if type_name in GRAMMAR_NAMES or (not type_name and "productions" in fields):
        return parse_grammar(
            fields.get("productions", ""), fields.get("start", "").strip() or None
        )

    if type_name not in KIND_NAMES:
        raise ValueError(
            f"Unknown definition type '{type_name}', expected one of: "
            f"{', '.join(sorted(set(KIND_NAMES) | GRAMMAR_NAMES))}"
        )
    return build_automaton(KIND_NAMES[type_name], fields)


def load_from_file(filename: str) -> Tuple[Dict[str, Automaton], Dict[str, Grammar]]:
    """
    Load every definition of a file.

    A file is either a list of named sections (`NAME:` on its own line
    followed by a definition) or unnamed blocks separated by `---`, named
    after the file. Broken definitions are skipped with a warning.
    """
    automata: Dict[str, Automaton] = {}
    grammars: Dict[str, Grammar] = {}

    with open(filename, "r", encoding="utf-8") as f:
        content = f.read()

    keys = "|".join(sorted(MULTILINE_KEYS))
    name_pattern = re.compile(rf"^(?!(?:{keys}):)([A-Za-z]\w*):\s*$", re.MULTILINE)

    if name_pattern.search(content):
        sections = name_pattern.split(content)
        named = [
            (sections[i].strip(), sections[i + 1])
            for i in range(1, len(sections) - 1, 2)
        ]
    else:
        base_name = os.path.basename(filename).rsplit(".", 1)[0]
        blocks = [b for b in content.split("---") if b.strip()]
        named = [
            (f"{base_name}{idx if idx > 0 else ''}", block)
            for idx, block in enumerate(blocks)
        ]

    for name, definition in named:
        if not definition.strip():
            continue
        try:
            loaded = parse_definition(definition)
        except ValueError as e:
            logger.warning("Failed to load '%s' from %s: %s", name, filename, e)
            continue
        if isinstance(loaded, Grammar):
            grammars[name] = loaded
        else:
            automata[name] = loaded

    logger.debug(
        "Loaded %d automata and %d grammars from %s", len(automata), len(grammars), filename
    )
    return automata, grammars
