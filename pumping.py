"""
Pumping-lemma checker.

This validates a claimed decomposition and tests whether the pumped string
stays in the language; it proves nothing about the language itself.
Membership is decided by a handful of predicates picked from the language
description text. Descriptions none of them recognize are assumed to
contain the pumped string, and the result is flagged as an assumption.
"""

import logging
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing_extensions import *

from traces import Result, Step, Trace

logger = logging.getLogger(__name__)


class LanguageClass(Enum):
    REGULAR = "regular"
    CONTEXT_FREE = "context-free"
    NON_CONTEXT_FREE = "non-context-free"

    @property
    def uses_regular_lemma(self) -> bool:
        return self == LanguageClass.REGULAR

    @property
    def label(self) -> str:
        return "Regular" if self.uses_regular_lemma else "Context-Free"

    @property
    def parts(self) -> Tuple[str, ...]:
        return ("x", "y", "z") if self.uses_regular_lemma else ("u", "v", "x", "w", "y")


@dataclass(frozen=True)
class Example:
    description: str
    word: str
    pumping_length: int


EXAMPLES: Dict[LanguageClass, Tuple[Example, ...]] = {
    LanguageClass.REGULAR: (
        Example("L = {a^n | n ≥ 0}", "aaa", 2),
        Example("L = {(ab)^n | n ≥ 0}", "abab", 2),
        Example('L = {w | w contains "ab"}', "aabb", 3),
    ),
    LanguageClass.CONTEXT_FREE: (
        Example("L = {a^n b^n | n ≥ 1}", "aaabbb", 3),
        Example("L = {ww^R | w ∈ {a,b}*}", "abba", 2),
        Example("L = {a^i b^j c^k | i=j or j=k}", "aabbcc", 3),
    ),
    LanguageClass.NON_CONTEXT_FREE: (
        Example("L = {a^n b^n c^n | n ≥ 1}", "aaabbbccc", 4),
        Example("L = {ww | w ∈ {a,b}*}", "abab", 2),
        Example("L = {a^(n^2) | n ≥ 1}", "aaaa", 2),
    ),
}


# -----------------------------------------------------------------------------
# Membership predicates
# -----------------------------------------------------------------------------


def _blocks(word: str, letters: str) -> Optional[Tuple[int, ...]]:
    """Lengths of the a*b*c*... blocks of `word`, None if it has another shape."""
    pattern = "".join(f"({letter}*)" for letter in letters)
    match = re.fullmatch(pattern, word)
    if match is None:
        return None
    return tuple(len(group) for group in match.groups())


def in_anbncn(word: str) -> bool:
    counts = _blocks(word, "abc")
    return counts is not None and counts[0] > 0 and len(set(counts)) == 1


def in_anbn(word: str) -> bool:
    counts = _blocks(word, "ab")
    return counts is not None and counts[0] > 0 and counts[0] == counts[1]


def in_aibjck(word: str) -> bool:
    counts = _blocks(word, "abc")
    return counts is not None and (counts[0] == counts[1] or counts[1] == counts[2])


def in_a_square(word: str) -> bool:
    counts = _blocks(word, "a")
    if counts is None or counts[0] == 0:
        return False
    root = math.isqrt(counts[0])
    return root * root == counts[0]


def in_ab_star(word: str) -> bool:
    return re.fullmatch(r"(ab)*", word) is not None


def in_w_wr(word: str) -> bool:
    if len(word) % 2:
        return False
    half = len(word) // 2
    return word[:half] == word[half:][::-1]


def in_ww(word: str) -> bool:
    if len(word) % 2:
        return False
    half = len(word) // 2
    return word[:half] == word[half:]


def in_a_star(word: str) -> bool:
    return _blocks(word, "a") is not None


# Keys are whole language forms, compared with whitespace removed.
PREDICATES: List[Tuple[str, Callable[[str], bool]]] = [
    ("a^n b^n c^n", in_anbncn),
    ("a^n b^n", in_anbn),
    ("a^i b^j c^k", in_aibjck),
    ("a^(n^2)", in_a_square),
    ("(ab)^n", in_ab_star),
    ("ww^R", in_w_wr),
    ("ww", in_ww),
    ("a^n", in_a_star),
]

_CONTAINS = re.compile(r'contains\s+"([^"]*)"')
_FORM = re.compile(r"\{(.*?)(?:\||\}\s*$)")


def language_form(description: str) -> str:
    """The part of "L = {form | condition}" naming the words, without spaces."""
    text = " ".join(description.split())
    match = _FORM.search(text)
    form = match.group(1) if match else text
    return "".join(form.split())


def membership_predicate(description: str) -> Optional[Tuple[str, Callable[[str], bool]]]:
    """Predicate recognizing `description`, or None for an unknown language."""
    form = language_form(description)
    for key, predicate in PREDICATES:
        if form == "".join(key.split()):
            return key, predicate

    text = " ".join(description.split())
    match = _CONTAINS.search(text)
    if match:
        needle = match.group(1)
        return f'contains "{needle}"', lambda word: needle in word
    return None


def check_membership(description: str, word: str) -> Tuple[bool, bool]:
    """(in language, assumed) for `word`."""
    found = membership_predicate(description)
    if found is None:
        logger.warning(
            "No membership test for language %r, assuming %r is in it",
            description,
            word,
        )
        return True, True
    return found[1](word), False


# -----------------------------------------------------------------------------
# Decomposition checks
# -----------------------------------------------------------------------------


def _check_regular(word: str, p: int, parts: Mapping[str, str]) -> Optional[str]:
    x, y, z = parts["x"], parts["y"], parts["z"]
    if not y:
        return "y cannot be empty"
    if x + y + z != word:
        return "Decomposition does not match original string"
    if len(x + y) > p:
        return "xy must have length ≤ p"
    return None


def _check_context_free(word: str, p: int, parts: Mapping[str, str]) -> Optional[str]:
    u, v, x, w, y = (parts[k] for k in ("u", "v", "x", "w", "y"))
    if not v and not w:
        return "v and w cannot both be empty"
    if u + v + x + w + y != word:
        return "Decomposition does not match original string"
    if len(v + x + w) > p:
        return "vxw must have length ≤ p"
    return None


def pump(parts: Mapping[str, str], i: int, language: LanguageClass) -> str:
    if language.uses_regular_lemma:
        return parts["x"] + parts["y"] * i + parts["z"]
    return parts["u"] + parts["v"] * i + parts["x"] + parts["w"] * i + parts["y"]


def check_pumping(
    language: Union[LanguageClass, str],
    description: str,
    word: str,
    pumping_length: int,
    decomposition: Mapping[str, str],
    i: int,
) -> Trace:
    """
    Check a pumping-lemma decomposition of `word` and pump it `i` times.

    `decomposition` maps part names (x, y, z or u, v, x, w, y) to strings;
    missing parts count as empty.
    """
    language = LanguageClass(language)
    if pumping_length < 1:
        raise ValueError(f"Pumping length must be at least 1, got {pumping_length}")

    parts = {name: decomposition.get(name, "") for name in language.parts}
    common = {
        "decomposition": parts,
        "pumping_length": pumping_length,
        "pumping_value": i,
    }

    steps = [
        Step(
            title="Initialize Pumping Lemma Test",
            description=f"Testing {language.value} pumping lemma",
            details=f'Language: {description}, String: "{word}", p = {pumping_length}',
            data=dict(common),
        )
    ]

    long_enough = len(word) >= pumping_length
    steps.append(
        Step(
            title="Check String Length",
            description=f"String length: {len(word)}",
            details=(
                f"|s| = {len(word)} ≥ p = {pumping_length} ✓"
                if long_enough
                else f"|s| = {len(word)} < p = {pumping_length} ✗"
            ),
            data=dict(common),
        )
    )
    if not long_enough:
        steps.append(
            Step(
                title="String Too Short",
                description="String is shorter than pumping length",
                details="Pumping lemma does not apply to strings shorter than p",
                data=dict(common),
                is_final=True,
                is_error=True,
                accepted=False,
            )
        )
        return Trace(tuple(steps), Result(accepted=False))

    if language.uses_regular_lemma:
        shown = ", ".join(f'{k}="{parts[k]}"' for k in language.parts)
        steps.append(
            Step(
                title="Apply Regular Pumping Lemma",
                description=f"Decomposition: s = xyz where {shown}",
                details="Conditions: |xy| ≤ p, |y| > 0",
                data=dict(common),
            )
        )
        error = _check_regular(word, pumping_length, parts)
        pumped_parts = "y"
        pumped_form = f"xy^{i}z"
    else:
        shown = ", ".join(f'{k}="{parts[k]}"' for k in language.parts)
        steps.append(
            Step(
                title="Apply Context-Free Pumping Lemma",
                description=f"Decomposition: s = uvxwy where {shown}",
                details="Conditions: |vxw| ≤ p, |vw| > 0",
                data=dict(common),
            )
        )
        error = _check_context_free(word, pumping_length, parts)
        pumped_parts = "v and w"
        pumped_form = f"uv^{i}xw^{i}y"

    if error is None and i < 0:
        error = f"Pumping count must be ≥ 0, got {i}"

    if error is not None:
        steps.append(
            Step(
                title="Invalid Decomposition",
                description=error,
                details="Please check your decomposition and try again",
                data=dict(common),
                is_final=True,
                is_error=True,
                accepted=False,
            )
        )
        logger.debug("Rejected decomposition of %r: %s", word, error)
        return Trace(tuple(steps), Result(accepted=False))

    pumped = pump(parts, i, language)
    steps.append(
        Step(
            title="Pump the String",
            description=f"Pumping {pumped_parts} {i} times: {pumped_form}",
            details=f'Result: "{pumped}" (length: {len(pumped)})',
            data=dict(common, pumped_string=pumped),
        )
    )

    in_language, assumed = check_membership(description, pumped)
    if assumed:
        details = "No membership test for this language, assumed to be in the language"
    elif in_language:
        details = "The pumped string is in the language ✓"
    else:
        details = "The pumped string is NOT in the language ✗"
    steps.append(
        Step(
            title="Check Language Membership",
            description=f'Is "{pumped}" in the language?',
            details=details,
            data=dict(common, pumped_string=pumped, in_language=in_language, assumed=assumed),
            is_final=True,
            accepted=in_language,
        )
    )
    return Trace(
        tuple(steps),
        Result(accepted=in_language, pumped_string=pumped, assumed=assumed),
    )
