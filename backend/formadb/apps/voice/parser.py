# backend/formadb/apps/voice/parser.py
"""
Rule-based interpreter for spoken / typed UI commands (French and English).

`parse_command` normalises the utterance, then walks RULES in order and
returns the first intent a rule produces. The order is part of the contract:

1. stop        cancellation must never be shadowed
2. navigate    destinations often contain words other rules react to
3. fill_field  before click, so "fill in my email to log in" is not a click
4. click       only with an explicit click verb or a known button override
5. read_page
6. scroll

A rule whose keywords match but which cannot build an intent yields None and
the next rule is tried. When no rule produces anything the result is an
AskClarification without a message.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from typing import Callable, ClassVar, Iterable, List, Optional, Sequence, Tuple

from .schemas import FormField, PageContext

# Keywords shorter than this must equal a whole token; longer ones may prefix one.
_PREFIX_MIN = 4

STOP_KEYWORDS = ("stop", "arrete", "annule", "cancel")

NAVIGATE_KEYWORDS = (
    "aller", "allez", "va", "navigue", "ouvrir", "ouvre", "montre", "voir", "accueil",
    "go", "open", "show", "navigate", "home",
)
HOME_KEYWORDS = ("accueil", "home")

# Verbs that only ever mean "put text in a field".
FILL_VERBS = ("rempli", "saisi", "ecri", "taper", "fill", "write")

CLICK_KEYWORDS = (
    "clique", "appu", "press", "valid", "envoy", "connect", "s'inscri", "inscri",
    "login", "log in", "click", "return", "retour", "back", "submit", "sign up",
)
EXPLICIT_CLICK_KEYWORDS = ("clique", "appu", "press", "valid", "click", "submit")

# Applied in order; a later match replaces an earlier one.
BUTTON_OVERRIDES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("connect", "login", "log in", "connexion"), "log in"),
    (("inscri", "sign up", "signup"), "request access"),
    (("return", "retour", "back"), "return to login"),
    (("submit", "valide", "envoyer"), "submit"),
)

READ_KEYWORDS = ("lire", "lis", "contenu", "decrir", "quoi", "read", "content", "describe", "what")
SCROLL_DOWN_KEYWORDS = ("descend", "bas", "down", "bottom")
SCROLL_UP_KEYWORDS = ("monte", "remonte", "haut", "up", "top")

CLICK_CLARIFICATION = "Voulez-vous cliquer sur un bouton ?"
FILL_CLARIFICATION = "Quel champ voulez-vous remplir ?"


# ---------------------------------------------------------------------------
# INTENTS
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Intent:
    action: ClassVar[str] = ""

    def _payload(self, target: Optional[str] = None, value: Optional[str] = None) -> dict:
        return {
            "action": self.action,
            "target": target,
            "value": value,
            "confidence": getattr(self, "confidence", 0.0),
        }

    def as_action(self) -> dict:
        return self._payload()


@dataclass(frozen=True)
class Stop(Intent):
    action: ClassVar[str] = "stop"
    confidence: float = field(default=1.0, compare=False)


@dataclass(frozen=True)
class Navigate(Intent):
    action: ClassVar[str] = "navigate"
    target: str = ""
    confidence: float = field(default=0.85, compare=False)

    def as_action(self) -> dict:
        return self._payload(target=self.target)


@dataclass(frozen=True)
class FillField(Intent):
    action: ClassVar[str] = "fill_field"
    field_id: str = ""
    value: str = ""
    confidence: float = field(default=0.85, compare=False)

    def as_action(self) -> dict:
        return self._payload(target=self.field_id, value=self.value)


@dataclass(frozen=True)
class ClickButton(Intent):
    action: ClassVar[str] = "click_button"
    target: str = ""
    confidence: float = field(default=0.9, compare=False)

    def as_action(self) -> dict:
        return self._payload(target=self.target)


@dataclass(frozen=True)
class ReadPage(Intent):
    action: ClassVar[str] = "read_page"
    confidence: float = field(default=0.95, compare=False)


@dataclass(frozen=True)
class Scroll(Intent):
    action: ClassVar[str] = "scroll"
    direction: str = "down"
    confidence: float = field(default=0.9, compare=False)

    def as_action(self) -> dict:
        return self._payload(target=self.direction)


@dataclass(frozen=True)
class AskClarification(Intent):
    action: ClassVar[str] = "ask_clarification"
    message: Optional[str] = None
    confidence: float = field(default=0.0, compare=False)

    def as_action(self) -> dict:
        return self._payload(value=self.message)


# ---------------------------------------------------------------------------
# NORMALISATION
# ---------------------------------------------------------------------------

_ISOLATED_A_GRAVE = re.compile(r"(?<!\S)à(?!\S)")
_EMAIL_ARTIFACTS = (
    (re.compile(r"\s+arobase\s+"), "@"),
    (re.compile(r"\s+at\s+"), "@"),
    (re.compile(r"\s+point\s+"), "."),
    (re.compile(r"\s+dot\s+"), "."),
)
_WHITESPACE = re.compile(r"\s+")
_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")


def strip_diacritics(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")


def normalize_utterance(raw: str) -> str:
    """
    Lowercase, turn dictated email punctuation into symbols, drop accents.

    An isolated "à" is read as "@". That also rewrites the French
    preposition ("aller à la page"), which the navigation pattern accepts.
    """
    text = raw.lower()
    text = _ISOLATED_A_GRAVE.sub("@", text)
    for pattern, replacement in _EMAIL_ARTIFACTS:
        text = pattern.sub(replacement, text)
    text = strip_diacritics(text)
    return _WHITESPACE.sub(" ", text).strip()


@dataclass(frozen=True)
class Utterance:
    text: str
    tokens: Tuple[str, ...]

    @classmethod
    def from_raw(cls, raw: str) -> "Utterance":
        text = normalize_utterance(raw)
        tokens = tuple(t for t in _TOKEN_SPLIT.split(text) if t)
        return cls(text=text, tokens=tokens)

    def has(self, keywords: Iterable[str]) -> bool:
        return any(self._matches(keyword) for keyword in keywords)

    def _matches(self, keyword: str) -> bool:
        # Phrases are matched as substrings; single words against tokens so
        # "va" does not fire inside "valider".
        if " " in keyword or "'" in keyword:
            return keyword in self.text
        if len(keyword) >= _PREFIX_MIN:
            return any(token.startswith(keyword) for token in self.tokens)
        return keyword in self.tokens


# ---------------------------------------------------------------------------
# FIELD MATCHING
# ---------------------------------------------------------------------------


def _squash(value: str) -> str:
    return strip_diacritics(_WHITESPACE.sub("", value.lower()))


def _candidate_score(candidate: str, query: str) -> int:
    if candidate == query:
        return 100
    if query in candidate:
        return 80
    if candidate in query:
        return 70
    return 0


def match_field(spoken: str, fields: Sequence[FormField]) -> Optional[str]:
    """
    Resolve a spoken field name to the id (or name) of a form field.

    Each field scores its best candidate among id, name, label, placeholder
    and type; the first field with the strictly highest score wins.
    """
    query = _squash(spoken)
    if not query:
        return None

    best: Optional[str] = None
    best_score = 0
    for form_field in fields:
        key = form_field.id or form_field.name
        if not key:
            continue
        score = 0
        for raw in (form_field.id, form_field.name, form_field.label, form_field.placeholder, form_field.type):
            candidate = _squash(raw) if raw else ""
            if candidate:
                score = max(score, _candidate_score(candidate, query))
        if score > best_score:
            best, best_score = key, score
    return best


def format_value_for_field(value: str, field_id: Optional[str]) -> str:
    value = value.strip()
    lowered = (field_id or "").lower()
    if "email" in lowered or "mail" in lowered:
        value = _WHITESPACE.sub("", value).lower().replace("à", "@")
    return value


# ---------------------------------------------------------------------------
# RULES
# ---------------------------------------------------------------------------

_NAVIGATE = re.compile(
    r"\b(?:aller|allez|va|vas|naviguer|navigue|ouvrir|ouvre|vers|voir|montrer|montre"
    r"|go|open|show|navigate)\s+"
    r"(?:(?:a|au|aux|sur|vers|la|le|les|page\s+de|page|to|the|@)\s+|l')+"
    r"(?P<target>.+)"
)

# (pattern, field group, value group) tried in order.
_FILL_PATTERNS = (
    # "remplis l'email avec ..." / "fill in the email with ..."
    re.compile(
        r"\b(?:remplir|remplis|rempli|entrer|entrez|entre|saisir|saisis|saisi|mettre|mets|met"
        r"|fill(?:\s+in)?|enter|type)\s+"
        r"(?:(?:le|la|les|the)\s+|l')?"
        r"(?P<field>.+?)"
        r"(?:\s+(?:avec|par|est|vaut|with)\s+|\s*:\s*)"
        r"(?P<value>.+)"
    ),
    # "ecris ... dans le champ email" / "write ... in the email field"
    re.compile(
        r"\b(?:ecri\w*|tape|taper|tapez|write|type)\s+"
        r"(?P<value>.+?)\s+(?:dans|sur|pour|into|in)\s+"
        r"(?:(?:le|la|les|the|champ|field)\s+|l')*"
        r"(?P<field>.+)"
    ),
    # "mon email est ..." / "my email is ..."
    re.compile(
        r"\b(?:mon|ma|mes|le|la|my|the)\s+(?P<field>.+?)\s+(?:est|is)\s+(?P<value>.+)"
    ),
)

_CLICK_PREFIX = re.compile(
    r"^(?:(?:cliquer|cliquez|clique|click|appuyer|appuyez|appuie|presser|presse|press"
    r"|valider|valide|submit|sur|le|la|les|bouton|button|on|the)\s+|l')"
)


def _stop(utterance: Utterance, fields: Sequence[FormField]) -> Optional[Intent]:
    return Stop()


def _navigate(utterance: Utterance, fields: Sequence[FormField]) -> Optional[Intent]:
    match = _NAVIGATE.search(utterance.text)
    if match:
        return Navigate(match.group("target").strip())
    if utterance.has(HOME_KEYWORDS):
        return Navigate("home", confidence=0.9)
    return None


def _fill(utterance: Utterance, fields: Sequence[FormField]) -> Optional[Intent]:
    for pattern in _FILL_PATTERNS:
        match = pattern.search(utterance.text)
        if not match:
            continue
        field_raw = match.group("field").strip()
        field_id = match_field(field_raw, fields)
        if field_id is None:
            # Do not fall through to click: the user meant to fill something.
            return AskClarification(f'Je ne trouve pas le champ "{field_raw}".', confidence=0.5)
        return FillField(field_id, format_value_for_field(match.group("value"), field_id))

    if utterance.has(FILL_VERBS):
        return AskClarification(FILL_CLARIFICATION, confidence=0.5)
    return None


def _button_override(utterance: Utterance) -> Optional[str]:
    target = None
    for keywords, label in BUTTON_OVERRIDES:
        if utterance.has(keywords):
            target = label
    return target


def _strip_click_words(text: str) -> str:
    previous = None
    while previous != text:
        previous = text
        text = _CLICK_PREFIX.sub("", text).strip()
    return text


def _click(utterance: Utterance, fields: Sequence[FormField]) -> Optional[Intent]:
    override = _button_override(utterance)
    if override:
        return ClickButton(override)
    if not utterance.has(EXPLICIT_CLICK_KEYWORDS):
        return AskClarification(CLICK_CLARIFICATION, confidence=0.3)
    target = _strip_click_words(utterance.text)
    if not target:
        return AskClarification(CLICK_CLARIFICATION, confidence=0.3)
    return ClickButton(target)


def _read(utterance: Utterance, fields: Sequence[FormField]) -> Optional[Intent]:
    return ReadPage()


def _scroll(utterance: Utterance, fields: Sequence[FormField]) -> Optional[Intent]:
    if utterance.has(SCROLL_DOWN_KEYWORDS):
        return Scroll("down")
    return Scroll("up")


@dataclass(frozen=True)
class Rule:
    name: str
    keywords: Optional[Tuple[str, ...]]
    build: Callable[[Utterance, Sequence[FormField]], Optional[Intent]]

    def applies_to(self, utterance: Utterance) -> bool:
        return self.keywords is None or utterance.has(self.keywords)


RULES: Tuple[Rule, ...] = (
    Rule("stop", STOP_KEYWORDS, _stop),
    Rule("navigate", NAVIGATE_KEYWORDS, _navigate),
    Rule("fill_field", None, _fill),
    Rule("click_button", CLICK_KEYWORDS, _click),
    Rule("read_page", READ_KEYWORDS, _read),
    Rule("scroll", SCROLL_DOWN_KEYWORDS + SCROLL_UP_KEYWORDS, _scroll),
)


def parse_command(raw_text: str, page_context: Optional[PageContext] = None) -> Intent:
    utterance = Utterance.from_raw(raw_text or "")
    fields: List[FormField] = list(page_context.form_fields) if page_context else []

    for rule in RULES:
        if not rule.applies_to(utterance):
            continue
        intent = rule.build(utterance, fields)
        if intent is not None:
            return intent
    return AskClarification()
