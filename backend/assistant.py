"""Lineage assistant: answers free-text questions about the family tree.

Questions are matched against an ordered table of intents; the first
intent whose predicate matches produces the answer. Keywords cover Hindi
(Devanagari), English and romanized Hindi.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable

from family_tree import FamilyTreeStore, IndexedPerson, PersonIndex
from gender import GenderClassifier, is_female
from name_matching import find_best_match

logger = logging.getLogger("vanshavali.assistant")

YEAR_PATTERN = re.compile(r"\b(19\d{2}|20\d{2})\b", re.ASCII)
TOKEN_PATTERN = re.compile(r"[^\s?!.,;:'\"()।]+")

BIRTH_KEYWORDS = ("जन्म", "पैदा", "born", "birth", "साल", "वर्ष", "paida", "janm", "janam", "saal", "varsh")
TOTAL_KEYWORDS = (
    "कुल सदस्य", "कितने लोग", "कितने सदस्य", "total members", "how many members",
    "kitne log", "kitne sadasya", "kul sadasya",
)
GENERATION_KEYWORDS = ("पीढ़ियां", "पीढ़ी", "how many generations", "max generation", "pidhi", "peedhi")
OLDEST_KEYWORDS = ("सबसे बुजुर्ग", "सबसे पुराने", "oldest", "sabse bujurg", "sabse purane")
PRONOUNS = frozenset({
    "उनके", "उनका", "उनकी", "उनको", "उसका", "उसकी", "उसके", "उसको", "उसे", "वह", "वे",
    "his", "her", "he", "she", "him", "they", "their",
    "unke", "unka", "unki", "unko", "uska", "uski", "uske", "usko", "woh",
})
SHOW_KEYWORDS = ("दिखाओ", "कहाँ है", "show", "find", "locate", "where is", "dikhao", "kahan hai")
DESCENDANT_KEYWORDS = ("वंशज", "descendants", "सभी बच्चे", "vanshaj", "sabhi bacche")
GRANDFATHER_KEYWORDS = ("दादा", "grandfather", "dada")
SIBLING_KEYWORDS = ("भाई", "sibling", "brother", "कौन हैं", "bhai", "kaun hain")
CHILDREN_KEYWORDS = ("बच्चे", "संतान", "children", "bacche", "bachche", "santan")
FATHER_KEYWORDS = ("पिता", "father", "parents", "pita", "papa")
BIRTH_YEAR_KEYWORDS = ("जन्म", "पैदा", "born", "year", "janm", "janam", "paida")
ABOUT_KEYWORDS = ("कौन", "who", "के बारे में", "about", "kaun", "bare mein")
HELP_KEYWORDS = ("महत्व", "help", "सहायता", "क्या कर सकते", "madad")

MIN_QUERY_LENGTH = 3

MESSAGES = {
    "hi": {
        "no_data": "क्षमा करें, परिवार का डेटा अभी उपलब्ध नहीं है।",
        "year_found": "वर्ष {year} में इन सदस्यों का जन्म हुआ था: {names}।",
        "year_none": "क्षमा करें, वर्ष {year} में जन्म लेने वाला कोई भी सदस्य हमारे रिकॉर्ड में नहीं है।",
        "total": "हमारे परिवार वृक्ष में कुल {total} सदस्य दर्ज हैं।",
        "generations": "इस परिवार के इतिहास में अब तक कुल {generations} पीढ़ियां दर्ज की गई हैं।",
        "oldest": "सबसे बुजुर्ग सदस्य {name} हैं, जिनका जन्म वर्ष {year} है।",
        "oldest_none": "क्षमा करें, मुझे जन्म तिथि का सही डेटा नहीं मिला।",
        "show": "बिल्कुल, मैं आपको {name} के पास ले चलता हूँ।",
        "show_text_only": "क्षमा करें, मैं अभी आपको स्क्रीन पर नहीं दिखा पा रहा हूँ, लेकिन {name} पीढ़ी {generation} में हैं।",
        "descendants_none": "{name} के कोई वंशज दर्ज नहीं हैं।",
        "descendants": "{name} के कुल {count} वंशज हैं: {names}।",
        "grandfather": "{name} के दादाजी {grandfather} हैं।",
        "grandfather_siblings": "{name} के दादाजी {grandfather} हैं, और उनके भाई ये हैं: {names}।",
        "grandfather_no_siblings": "{name} के दादाजी ({grandfather}) का कोई भाई दर्ज नहीं है।",
        "grandfather_unknown": "{name} के दादाजी का डेटा उपलब्ध नहीं है।",
        "children": "{name} के {count} बच्चे हैं: {names}।",
        "children_none": "{name} की कोई संतान दर्ज नहीं है।",
        "father": "{name} के पिता {father} हैं।",
        "root_ancestor": "{name} हमारे मूल पूर्वज हैं।",
        "birth_year": "{name} का जन्म वर्ष {year} है।",
        "unknown_year": "अज्ञात",
        "bio_generation": "{name} पीढ़ी {generation} के सदस्य हैं।",
        "bio_parent": "वे {parent} {child_term} हैं।",
        "son": "के पुत्र",
        "daughter": "की पुत्री",
        "bio_children": "उनके {count} बच्चे हैं।",
        "person_prompt": "{name} के बारे में क्या जानना चाहते हैं? (दिखाओ, वंशज, दादाजी, जन्म वर्ष, आदि)",
        "help": (
            "मैं बहुत कुछ कर सकता हूँ! जैसे: 'राहुल को दिखाओ', '1950 में कौन पैदा हुआ?', "
            "'[नाम] के दादाजी के भाई कौन हैं?', या '[नाम] के सभी वंशज बताओ'।"
        ),
        "too_short": "कृपया अपना प्रश्न थोड़ा विस्तार से लिखें।",
        "unknown": (
            "क्षमा करें, मुझे इसका उत्तर नहीं पता। आप 'सिद्धार्थ को दिखाओ' "
            "या किसी सदस्य के वंशजों के बारे में पूछ सकते हैं।"
        ),
    },
    "en": {
        "no_data": "Sorry, the family data is not available right now.",
        "year_found": "These members were born in {year}: {names}.",
        "year_none": "Sorry, no member born in {year} is in our records.",
        "total": "Our family tree has {total} members in total.",
        "generations": "{generations} generations have been recorded in this family's history so far.",
        "oldest": "The oldest member is {name}, born in {year}.",
        "oldest_none": "Sorry, I could not find reliable birth year data.",
        "show": "Sure, let me take you to {name}.",
        "show_text_only": "Sorry, I can't show this on screen right now, but {name} is in generation {generation}.",
        "descendants_none": "No descendants of {name} are recorded.",
        "descendants": "{name} has {count} descendants in total: {names}.",
        "grandfather": "The grandfather of {name} is {grandfather}.",
        "grandfather_siblings": "The grandfather of {name} is {grandfather}, and his siblings are: {names}.",
        "grandfather_no_siblings": "No siblings of {name}'s grandfather ({grandfather}) are recorded.",
        "grandfather_unknown": "No data about the grandfather of {name} is available.",
        "children": "{name} has {count} children: {names}.",
        "children_none": "No children of {name} are recorded.",
        "father": "The father of {name} is {father}.",
        "root_ancestor": "{name} is our founding ancestor.",
        "birth_year": "{name} was born in {year}.",
        "unknown_year": "an unknown year",
        "bio_generation": "{name} is a member of generation {generation}.",
        "bio_parent": "They are the {child_term} of {parent}.",
        "son": "son",
        "daughter": "daughter",
        "bio_children": "They have {count} children.",
        "person_prompt": (
            "What would you like to know about {name}? "
            "(show, descendants, grandfather, birth year, etc.)"
        ),
        "help": (
            "I can do a lot! For example: 'show Rahul', 'who was born in 1950?', "
            "'who are the siblings of [name]'s grandfather?', or 'list all descendants of [name]'."
        ),
        "too_short": "Please describe your question in a little more detail.",
        "unknown": (
            "Sorry, I don't know the answer to that. You can ask 'show Siddharth' "
            "or about the descendants of any member."
        ),
    },
}


@dataclass(frozen=True)
class ConversationContext:
    """The person the conversation is currently about, for pronoun follow-ups."""
    person_id: int | None = None


@dataclass
class Turn:
    """Everything an intent needs to answer one question."""
    text: str
    index: PersonIndex
    language: str
    context: ConversationContext
    classifier: GenderClassifier | None = None
    show_person: Callable[[int], None] | None = None
    person: IndexedPerson | None = None
    year: int | None = None

    def says(self, key: str, **values) -> str:
        return MESSAGES[self.language][key].format(**values)

    def mentions(self, keywords: tuple[str, ...]) -> bool:
        return any(keyword in self.text for keyword in keywords)


@dataclass(frozen=True)
class Intent:
    name: str
    matches: Callable[[Turn], bool]
    answer: Callable[[Turn], str]


def _names(persons: list[IndexedPerson]) -> str:
    return ", ".join(p.name for p in persons)


def uses_pronoun(text: str) -> bool:
    return any(token in PRONOUNS for token in TOKEN_PATTERN.findall(text.lower()))


# ============================================================================
# Whole-tree intents (no person needed)
# ============================================================================

def _is_year_query(turn: Turn) -> bool:
    match = YEAR_PATTERN.search(turn.text)
    if match and turn.mentions(BIRTH_KEYWORDS):
        turn.year = int(match.group(1))
        return True
    return False


def _answer_year(turn: Turn) -> str:
    born = [p for p in turn.index if p.birth_year == turn.year]
    if born:
        return turn.says("year_found", year=turn.year, names=_names(born))
    return turn.says("year_none", year=turn.year)


def _answer_total(turn: Turn) -> str:
    return turn.says("total", total=turn.index.total_members)


def _answer_generations(turn: Turn) -> str:
    return turn.says("generations", generations=turn.index.max_generation)


def _answer_oldest(turn: Turn) -> str:
    with_year = [p for p in turn.index if p.birth_year]
    if not with_year:
        return turn.says("oldest_none")
    oldest = min(with_year, key=lambda p: p.birth_year)
    turn.context = ConversationContext(oldest.id)
    return turn.says("oldest", name=oldest.name, year=oldest.birth_year)


TREE_INTENTS = [
    Intent("year_search", _is_year_query, _answer_year),
    Intent("total_members", lambda t: t.mentions(TOTAL_KEYWORDS), _answer_total),
    Intent("generation_count", lambda t: t.mentions(GENERATION_KEYWORDS), _answer_generations),
    Intent("oldest_member", lambda t: t.mentions(OLDEST_KEYWORDS), _answer_oldest),
]


# ============================================================================
# Person intents
# ============================================================================

def _answer_show(turn: Turn) -> str:
    person = turn.person
    if turn.show_person is None:
        return turn.says("show_text_only", name=person.name, generation=person.generation)
    turn.show_person(person.id)
    return turn.says("show", name=person.name)


def _answer_descendants(turn: Turn) -> str:
    person = turn.person
    descendants = turn.index.descendants_of(person)
    if not descendants:
        return turn.says("descendants_none", name=person.name)
    return turn.says("descendants", name=person.name, count=len(descendants), names=_names(descendants))


def _answer_grandfather(turn: Turn) -> str:
    person = turn.person
    father = turn.index.parent_of(person)
    grandfather = turn.index.parent_of(father) if father else None
    if not grandfather:
        return turn.says("grandfather_unknown", name=person.name)

    if turn.mentions(SIBLING_KEYWORDS):
        siblings = turn.index.siblings_of(grandfather)
        if not siblings:
            return turn.says("grandfather_no_siblings", name=person.name, grandfather=grandfather.name)
        return turn.says(
            "grandfather_siblings", name=person.name, grandfather=grandfather.name, names=_names(siblings),
        )
    return turn.says("grandfather", name=person.name, grandfather=grandfather.name)


def _answer_children(turn: Turn) -> str:
    person = turn.person
    children = turn.index.children_of(person)
    if not children:
        return turn.says("children_none", name=person.name)
    return turn.says("children", name=person.name, count=len(children), names=_names(children))


def _answer_father(turn: Turn) -> str:
    person = turn.person
    father = turn.index.parent_of(person)
    if father:
        return turn.says("father", name=person.name, father=father.name)
    return turn.says("root_ancestor", name=person.name)


def _answer_birth_year(turn: Turn) -> str:
    person = turn.person
    year = person.birth_year or turn.says("unknown_year")
    return turn.says("birth_year", name=person.name, year=year)


def _answer_biography(turn: Turn) -> str:
    person = turn.person
    parts = [turn.says("bio_generation", name=person.name, generation=person.generation)]

    parent = turn.index.parent_of(person)
    if parent:
        child_term = turn.says("daughter" if is_female(person, turn.classifier) else "son")
        parts.append(turn.says("bio_parent", parent=parent.name, child_term=child_term))
    if person.child_ids:
        parts.append(turn.says("bio_children", count=len(person.child_ids)))
    return " ".join(parts)


PERSON_INTENTS = [
    Intent("show_person", lambda t: t.mentions(SHOW_KEYWORDS), _answer_show),
    Intent("descendants", lambda t: t.mentions(DESCENDANT_KEYWORDS), _answer_descendants),
    Intent("grandfather", lambda t: t.mentions(GRANDFATHER_KEYWORDS), _answer_grandfather),
    Intent("children", lambda t: t.mentions(CHILDREN_KEYWORDS), _answer_children),
    Intent("father", lambda t: t.mentions(FATHER_KEYWORDS), _answer_father),
    Intent("birth_year", lambda t: t.mentions(BIRTH_YEAR_KEYWORDS), _answer_birth_year),
    Intent("biography", lambda t: t.mentions(ABOUT_KEYWORDS), _answer_biography),
    Intent("person_prompt", lambda t: True, lambda t: t.says("person_prompt", name=t.person.name)),
]


# ============================================================================
# Fallbacks (no person found)
# ============================================================================

FALLBACK_INTENTS = [
    Intent("help", lambda t: t.mentions(HELP_KEYWORDS), lambda t: t.says("help")),
    Intent("too_short", lambda t: len(t.text) < MIN_QUERY_LENGTH, lambda t: t.says("too_short")),
    Intent("unknown", lambda t: True, lambda t: t.says("unknown")),
]


class LineageAssistant:
    """
    Resolves questions against the store's current index.

    The conversation context is passed in and handed back with each answer
    rather than kept on the assistant, so one assistant serves any number
    of conversations.
    """

    def __init__(
        self,
        store: FamilyTreeStore,
        language: str = "hi",
        show_person: Callable[[int], None] | None = None,
        classifier: GenderClassifier | None = None,
    ):
        if language not in MESSAGES:
            raise ValueError(f"Unsupported language '{language}'. Use one of: {', '.join(MESSAGES)}")
        self.store = store
        self.language = language
        self.show_person = show_person
        self.classifier = classifier

    def resolve(
        self,
        utterance: str,
        context: ConversationContext | None = None,
        show_person: Callable[[int], None] | None = None,
    ) -> tuple[str, ConversationContext]:
        """Answer one question. Returns (answer, new context)."""
        context = context or ConversationContext()
        index = self.store.index
        if index is None:
            return MESSAGES[self.language]["no_data"], context

        turn = Turn(
            text=utterance.strip().lower(),
            index=index,
            language=self.language,
            context=context,
            classifier=self.classifier,
            show_person=show_person or self.show_person,
        )

        intent = next((i for i in TREE_INTENTS if i.matches(turn)), None)
        if intent:
            return self._answer(intent, turn)

        person = find_best_match(index, turn.text)
        if person:
            turn.context = ConversationContext(person.id)
        elif uses_pronoun(turn.text) and context.person_id is not None:
            person = index.get(context.person_id)
        turn.person = person

        # The last entry of both tables always matches
        intents = PERSON_INTENTS if person else FALLBACK_INTENTS
        intent = next(i for i in intents if i.matches(turn))
        return self._answer(intent, turn)

    def _answer(self, intent: Intent, turn: Turn) -> tuple[str, ConversationContext]:
        person = f" about {turn.person.name}" if turn.person else ""
        logger.debug(f"Intent '{intent.name}'{person} for query '{turn.text}'")
        return intent.answer(turn), turn.context
