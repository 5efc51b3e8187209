# Offline answers used only after every networked provider has failed:
# a phrase book for translation and keyword-matched topic paragraphs for the
# travel assistant. The data lives in tourassist/data/*.json.

import json
import os
from typing import Dict, List, Optional

import structlog
from pydantic import BaseModel

from tourassist.services.languages import pair_key

logger = structlog.get_logger(__name__)

DATA_DIR = os.path.join(os.path.dirname(__file__), "..", "data")

# Stripped before looking a single word up in the pattern table
WORD_PUNCTUATION = ".,!?;:\"'()"


class PhraseBook(BaseModel):
    """Phrases keyed by 'From-To' pair then source phrase; patterns keyed by pair then lowercase word."""
    phrases: Dict[str, Dict[str, str]] = {}
    patterns: Dict[str, Dict[str, str]] = {}


class GuideTopic(BaseModel):
    name: str
    keywords: List[str]
    text: str


class GuideTopics(BaseModel):
    topics: List[GuideTopic]
    default: str


class OfflineTranslation(BaseModel):
    text: str
    method: str  # exact | case_insensitive | word_by_word | echo


def _load_json(filename: str) -> dict:
    file_path = os.path.join(DATA_DIR, filename)
    with open(file_path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_phrase_book(filename: str = "phrasebook.json") -> PhraseBook:
    book = PhraseBook.model_validate(_load_json(filename))
    logger.info("phrase_book_loaded", pairs=sorted(book.phrases))
    return book


def load_guide_topics(filename: str = "guide_topics.json") -> GuideTopics:
    guide = GuideTopics.model_validate(_load_json(filename))
    logger.info("guide_topics_loaded", topics=[t.name for t in guide.topics])
    return guide


def lookup_phrase_ignoring_case(phrases: Dict[str, str], text: str) -> Optional[str]:
    lowered = text.lower()
    for phrase, translation in phrases.items():
        if phrase.lower() == lowered:
            return translation
    return None


def translate_word(word: str, phrases: Dict[str, str], patterns: Dict[str, str]) -> Optional[str]:
    """
    Best-effort translation of a single word.

    The pattern table is consulted first. Failing that, the first phrase whose
    lowercase form contains the word (or is contained in it) is used, so
    "beach?" still finds "Beach". Words shorter than three letters only match
    through the pattern table, otherwise "a" would hit almost every phrase; the
    same floor applies to phrases ("Hi" must not match "this").
    """
    lowered = word.lower()
    bare = lowered.strip(WORD_PUNCTUATION)
    if bare in patterns:
        return patterns[bare]
    if len(bare) < 3:
        return None
    for phrase, translation in phrases.items():
        key = phrase.lower()
        if bare in key or (len(key) >= 3 and key in lowered):
            return translation
    return None


class OfflineTranslator:
    def __init__(self, book: PhraseBook):
        self.book = book

    def translate(self, text: str, from_language: str, to_language: str) -> OfflineTranslation:
        key = pair_key(from_language, to_language)
        phrases = self.book.phrases.get(key)
        if not phrases:
            return OfflineTranslation(text=text, method="echo")

        exact = phrases.get(text)
        if exact is not None:
            return OfflineTranslation(text=exact, method="exact")

        phrase = lookup_phrase_ignoring_case(phrases, text)
        if phrase is not None:
            return OfflineTranslation(text=phrase, method="case_insensitive")

        patterns = self.book.patterns.get(key, {})
        translated: List[str] = []
        hits = 0
        for word in text.split():
            replacement = translate_word(word, phrases, patterns)
            if replacement is None:
                translated.append(word)
            else:
                translated.append(replacement)
                hits += 1

        if hits:
            return OfflineTranslation(text=" ".join(translated), method="word_by_word")
        return OfflineTranslation(text=text, method="echo")


class OfflineGuide:
    def __init__(self, guide: GuideTopics):
        self.guide = guide

    def matched_topics(self, message: str) -> List[GuideTopic]:
        lowered = (message or "").lower()
        return [
            topic for topic in self.guide.topics
            if any(keyword in lowered for keyword in topic.keywords)
        ]

    def respond(self, message: str) -> str:
        topics = self.matched_topics(message)
        if not topics:
            return self.guide.default
        return " ".join(topic.text for topic in topics)
