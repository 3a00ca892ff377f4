"""
Offline results used when the upstream completion API cannot be reached.

Each table maps keyword groups to a fixed result. Keywords match at word
starts, case-insensitively, and the first matching group wins, so the same
input always yields the same mock.
"""

import re
from typing import List, Sequence, Tuple

from talkhint.models.completion_schemas import (
    BilingualPair,
    BilingualResult,
    SuggestionsResult,
    TranslationResult,
)

KeywordTable = Sequence[Tuple[Tuple[str, ...], List[str]]]

SUGGESTION_MOCKS: KeywordTable = (
    (
        ("привет", "здравствуйте", "hello"),
        [
            "Здравствуйте! Чем я могу вам помочь?",
            "Добрый день! Рад вас слышать.",
            "Приветствую! Как ваши дела?",
        ],
    ),
    (
        ("цена", "стоимость"),
        [
            "Стоимость зависит от нескольких факторов. Могу подробнее рассказать о них.",
            "Наши цены начинаются от 5000 рублей. Хотите узнать детали?",
            "Я вышлю вам полный прайс-лист. Подскажите ваш email?",
        ],
    ),
    (
        ("спасибо",),
        [
            "Всегда пожалуйста! Есть ли еще вопросы?",
            "Рад был помочь. Обращайтесь, если будут вопросы.",
            "Не за что! Хорошего дня!",
        ],
    ),
    (
        ("опыт", "работа"),
        [
            "У меня 5 лет опыта работы в этой сфере.",
            "Я работал с разными проектами, от малых до крупных.",
            "Мой опыт включает работу с международными клиентами.",
        ],
    ),
)

DEFAULT_SUGGESTIONS = [
    "Интересная мысль. Давайте обсудим подробнее.",
    "Я понимаю вашу точку зрения. Что если посмотреть с другой стороны?",
    "Можете рассказать об этом подробнее?",
]

BILINGUAL_MOCKS: Sequence[Tuple[Tuple[str, ...], List[Tuple[str, str]]]] = (
    (
        ("cdl", "driver", "license"),
        [
            ("Yes, I have a CDL. I'm looking for a driving job now.",
             "Да, у меня есть CDL. Я сейчас как раз ищу работу водителем."),
            ("Yes, I have a Class A CDL with 3 years of experience.",
             "Да, у меня есть CDL класса A с 3-летним опытом."),
            ("Yes, I have a CDL. Can you tell me about the job?",
             "Да, у меня есть CDL. Можете рассказать о работе?"),
        ],
    ),
    (
        ("experience", "years"),
        [
            ("I have 5 years of truck driving experience.",
             "У меня 5 лет опыта вождения грузовика."),
            ("I've been driving trucks for 3 years, mostly long-haul.",
             "Я вожу грузовики 3 года, в основном дальние перевозки."),
            ("I have 4 years experience with refrigerated loads.",
             "У меня 4 года опыта работы с рефрижераторными грузами."),
        ],
    ),
    (
        ("available", "start", "when"),
        [
            ("I can start right away, as soon as tomorrow.",
             "Я могу начать прямо сейчас, хоть завтра."),
            ("I'm available immediately. When do you need a driver?",
             "Я доступен немедленно. Когда вам нужен водитель?"),
            ("I can start next week. Is the position still open?",
             "Я могу начать со следующей недели. Позиция еще открыта?"),
        ],
    ),
    (
        ("pay", "salary", "money"),
        [
            ("What is the pay rate for this position?",
             "Какая ставка оплаты для этой должности?"),
            ("How much does this job pay per mile or per hour?",
             "Сколько платят за милю или в час на этой работе?"),
            ("I'm looking for at least $25 per hour. Is that possible?",
             "Я ищу минимум $25 в час. Это возможно?"),
        ],
    ),
    (
        ("interview", "meeting"),
        [
            ("When would you like to schedule the interview?",
             "Когда бы вы хотели назначить собеседование?"),
            ("I'm available for an interview this week. What time works for you?",
             "Я свободен для собеседования на этой неделе. Какое время вам подходит?"),
            ("Should I bring any documents to the interview?",
             "Нужно ли мне принести какие-то документы на собеседование?"),
        ],
    ),
)

DEFAULT_BILINGUAL = [
    ("Could you please repeat that? I didn't understand.",
     "Не могли бы вы повторить? Я не понял."),
    ("I'm interested in this job. Please tell me more.",
     "Я заинтересован в этой работе. Расскажите подробнее, пожалуйста."),
    ("That sounds good. What should I do next?",
     "Звучит хорошо. Что мне делать дальше?"),
]

# (source, target) -> ordered phrase table and the fallback sentence
TRANSLATION_MOCKS = {
    ("ru", "en"): (
        (("привет", "Hello"), ("как дела", "How are you?")),
        "This is a mock translation from Russian to English",
    ),
    ("en", "ru"): (
        (("hello", "Привет"), ("how are you", "Как дела?")),
        "Это тестовый перевод с английского на русский",
    ),
}


def contains_keyword(text: str, keyword: str) -> bool:
    """Whether ``keyword`` occurs in ``text`` starting at a word boundary."""
    return re.search(r"(?<!\w)" + re.escape(keyword), text, re.IGNORECASE) is not None


def _first_match(text: str, table):
    for keywords, value in table:
        if any(contains_keyword(text, k) for k in keywords):
            return value
    return None


def mock_suggestions(text: str) -> SuggestionsResult:
    suggestions = _first_match(text, SUGGESTION_MOCKS) or DEFAULT_SUGGESTIONS
    return SuggestionsResult(suggestions=list(suggestions), mock=True)


def mock_bilingual_responses(text: str) -> BilingualResult:
    pairs = _first_match(text, BILINGUAL_MOCKS) or DEFAULT_BILINGUAL
    return BilingualResult(
        responses=[BilingualPair(primary=p, secondary=s) for p, s in pairs],
        mock=True,
    )


def mock_translation(text: str, source_language: str, target_language: str) -> TranslationResult:
    entry = TRANSLATION_MOCKS.get((source_language, target_language))
    if entry is None:
        return TranslationResult(
            translation=f"Mock translation from {source_language} to {target_language}: {text}",
            mock=True,
        )
    phrases, fallback = entry
    lowered = text.lower()
    for phrase, translation in phrases:
        if phrase in lowered:
            return TranslationResult(translation=translation, mock=True)
    return TranslationResult(translation=fallback, mock=True)
