LANGUAGE_CODES = {
    "English": "en",
    "Hindi": "hi",
    "Konkani": "gom",
    "Marathi": "mr",
}

DEFAULT_SOURCE_CODE = "en"
DEFAULT_TARGET_CODE = "hi"


def language_code(name: str, default: str) -> str:
    # Unknown names never fail a translation, they get the default code
    return LANGUAGE_CODES.get(name, default)


def source_code(name: str) -> str:
    return language_code(name, DEFAULT_SOURCE_CODE)


def target_code(name: str) -> str:
    return language_code(name, DEFAULT_TARGET_CODE)


def pair_key(from_language: str, to_language: str) -> str:
    """Key used by the offline phrase book, e.g. 'English-Hindi'."""
    return f"{from_language}-{to_language}"
