from unidecode import unidecode


def normalize_text(text: str) -> str:
    """Fold text to a lowercase ASCII approximation for substring search.

    Accented letters and non-Latin scripts are transliterated; characters
    without a mapping are kept as they are.
    """
    return unidecode(text, errors="preserve").lower()
