"""Password generator backed by the ``secrets`` CSPRNG."""
import secrets

UPPERCASE = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
LOWERCASE = "abcdefghijklmnopqrstuvwxyz"
NUMBERS = "0123456789"
SYMBOLS = "!@#$%^&*()_+-=[]{}|;:,.<>?"
AMBIGUOUS = "0O1lI|`~"


def _strip_ambiguous(charset: str) -> str:
    return "".join(c for c in charset if c not in AMBIGUOUS)


def generate_password(
    length: int = 16,
    uppercase: bool = True,
    lowercase: bool = True,
    numbers: bool = True,
    symbols: bool = True,
    exclude_ambiguous: bool = False,
) -> str:
    """Generate a random password.

    Every selected character class appears at least once. With no class
    selected, lowercase letters and digits are used.

    Raises:
        ValueError: If ``length`` is smaller than the number of required
            character classes.
    """
    classes = [
        charset for charset, selected in (
            (UPPERCASE, uppercase),
            (LOWERCASE, lowercase),
            (NUMBERS, numbers),
            (SYMBOLS, symbols),
        ) if selected
    ]
    if not classes:
        classes = [LOWERCASE + NUMBERS]
    if exclude_ambiguous:
        classes = [_strip_ambiguous(c) for c in classes]
    if length < len(classes):
        raise ValueError(
            f"Password length {length} cannot fit {len(classes)} character classes"
        )

    alphabet = "".join(classes)
    chars = [secrets.choice(c) for c in classes]
    chars.extend(secrets.choice(alphabet) for _ in range(length - len(chars)))
    # Fisher-Yates with a CSPRNG so required characters are not at the front
    for i in range(len(chars) - 1, 0, -1):
        j = secrets.randbelow(i + 1)
        chars[i], chars[j] = chars[j], chars[i]
    return "".join(chars)
