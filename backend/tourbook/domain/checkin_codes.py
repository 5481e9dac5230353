import re
import secrets
from typing import Callable, Sequence

# No 0, 1, O or I: codes are read aloud and typed by staff.
ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
GROUP_SIZE = 4
CODE_LENGTH = GROUP_SIZE * 2
CODE_PATTERN = re.compile(rf"^[{ALPHABET}]{{{GROUP_SIZE}}}-[{ALPHABET}]{{{GROUP_SIZE}}}$")

Chooser = Callable[[Sequence[str]], str]


def random_code(choose: Chooser = secrets.choice) -> str:
    raw = "".join(choose(ALPHABET) for _ in range(CODE_LENGTH))
    return f"{raw[:GROUP_SIZE]}-{raw[GROUP_SIZE:]}"


def normalize_code(code: str) -> str:
    return code.strip().upper()


def is_valid_code(code: str) -> bool:
    return CODE_PATTERN.fullmatch(code) is not None
