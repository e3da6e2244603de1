"""Room code generation and normalisation.

Codes are short upper-case strings meant to be read aloud or typed by hand.
Generation does not check uniqueness; the manager retries against the store.
"""

from __future__ import annotations

import random
import secrets
import string
from typing import Optional

ALPHABET = string.ascii_uppercase
DEFAULT_CODE_LENGTH = 4


def generate_room_code(length: int = DEFAULT_CODE_LENGTH, *, rng: Optional[random.Random] = None) -> str:
	"""Draw `length` letters uniformly and independently from A-Z.

	With the default length there are 26^4 = 456,976 possible codes.
	"""
	if length < 1:
		raise ValueError("length must be positive")
	if rng is not None:
		return "".join(rng.choice(ALPHABET) for _ in range(length))
	return "".join(secrets.choice(ALPHABET) for _ in range(length))


def normalise_code(raw: str) -> str:
	return raw.strip().upper()


def is_valid_code(code: str, length: int = DEFAULT_CODE_LENGTH) -> bool:
	return len(code) == length and all(ch in ALPHABET for ch in code)
