"""Lexis: spaced-repetition scheduling for vocabulary courses."""

from lexis.consts import VERSION

__version__ = VERSION
