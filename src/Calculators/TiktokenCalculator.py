import logging
from typing import Optional

import tiktoken

from Calculators.TokenCalculator import TokenCalculator

DEFAULT_ENCODING = "cl100k_base"

logger = logging.getLogger(__name__)


class TiktokenCalculator(TokenCalculator):
    """
    TokenCalculator backed by a tiktoken BPE encoding.

    The encoding is resolved by name first (e.g. ``cl100k_base``) and, failing that,
    as a model name (e.g. ``gpt-4o``). It is loaded on first use and cached, since
    loading may fetch the BPE ranks from the network.

    Special-token markers inside source text (``<|endoftext|>``) are counted as
    ordinary text rather than rejected.
    """

    def __init__(self, encoding: Optional[str] = None) -> None:
        self._encoding_name = encoding or DEFAULT_ENCODING
        self._encoding = None

    @property
    def encoding_name(self) -> str:
        return self._encoding_name

    def _load_encoding(self):
        """Resolve the encoding by name, then by model; log which one succeeded."""
        name = self._encoding_name
        try:
            if name in tiktoken.list_encoding_names():
                encoding = tiktoken.get_encoding(name)
            else:
                encoding = tiktoken.encoding_for_model(name)
        except (KeyError, ValueError) as e:
            logger.error("Failed to load tiktoken encoding %s: %s", name, e)
            raise RuntimeError(f"Unknown tiktoken encoding or model '{name}'") from e
        logger.info("Loaded tiktoken encoding %s", encoding.name)
        return encoding

    def count(self, text: str) -> int:
        if self._encoding is None:
            self._encoding = self._load_encoding()
        return len(self._encoding.encode(text, disallowed_special=()))
