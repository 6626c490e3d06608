from typing import Protocol, runtime_checkable


@runtime_checkable
class TokenCalculator(Protocol):
    def count(self, text: str) -> int:
        pass
