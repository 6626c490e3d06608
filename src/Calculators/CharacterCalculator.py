from Calculators.TokenCalculator import TokenCalculator


class CharacterCalculator(TokenCalculator):
    """Token cost measured in characters. Deterministic and needs no model data."""

    def count(self, text: str) -> int:
        return len(text)
