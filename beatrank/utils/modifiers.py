from typing import Dict, List, Mapping, Optional

from beatrank.constants import ScoringConstants

def parse_modifiers(modifiers: Optional[str]) -> List[str]:
    """Split a modifier string such as "GN,SS" into tokens"""
    if not modifiers:
        return []
    return [token.strip() for token in modifiers.split(',') if token.strip()]

class ModifiersMap:
    """Multiplier deltas per gameplay modifier token"""

    def __init__(self, values: Optional[Mapping[str, float]] = None):
        self.values: Dict[str, float] = dict(ScoringConstants.DEFAULT_MODIFIER_VALUES)
        if values:
            self.values.update({key: float(value) for key, value in values.items()})

    def get(self, token: str) -> float:
        return self.values.get(token, 0.0)

    def negative_multiplier(self, modifiers: Optional[str], allow_negative: bool = False) -> float:
        """
        Penalty-only multiplier for a modifier string.

        Only negative deltas are applied, so bonus modifiers never raise the
        result above 1.0.

        Args:
            modifiers: Comma-separated modifier tokens
            allow_negative: Keep a multiplier below zero instead of flooring it

        Returns:
            Multiplier in [0, 1] unless allow_negative is set
        """
        multiplier = 1.0
        for token in parse_modifiers(modifiers):
            value = self.get(token)
            if value < 0:
                multiplier += value
        return multiplier if allow_negative else max(0.0, multiplier)

    def total_multiplier(self, modifiers: Optional[str], speed_modifiers: bool) -> float:
        """
        Full multiplier for a modifier string, bonuses included.

        Args:
            modifiers: Comma-separated modifier tokens
            speed_modifiers: Whether SF/FS/SS count towards the multiplier

        Returns:
            Combined multiplier
        """
        multiplier = 1.0
        for token in parse_modifiers(modifiers):
            if not speed_modifiers and token in ScoringConstants.SPEED_MODIFIERS:
                continue
            multiplier += self.get(token)
        return multiplier

    def to_dict(self) -> Dict[str, float]:
        return dict(self.values)

    def __repr__(self):
        return f"<ModifiersMap({self.values})>"
