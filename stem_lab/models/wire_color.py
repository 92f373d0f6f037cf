from enum import Enum


class WireColor(Enum):
    """Color tag shared by wires and the connection points that accept them."""
    RED = "red"
    BLUE = "blue"
    WHITE = "white"
    BLACK = "black"
    YELLOW = "yellow"
    GREEN = "green"

    @classmethod
    def parse(cls, value):
        """Accept a WireColor or its (case-insensitive) name/value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown wire color: '{value}'")
