from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Literal

Strategy = Literal["css", "text", "xpath"]


@dataclass(frozen=True, slots=True)
class Locator:
    strategy: Strategy
    value: str
    # restricts text locators to one tag, e.g. "button"
    tag: str = ""

    def to_selector(self) -> str:
        if self.strategy == "css":
            return self.value
        if self.strategy == "xpath":
            return f"xpath={self.value}"
        if self.tag:
            return f"{self.tag}:has-text({json.dumps(self.value)})"
        return f"text={json.dumps(self.value)}"

    def __str__(self) -> str:
        return f"{self.strategy}:{self.tag + ' ' if self.tag else ''}{self.value}"


def css(*selectors: str) -> list[Locator]:
    return [Locator("css", selector) for selector in selectors]


def text(*labels: str, tag: str = "") -> list[Locator]:
    return [Locator("text", label, tag) for label in labels]
