from dataclasses import dataclass, field
from typing import Dict, List


@dataclass(frozen=True)
class SearchResult:
    url: str
    alt: str

    @property
    def is_inline(self) -> bool:
        return self.url.startswith("data:")

    def to_dict(self) -> Dict[str, str]:
        return {"url": self.url, "alt": self.alt}


@dataclass(frozen=True)
class PlaceholderMatch:
    full_match: str
    file_name_token: str
    start: int
    end: int


@dataclass
class ReplacementOutcome:
    processed_text: str
    emoticons: List[SearchResult] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "text": self.processed_text,
            "emoticons": [e.to_dict() for e in self.emoticons],
        }
