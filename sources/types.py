from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from models import Observation


@dataclass(frozen=True)
class FetchResult:
    day: date
    observation: Optional[Observation]
    remote: bool

    @property
    def unknown(self) -> bool:
        return self.observation is None
