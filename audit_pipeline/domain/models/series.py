"""Chart-ready series aligned positionally to a shared list of date buckets."""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Series:
    key: str
    label: str
    data: Tuple[int, ...]
    color_index: int
    color: str

    @property
    def total(self) -> int:
        return sum(self.data)


@dataclass(frozen=True)
class SeriesSet:
    """Output of one aggregation call. `dates` are YYYY-MM-DD, ascending."""

    dates: Tuple[str, ...] = ()
    series: Tuple[Series, ...] = ()

    @property
    def types(self) -> Tuple[str, ...]:
        return tuple(s.key for s in self.series)

    def by_key(self, key: str) -> Series | None:
        for s in self.series:
            if s.key == key:
                return s
        return None
