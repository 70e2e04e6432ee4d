from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T", int, float)


@dataclass(frozen=True)
class Delta(Generic[T]):
    before: T
    after: T

    @property
    def delta(self) -> T:
        return self.after - self.before

    @property
    def changed(self) -> bool:
        return self.after != self.before
