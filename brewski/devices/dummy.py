from __future__ import annotations

import random
from datetime import datetime, timezone
from typing import Sequence

from brewski.models.measurement import Sample, SampleBuilder

DEFAULT_DUMMY_VALUES: tuple[float, ...] = (0.0, 1.1, 2.2, 3.3, 4.4, 5.5)


class DummyDevice:
    """Picks one of a fixed set of values at random on every read."""

    def __init__(
        self,
        name: str,
        possible_values: Sequence[float] = (),
        *,
        rng: random.Random | None = None,
    ) -> None:
        self._name = name
        self.possible_values = tuple(float(v) for v in possible_values) or DEFAULT_DUMMY_VALUES
        self._rng = rng or random.Random()

    @property
    def name(self) -> str:
        return self._name

    def read(self) -> list[Sample]:
        value = self._rng.choice(self.possible_values)
        now = datetime.now(tz=timezone.utc)
        return [SampleBuilder(self._name).add_datapoint("random", value, now).build()]
