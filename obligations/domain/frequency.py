"""
Frequency vocabulary shared by schedule generation and pattern inference.

Each frequency has one immutable spec:
- step_days:   fixed step for day-based frequencies (weekly/fortnightly)
- step_months: month step for calendar frequencies (monthly/quarterly/annually)
- nominal_days: reference interval used when classifying observed gaps
- band:        (min, max) accepted mean gap in days for classification
"""
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType


class InvalidFrequency(ValueError):
    pass


class Frequency(str, Enum):
    WEEKLY = "weekly"
    FORTNIGHTLY = "fortnightly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"

    @classmethod
    def parse(cls, value) -> "Frequency":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidFrequency(f"unsupported frequency: {value!r}") from None

    @property
    def spec(self) -> "FrequencySpec":
        return FREQUENCY_TABLE[self]

    @property
    def uses_weekday(self) -> bool:
        return self.spec.step_days is not None


@dataclass(frozen=True)
class FrequencySpec:
    nominal_days: int
    band_min: int
    band_max: int
    step_days: int | None = None
    step_months: int | None = None

    @property
    def band_half_width(self) -> float:
        return (self.band_max - self.band_min) / 2

    def accepts(self, mean_gap: float) -> bool:
        return self.band_min <= mean_gap <= self.band_max


FREQUENCY_TABLE = MappingProxyType({
    Frequency.WEEKLY: FrequencySpec(nominal_days=7, band_min=5, band_max=9, step_days=7),
    Frequency.FORTNIGHTLY: FrequencySpec(nominal_days=14, band_min=12, band_max=16, step_days=14),
    Frequency.MONTHLY: FrequencySpec(nominal_days=30, band_min=26, band_max=34, step_months=1),
    Frequency.QUARTERLY: FrequencySpec(nominal_days=91, band_min=85, band_max=97, step_months=3),
    Frequency.ANNUALLY: FrequencySpec(nominal_days=365, band_min=358, band_max=372, step_months=12),
})


def classify_interval(mean_gap: float) -> Frequency | None:
    """Return the frequency whose band contains mean_gap (nearest nominal wins)."""
    fitting = [f for f, spec in FREQUENCY_TABLE.items() if spec.accepts(mean_gap)]
    if not fitting:
        return None
    return min(fitting, key=lambda f: abs(FREQUENCY_TABLE[f].nominal_days - mean_gap))
