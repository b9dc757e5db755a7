# Overview: Dashboard date filter; preset or custom range plus an equal-length comparison period.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from ..time_utils import format_date_range, parse_iso_date, today as business_today
from ..validation import ValidationError, validate_date_range


PRESET_DAYS = {"7D": 7, "30D": 30, "90D": 90, "1Y": 365}
DEFAULT_PRESET = "30D"
MODE_PRESET = "preset"
MODE_CUSTOM = "custom"


def _one_year_back(day: date) -> date:
    try:
        return day.replace(year=day.year - 1)
    except ValueError:
        # Feb 29 -> Feb 28
        return day.replace(year=day.year - 1, day=28)


@dataclass
class DateFilter:
    mode: str = MODE_PRESET
    preset: str = DEFAULT_PRESET
    custom_start: Optional[str] = None
    custom_end: Optional[str] = None
    comparison_enabled: bool = True

    @classmethod
    def from_args(cls, args, *, default_preset: str = DEFAULT_PRESET) -> "DateFilter":
        """Build from query-string style args: preset=7D or start=..&end=.."""
        start = args.get("start")
        end = args.get("end")
        comparison = str(args.get("compare", "true")).lower() not in ("false", "0", "no")
        if start or end:
            if not (start and end):
                raise ValidationError("Both start and end are required", {"start": "Both start and end are required"})
            start, end = validate_date_range(start, end)
            return cls(mode=MODE_CUSTOM, custom_start=start, custom_end=end, comparison_enabled=comparison)

        preset = (args.get("preset") or default_preset).upper()
        if preset not in PRESET_DAYS:
            message = f"preset must be one of: {', '.join(PRESET_DAYS)}"
            raise ValidationError(message, {"preset": message})
        return cls(mode=MODE_PRESET, preset=preset, comparison_enabled=comparison)

    def range(self, today: Optional[date] = None) -> tuple[date, date]:
        """Inclusive (start, end) of the selected period."""
        if self.mode == MODE_CUSTOM and self.custom_start and self.custom_end:
            return parse_iso_date(self.custom_start), parse_iso_date(self.custom_end)

        end = today or business_today()
        if self.preset == "1Y":
            return _one_year_back(end), end
        return end - timedelta(days=PRESET_DAYS[self.preset] - 1), end

    def comparison_range(self, today: Optional[date] = None) -> tuple[date, date]:
        """Same length, ending the day before the period starts."""
        start, end = self.range(today)
        length = (end - start).days
        comparison_end = start - timedelta(days=1)
        return comparison_end - timedelta(days=length), comparison_end

    def label(self, today: Optional[date] = None) -> str:
        start, end = self.range(today)
        return format_date_range(start, end)

    def comparison_label(self, today: Optional[date] = None) -> str:
        if self.mode == MODE_PRESET:
            return f"vs previous {PRESET_DAYS[self.preset]} days"
        start, end = self.comparison_range(today)
        return f"vs {format_date_range(start, end)}"

    def to_dict(self, today: Optional[date] = None) -> dict:
        start, end = self.range(today)
        data = {
            "mode": self.mode,
            "preset": self.preset if self.mode == MODE_PRESET else None,
            "start": start.isoformat(),
            "end": end.isoformat(),
            "label": self.label(today),
            "comparison_enabled": self.comparison_enabled,
        }
        if self.comparison_enabled:
            comparison_start, comparison_end = self.comparison_range(today)
            data["comparison"] = {
                "start": comparison_start.isoformat(),
                "end": comparison_end.isoformat(),
                "label": self.comparison_label(today),
            }
        return data
