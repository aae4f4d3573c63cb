"""Leading status markers carried by every command response."""

from enum import Enum


class StatusMarker(str, Enum):
    SUCCESS = ":white_check_mark:"
    INFO = ":information_source:"
    WARNING = ":warning:"
    ERROR = ":x:"
    DENIED = ":no_entry_sign:"
    PENDING = ":hourglass_flowing_sand:"

    def __str__(self) -> str:
        return self.value


# Markers the channel formatter recognizes at the start of an engine result
RESULT_MARKERS = (
    StatusMarker.SUCCESS,
    StatusMarker.INFO,
    StatusMarker.WARNING,
    StatusMarker.ERROR,
    StatusMarker.DENIED,
)
