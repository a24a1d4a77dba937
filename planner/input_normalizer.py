"""Validation and normalization of action inputs."""
import logging
from datetime import datetime
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


class InputNormalizer:
    """Checks and normalizes user-supplied fields before they are stored."""

    MAX_TITLE_LENGTH = 200
    MAX_DESCRIPTION_LENGTH = 2000

    DATE_FORMATS = [
        '%Y-%m-%d',      # ISO 8601
        '%Y-%m-%dT%H:%M:%S',
        '%Y-%m-%dT%H:%M:%S.%fZ',
        '%Y/%m/%d',
        '%Y.%m.%d',
        '%m/%d/%Y',
    ]

    TIME_FORMATS = [
        '%H:%M',         # 24-hour format
        '%H:%M:%S',      # 24-hour with seconds
        '%I:%M %p',      # 12-hour format with AM/PM
        '%I:%M%p',       # 12-hour format without space
    ]

    def require(self, value: Optional[str], field_name: str) -> str:
        """
        Ensure a text field is present and non-empty.

        Raises:
            ValueError: If the value is missing or blank
        """
        if value is None or not str(value).strip():
            raise ValueError(f"{field_name} is required")
        return str(value).strip()

    def title(self, value: Optional[str], field_name: str = 'title') -> str:
        return self.require(value, field_name)[:self.MAX_TITLE_LENGTH]

    def description(self, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value[:self.MAX_DESCRIPTION_LENGTH]

    def choice(self, value: Optional[str], allowed: Iterable[str], field_name: str) -> str:
        """
        Ensure a value belongs to a closed set.

        Raises:
            ValueError: If the value is not one of the allowed values
        """
        allowed = tuple(allowed)
        if value not in allowed:
            raise ValueError(
                f"Invalid {field_name}: {value!r} (expected one of {', '.join(allowed)})"
            )
        return value

    def positive_int(self, value, field_name: str) -> int:
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise ValueError(f"{field_name} must be an integer") from None
        if number <= 0:
            raise ValueError(f"{field_name} must be greater than 0")
        return number

    def date(self, date_str: Optional[str], field_name: str = 'date') -> str:
        """
        Normalize date to ISO 8601 format (YYYY-MM-DD).

        Raises:
            ValueError: If the date matches none of the known formats
        """
        date_str = self.require(date_str, field_name)

        for fmt in self.DATE_FORMATS:
            try:
                return datetime.strptime(date_str, fmt).strftime('%Y-%m-%d')
            except ValueError:
                continue

        logger.warning(f"Invalid {field_name} format: {date_str}")
        raise ValueError(f"Invalid {field_name} format: {date_str}")

    def time(self, time_str: Optional[str], field_name: str = 'start_time') -> str:
        """
        Normalize time to 24-hour format (HH:MM).

        Raises:
            ValueError: If the time matches none of the known formats
        """
        time_str = self.require(time_str, field_name)

        for fmt in self.TIME_FORMATS:
            try:
                return datetime.strptime(time_str, fmt).strftime('%H:%M')
            except ValueError:
                continue

        logger.warning(f"Invalid {field_name} format: {time_str}")
        raise ValueError(f"Invalid {field_name} format: {time_str}")

    def optional_time(self, time_str: Optional[str]) -> Optional[str]:
        if time_str is None or not str(time_str).strip():
            return None
        return self.time(time_str)
