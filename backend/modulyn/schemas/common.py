from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator


def to_naive_utc(value: datetime) -> datetime:
    # Columns store naive UTC; offsets are converted, not dropped.
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


UtcDatetime = Annotated[datetime, AfterValidator(to_naive_utc)]
