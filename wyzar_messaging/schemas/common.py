from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator

from wyzar_messaging.utils.ids import as_utc


# stored datetimes are naive UTC; render them with an explicit offset
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]
