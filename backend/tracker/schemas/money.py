from decimal import Decimal
from typing import Annotated

from pydantic import PlainSerializer

# Amounts stay Decimal in Python and are emitted as JSON numbers.
Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]
