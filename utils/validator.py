import logging
import math
from typing import Optional, Union

from errors import ValidationSkipped

logger = logging.getLogger(__name__)


def coerce_price(value: Union[str, int, float, None]) -> Optional[float]:
    """Parse a price filter. Blank means no filter; anything non-numeric raises ValidationSkipped."""
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            raise ValidationSkipped(f"Price filter {value!r} is not a number")
    if math.isnan(number) or math.isinf(number):
        raise ValidationSkipped(f"Price filter {value!r} is not a finite number")
    return number


def optional_price(value: Union[str, int, float, None]) -> Optional[float]:
    try:
        return coerce_price(value)
    except ValidationSkipped as e:
        logger.debug("Dropping price filter", extra={"reason": e.message})
        return None
