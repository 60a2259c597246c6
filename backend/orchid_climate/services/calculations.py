"""Climate calculation services.

Saturation vapor pressure, vapor pressure deficit and unit conversions.

All temperatures in degrees Celsius unless noted.
"""

import math

# Magnus coefficients (Tetens form used by most horticultural references)
MAGNUS_A = 0.6108  # kPa
MAGNUS_B = 17.27
MAGNUS_C = 237.3  # °C


def saturation_vapor_pressure(temp_c: float) -> float:
    """Saturation vapor pressure over water in kPa.

    Args:
        temp_c: Air temperature in °C.

    Returns:
        es in kPa.
    """
    return MAGNUS_A * math.exp((MAGNUS_B * temp_c) / (temp_c + MAGNUS_C))


def calculate_vpd(temp_c: float, humidity_pct: float) -> float:
    """Vapor pressure deficit in kPa from air temperature and relative humidity.

    VPD = es * (1 - RH/100). Humidity above 100% yields a negative value,
    which the watering model treats as saturated air.
    """
    es = saturation_vapor_pressure(temp_c)
    return es * (1.0 - humidity_pct / 100.0)


def fahrenheit_to_celsius(temp_f: float) -> float:
    return (temp_f - 32.0) * 5.0 / 9.0
