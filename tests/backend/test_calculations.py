"""Tests for climate calculation services."""

from orchid_climate.services.calculations import (
    calculate_vpd,
    fahrenheit_to_celsius,
    saturation_vapor_pressure,
)


class TestSaturationVaporPressure:
    def test_at_zero_celsius(self):
        """es(0°C) is the Magnus constant."""
        assert abs(saturation_vapor_pressure(0.0) - 0.6108) < 1e-9

    def test_at_22_celsius(self):
        """About 2.64 kPa at room temperature."""
        assert 2.60 <= saturation_vapor_pressure(22.0) <= 2.68

    def test_increases_with_temperature(self):
        assert saturation_vapor_pressure(30.0) > saturation_vapor_pressure(20.0)


class TestVpd:
    def test_reference_room(self):
        """22°C / 55% RH is the ~1.19 kPa reference condition."""
        assert abs(calculate_vpd(22.0, 55.0) - 1.19) < 0.01

    def test_saturated_air_is_zero(self):
        assert calculate_vpd(25.0, 100.0) == 0.0

    def test_dry_air_equals_es(self):
        assert abs(calculate_vpd(25.0, 0.0) - saturation_vapor_pressure(25.0)) < 1e-9

    def test_supersaturated_is_negative(self):
        assert calculate_vpd(20.0, 105.0) < 0.0


class TestFahrenheitToCelsius:
    def test_freezing(self):
        assert fahrenheit_to_celsius(32.0) == 0.0

    def test_boiling(self):
        assert abs(fahrenheit_to_celsius(212.0) - 100.0) < 1e-9

    def test_controller_value(self):
        """72.00°F as reported by the controller is 22.22°C."""
        assert round(fahrenheit_to_celsius(72.0), 2) == 22.22
