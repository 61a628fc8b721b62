import pytest

from meshoperator.quantity import Format, Quantity, Scale


@pytest.mark.parametrize("text", ["500m", "500Mi", "800m", "800Mi"])
def test_source_values_round_trip(text):
    assert str(Quantity.parse(text)) == text


@pytest.mark.parametrize("text", ["1Ki", "12e6", "100u", "5", "2G"])
def test_canonical_strings_round_trip(text):
    assert str(Quantity.parse(text)) == text


@pytest.mark.parametrize("text", ["1.5", "1536Mi", "3e2", "250m", "7Gi"])
def test_parse_of_str_is_identity(text):
    quantity = Quantity.parse(text)
    assert Quantity.parse(str(quantity)) == quantity


def test_formats_are_detected():
    assert Quantity.parse("500Mi").format is Format.BINARY_SI
    assert Quantity.parse("500m").format is Format.DECIMAL_SI
    assert Quantity.parse("12e6").format is Format.DECIMAL_EXPONENT


def test_equal_amounts_compare_equal():
    assert Quantity.parse("1000m") == Quantity.parse("1")
    assert Quantity.parse("1.5") == Quantity.parse("1500m")


def test_binary_larger_than_decimal():
    assert Quantity.parse("1Gi") > Quantity.parse("1G")
    assert Quantity.parse("1M") < Quantity.parse("1Mi")


def test_addition_and_sum():
    half = Quantity.parse("500m")
    assert half + half == Quantity.parse("1")
    assert sum([half, half, half, half]) == Quantity.parse("2")


def test_addition_of_zero_takes_other_format():
    total = Quantity(0) + Quantity.parse("1Gi")
    assert total.format is Format.BINARY_SI
    assert str(total) == str(Quantity.parse("1Gi"))


def test_subtraction_inverts_addition():
    a = Quantity.parse("3Gi")
    b = Quantity.parse("512Mi")
    assert (a + b) - b == a


def test_scaled_giga():
    assert str(Quantity.scaled(10, Scale.GIGA)) == "10G"
    assert Quantity.scaled(10, Scale.GIGA) == Quantity.parse("10G")


def test_value_rounds_up():
    assert Quantity.parse("500m").value == 1


def test_milli_value():
    assert Quantity.parse("2").milli_value == 2000


def test_sub_nano_amount_rounds_up():
    assert Quantity.parse("0.0000000001") == Quantity.parse("1n")


def test_negative_round_trip():
    quantity = Quantity.parse("-500m")
    assert quantity < Quantity(0)
    assert Quantity.parse(str(quantity)) == quantity


@pytest.mark.parametrize("text", ["", "abc", "5Xi", "1e", "1..2"])
def test_invalid_quantities_raise(text):
    with pytest.raises(ValueError):
        Quantity.parse(text)