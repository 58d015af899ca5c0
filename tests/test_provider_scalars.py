"""FuzzedDataProvider scalar reads (taken from the end of the input).

Expected values are the reference results of the libFuzzer
FuzzedDataProvider test suite for PROVIDER_DATA.
"""

import math
import struct

import pytest

from fuzzengine import FuzzedDataProvider, InvalidArgumentError
from fuzzengine.constants import MIN_FLOAT
from tests.helpers.provider_data import PROVIDER_DATA


@pytest.fixture
def data() -> FuzzedDataProvider:
    return FuzzedDataProvider(PROVIDER_DATA)


class TestRemainingBytes:
    """remaining_bytes accounting."""

    def test_fresh_provider_reports_full_length(self, data: FuzzedDataProvider) -> None:
        assert data.remaining_bytes == 1024

    def test_booleans_consume_one_byte_each(self, data: FuzzedDataProvider) -> None:
        data.consume_boolean()
        assert data.remaining_bytes == 1023
        data.consume_boolean()
        data.consume_boolean()
        assert data.remaining_bytes == 1021
        data.consume_boolean()
        assert data.remaining_bytes == 1020
        data.consume_integral(1)
        assert data.remaining_bytes == 1019

    def test_empty_input(self) -> None:
        data = FuzzedDataProvider(b"")
        assert data.remaining_bytes == 0
        assert data.consume_boolean() is False
        assert data.consume_integral(4) == 0


class TestConsumeIntegralInRange:
    """Range-mapped integers on the 48-bit machine path."""

    def test_reads_last_byte_first(self, data: FuzzedDataProvider) -> None:
        assert data.consume_integral_in_range(0, 255) == 0x4A
        assert data.remaining_bytes == 1023

    def test_invalid_ranges(self, data: FuzzedDataProvider) -> None:
        data.consume_integral_in_range(0, 255)
        with pytest.raises(InvalidArgumentError):
            data.consume_integral_in_range(0, 2**48)
        with pytest.raises(InvalidArgumentError):
            data.consume_integral_in_range(2**53 - 2, 2**53)
        with pytest.raises(InvalidArgumentError, match="min must be less than or equal to max"):
            data.consume_integral_in_range(1, 0)
        assert data.remaining_bytes == 1023

    def test_short_tail_uses_available_bytes(self, data: FuzzedDataProvider) -> None:
        data.consume_integral_in_range(0, 255)
        for _ in range(1020):
            data.consume_integral_in_range(0, 1)
        assert data.remaining_bytes == 3
        assert data.consume_integral_in_range(0, 2**32) == 0x0D198A
        assert data.remaining_bytes == 0

    def test_byte_ranges(self, data: FuzzedDataProvider) -> None:
        assert data.consume_integral_in_range(0, 255) == 0x4A
        assert data.consume_integral_in_range(0, 255) == 0x29
        assert data.consume_integral_in_range(0, 255) == 0x3D
        assert data.consume_integral_in_range(0, 10) == 0xCF % 11
        assert data.consume_integral_in_range(0, 20) == 0x16 % 21
        assert data.consume_integral_in_range(0, 0) == 0
        assert data.remaining_bytes == 1019
        assert data.consume_integral_in_range(0, 1) == 1
        assert data.consume_integral_in_range(13, 30) == (0x73 % 18) + 13
        assert data.remaining_bytes == 1017

    def test_libfuzzer_sequence(self, data: FuzzedDataProvider) -> None:
        assert data.consume_integral_in_range(10, 30) == 21
        assert data.consume_integral_in_range(1337, 1337) == 1337
        assert data.consume_integral_in_range(-100, 100) == -59
        assert data.consume_integral_in_range(0, 65535) == 15823
        assert data.consume_integral_in_range(-123, 123) == -101
        assert (
            data.consume_big_integral_in_range(-99999999999, 99999999999) == -53253077544
        )
        assert len(data.consume_string(31337)) == 1014
        assert data.consume_integral_in_range(123456789, 987654321) == 123456789

    def test_equal_bounds_consume_nothing(self, data: FuzzedDataProvider) -> None:
        assert data.consume_integral_in_range(7, 7) == 7
        assert data.remaining_bytes == 1024

    def test_non_integer_bounds_rejected(self, data: FuzzedDataProvider) -> None:
        with pytest.raises(InvalidArgumentError, match="range bounds must be integers"):
            data.consume_integral_in_range(0.5, 10)  # type: ignore[arg-type]

    def test_equal_non_integer_bounds_rejected(self, data: FuzzedDataProvider) -> None:
        with pytest.raises(InvalidArgumentError, match="range bounds must be integers"):
            data.consume_integral_in_range(1.5, 1.5)  # type: ignore[arg-type]
        assert data.consume_integral_in_range(7, 7) == 7
        assert data.remaining_bytes == 1024


class TestConsumeBigIntegralInRange:
    """Arbitrary-precision range draws."""

    def test_matches_machine_path_for_small_ranges(self, data: FuzzedDataProvider) -> None:
        assert data.consume_big_integral_in_range(0, 255) == 0x4A
        assert data.remaining_bytes == 1023

    def test_invalid_range(self, data: FuzzedDataProvider) -> None:
        with pytest.raises(InvalidArgumentError):
            data.consume_big_integral_in_range(1, 0)

    def test_equal_non_integer_bounds_rejected(self, data: FuzzedDataProvider) -> None:
        with pytest.raises(InvalidArgumentError, match="range bounds must be integers"):
            data.consume_big_integral_in_range(2.0, 2.0)  # type: ignore[arg-type]
        assert data.remaining_bytes == 1024

    def test_short_tail_then_exhausted(self, data: FuzzedDataProvider) -> None:
        data.consume_big_integral_in_range(0, 255)
        for _ in range(1020):
            data.consume_big_integral_in_range(0, 1)
        assert data.remaining_bytes == 3
        assert data.consume_big_integral_in_range(0, 0xFFFFFFFFFFFFFFFFFFFF) == 0x0D198A
        assert data.remaining_bytes == 0
        assert data.consume_big_integral_in_range(0, 0xFFFFFFFFFFFFFFFFFFFF) == 0


class TestConsumeIntegral:
    """Fixed-width integers."""

    def test_sequential_bytes(self, data: FuzzedDataProvider) -> None:
        expected = [0x4A, 0x29, 0x3D, 0xCF, 0x16, 0x39, 0x73, 0x43, 0x3D, 0xD6, 0x54, 0xFD, 0x4D]
        for index, value in enumerate(expected, start=1):
            assert data.consume_integral(1) == value
            assert data.remaining_bytes == 1024 - index

    def test_increasing_widths(self, data: FuzzedDataProvider) -> None:
        assert data.consume_integral(1) == 0x4A
        assert data.consume_integral(2) == 0x293D
        assert data.consume_integral(3) == 0xCF1639
        assert data.consume_integral(4) == 0x73433DD6
        assert data.consume_integral(5) == 0x54FD4D113A
        assert data.consume_integral(6) == 0x1FF651F930EB
        assert data.remaining_bytes == 1003
        assert data.consume_big_integral(7) == 0x32CB61AB886F30
        assert data.consume_big_integral(8) == 0xB12DD933A2FB6239
        assert data.consume_big_integral(9) == 0x85834FEAFDC0FD4F03
        assert data.remaining_bytes == 979

    def test_width_limits(self, data: FuzzedDataProvider) -> None:
        with pytest.raises(InvalidArgumentError):
            data.consume_integral(7)
        with pytest.raises(InvalidArgumentError):
            data.consume_integral(1023021031337)
        with pytest.raises(InvalidArgumentError, match="length value must be an integer"):
            data.consume_integral(1.5)  # type: ignore[arg-type]
        assert data.remaining_bytes == 1024
        assert data.consume_integral(6) == 0x4A293DCF1639
        assert data.remaining_bytes == 1018

    def test_six_bytes_from_five_remaining(self, data: FuzzedDataProvider) -> None:
        data.consume_integral(6)
        for _ in range(1013):
            data.consume_integral(1)
        assert data.consume_integral(6) == 0x37440D198A
        assert data.remaining_bytes == 0

    def test_signed_widths(self, data: FuzzedDataProvider) -> None:
        assert data.consume_integral(6, True) == 0x4A293DCF1639 - 2**47
        assert data.consume_integral(5, True) == 0x73433DD654 - 2**39
        assert data.consume_integral(4, True) == 0xFD4D113A - 2**31
        assert data.consume_integral(3, True) == 0x1FF651 - 2**23
        assert data.consume_integral(2, True) == 0xF930 - 2**15
        assert data.consume_integral(1, True) == 0xEB - 2**7

    def test_libfuzzer_sequence(self, data: FuzzedDataProvider) -> None:
        assert data.consume_integral(4, True) == -903266865
        assert data.remaining_bytes == 1020
        assert data.consume_integral(4) == 372863811
        assert data.consume_integral(1) == 61
        assert data.consume_integral(2, True) == 22100
        assert data.remaining_bytes == 1013
        assert data.consume_big_integral(8) == 0xFD4D113A1FF651F9
        assert data.remaining_bytes == 1005
        assert len(data.consume_string(31337)) == 1005
        assert data.consume_big_integral(8) == 0
        assert data.consume_big_integral(8, True) == -(1 << 63)
        assert data.remaining_bytes == 0

    def test_zero_width_is_zero(self, data: FuzzedDataProvider) -> None:
        assert data.consume_integral(0) == 0
        assert data.consume_integral(0, True) == 0
        assert data.remaining_bytes == 1024


class TestConsumeBigIntegral:
    """Arbitrary-width integers."""

    def test_small_widths(self, data: FuzzedDataProvider) -> None:
        with pytest.raises(InvalidArgumentError, match="length value must be an integer"):
            data.consume_big_integral(1.5)  # type: ignore[arg-type]
        assert data.consume_big_integral(1) == 0x4A
        assert data.consume_big_integral(2) == 0x293D
        assert data.consume_big_integral(3) == 0xCF1639

    def test_whole_input_is_one_little_endian_integer(self, data: FuzzedDataProvider) -> None:
        assert data.consume_big_integral(data.remaining_bytes) == int.from_bytes(
            PROVIDER_DATA, "little"
        )
        assert data.consume_big_integral(1, True) == -128


class TestConsumeBoolean:
    """Booleans from the least significant bit of one tail byte."""

    def test_libfuzzer_sequence(self, data: FuzzedDataProvider) -> None:
        expected = [False, True, True, True, False, True, True, True, True, False]
        assert [data.consume_boolean() for _ in expected] == expected
        assert len(data.consume_string(31337)) == 1014
        assert data.consume_boolean() is False

    def test_last_ten_bytes(self, data: FuzzedDataProvider) -> None:
        for _ in range(1014):
            data.consume_boolean()
        assert data.remaining_bytes == 10
        expected = [False, True, False, False, True, True, False, True, True, False]
        assert [data.consume_boolean() for _ in expected] == expected
        assert data.remaining_bytes == 0
        assert data.consume_boolean() is False

    def test_front_and_tail_meet(self, data: FuzzedDataProvider) -> None:
        for _ in range(1014):
            data.consume_boolean()
        data.consume_bytes(6)
        assert data.remaining_bytes == 4
        assert [data.consume_boolean() for _ in range(4)] == [False, True, False, False]
        assert data.remaining_bytes == 0


class TestConsumeProbability:
    """Probabilities in [0, 1] from 4 or 8 tail bytes."""

    def test_libfuzzer_sequence(self, data: FuzzedDataProvider) -> None:
        assert data.consume_probability_float() == 0.28969179449828614
        assert data.remaining_bytes == 1020
        assert data.consume_probability_double() == 0.086814121166605432
        assert data.remaining_bytes == 1012
        assert data.consume_probability_float() == 0.30104411377130175
        assert data.consume_probability_double() == 0.96218831486039413
        assert data.consume_probability_float() == 0.6700505727599493
        assert data.consume_probability_double() == 0.69210584173832279
        assert data.remaining_bytes == 988
        assert len(data.consume_string(31337)) == 1024 - 36
        assert data.consume_probability_float() == 0.0
        assert data.consume_probability_double() == 0.0


class TestConsumeFloat:
    """Float and double range draws."""

    def test_libfuzzer_sequence(self, data: FuzzedDataProvider) -> None:
        assert data.consume_float() == -2.8546307457582937e38
        assert data.remaining_bytes == 1019
        assert data.consume_double() == 8.0940194040236032e307
        assert data.remaining_bytes == 1010
        assert data.consume_float_in_range(123.0, 777.0) == 271.4908334916669
        assert data.remaining_bytes == 1006
        assert data.consume_double_in_range(13.37, 31.337) == 30.859126145478349
        assert data.remaining_bytes == 998
        assert data.consume_float_in_range(-999.9999, -777.77) == -903.4772913756137
        assert data.remaining_bytes == 994
        assert data.consume_number_in_range(-13.37, 31.337) == 24.561393182922771
        assert data.remaining_bytes == 986
        assert data.consume_float_in_range(1.0, 1.0) == 1.0
        assert data.consume_double_in_range(1.0, 1.0) == 1.0
        assert data.remaining_bytes == 986

    def test_exhausted_returns_range_minimum(self, data: FuzzedDataProvider) -> None:
        data.consume_remaining_as_bytes()
        assert data.consume_float() == MIN_FLOAT
        assert data.consume_float() == FuzzedDataProvider.MIN_FLOAT
        assert data.consume_float_in_range(123.0, 777.0) == 123.0
        assert data.consume_double_in_range(-13.37, 31.337) == -13.37

    def test_consume_double(self, data: FuzzedDataProvider) -> None:
        assert data.consume_double() == -1.5080858863606644e308
        assert data.remaining_bytes == 1015
        assert data.consume_double() == -1.2008768702117984e308
        assert data.remaining_bytes == 1006
        assert data.consume_double() == 3.4351910123752656e307
        assert data.remaining_bytes == 997

    def test_invalid_range(self, data: FuzzedDataProvider) -> None:
        with pytest.raises(InvalidArgumentError):
            data.consume_number_in_range(1, 0)
        with pytest.raises(InvalidArgumentError):
            data.consume_float_in_range(1.0, 0.0)


class TestConsumeNumber:
    """Raw IEEE-754 doubles from the tail."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (bytes([0, 0, 0, 0, 0, 0, 0xF0, 0x3F]), 1.0),
            (bytes([1, 0, 0, 0, 0, 0, 0xF0, 0x3F]), 1.0000000000000002),
            (bytes([2, 0, 0, 0, 0, 0, 0xF0, 0x3F]), 1.0000000000000004),
            (bytes([0, 0, 0, 0, 0, 0, 0x00, 0x40]), 2.0),
            (bytes([0, 0, 0, 0, 0, 0, 0x00, 0xC0]), -2.0),
            (bytes([0, 0, 0, 0, 0, 0, 0x08, 0x40]), 3.0),
            (bytes([0, 0, 0, 0, 0, 0, 0xF0, 0x7F]), math.inf),
            (bytes([0, 0, 0, 0, 0, 0, 0xF0, 0xFF]), -math.inf),
            (bytes([1, 0, 0, 0, 0, 0, 0, 0]), 5e-324),
            (bytes([0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xEF, 0x7F]), 1.7976931348623157e308),
        ],
    )
    def test_known_encodings(self, raw: bytes, expected: float) -> None:
        data = FuzzedDataProvider(raw)
        assert data.consume_number() == expected
        assert data.remaining_bytes == 0

    @pytest.mark.parametrize(
        "raw",
        [
            bytes([1, 0, 0, 0, 0, 0, 0xF0, 0x7F]),
            bytes([1, 0, 0, 0, 0, 0, 0xF8, 0x7F]),
            bytes([0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0x7F]),
        ],
    )
    def test_nan_encodings(self, raw: bytes) -> None:
        assert math.isnan(FuzzedDataProvider(raw).consume_number())

    @pytest.mark.parametrize("padding", range(7))
    def test_short_input_fills_high_end(self, padding: int) -> None:
        data = FuzzedDataProvider(bytes(padding) + b"\x37\x40")
        assert data.consume_number() == 23.0
        assert data.remaining_bytes == 0

    def test_nine_bytes_leave_one(self) -> None:
        data = FuzzedDataProvider(bytes(7) + b"\x37\x40")
        assert data.consume_number() == 23.0
        assert data.remaining_bytes == 1

    def test_single_sign_byte(self) -> None:
        assert FuzzedDataProvider(b"\xc0").consume_number() == -2.0
        assert FuzzedDataProvider(b"\x00").consume_number() == 0.0
        assert FuzzedDataProvider(b"").consume_number() == 0.0

    def test_front_reads_do_not_move_tail(self, data: FuzzedDataProvider) -> None:
        assert data.consume_number() == struct.unpack_from("<d", PROVIDER_DATA, 1016)[0]
        assert data.remaining_bytes == 1016
        data.consume_bytes(8)
        assert data.remaining_bytes == 1008
        assert data.consume_number() == struct.unpack_from("<d", PROVIDER_DATA, 1008)[0]
        assert data.consume_number() == struct.unpack_from("<d", PROVIDER_DATA, 1000)[0]
        assert data.remaining_bytes == 992


class TestPickValue:
    """Single element picks."""

    def test_libfuzzer_sequence(self, data: FuzzedDataProvider) -> None:
        values = [1, 2, 3, 4, 5]
        assert [data.pick_value(values) for _ in range(9)] == [5, 2, 2, 3, 3, 3, 1, 3, 2]
        assert data.remaining_bytes == 1015

        data_list = list(PROVIDER_DATA)
        assert data.pick_value(data_list) == 0x9D
        assert data.remaining_bytes == 1013
        assert data.pick_value(data_list) == 0xBA
        assert data.pick_value(data_list) == 0x69
        assert data.pick_value(data_list) == 0xD6
        assert data.remaining_bytes == 1007

        pairs = [data.pick_value([1337, 777]) for _ in range(7)]
        assert pairs == [777, 777, 1337, 777, 1337, 777, 777]
        assert data.remaining_bytes == 1000

        assert len(data.consume_string(31337)) == 1000
        assert data.pick_value(data_list) == 0x8A

    def test_booleans(self, data: FuzzedDataProvider) -> None:
        values = [True, False, False, True, True]
        picks = [data.pick_value(values) for _ in range(9)]
        assert picks == [True, False, False, False, False, False, True, False, False]

    def test_empty_sequence_rejected(self, data: FuzzedDataProvider) -> None:
        with pytest.raises(InvalidArgumentError, match="provided array is empty"):
            data.pick_value([])


class TestPickValues:
    """Picks without replacement."""

    def test_single_picks(self, data: FuzzedDataProvider) -> None:
        values = [5, 2, 3, 4, 1]
        assert [data.pick_values(values, 1) for _ in range(5)] == [[1], [2], [2], [3], [3]]
        assert data.remaining_bytes == 1019

    def test_full_picks_are_permutations(self, data: FuzzedDataProvider) -> None:
        values = [5, 2, 3, 4, 1]
        for _ in range(5):
            data.pick_values(values, 1)
        before = data.remaining_bytes
        assert sorted(data.pick_values(values, 5)) == [1, 2, 3, 4, 5]
        # The last element needs no input.
        assert data.remaining_bytes == before - 4

    def test_exhausted_keeps_positional_order(self, data: FuzzedDataProvider) -> None:
        values = [5, 2, 3, 4, 1]
        data.consume_remaining_as_bytes()
        for _ in range(4):
            assert data.pick_values(values, 5) == [5, 2, 3, 4, 1]
        assert values == [5, 2, 3, 4, 1]

    def test_partial_picks(self, data: FuzzedDataProvider) -> None:
        values = [5, 2, 3, 4, 1]
        assert data.pick_values(values, 4) == [1, 2, 3, 4]
        assert data.remaining_bytes == 1020
        assert data.pick_values(values, 4) == [3, 2, 4, 1]
        assert data.remaining_bytes == 1016
        assert sorted(data.pick_values(values, 5)) == [1, 2, 3, 4, 5]
        assert data.remaining_bytes == 1012
        assert data.pick_values(values, 3) == [3, 2, 4]
        assert data.remaining_bytes == 1009

    @pytest.mark.parametrize(
        ("values", "count", "message"),
        [
            ([], 1, "array must not be empty"),
            ([1, 2], -1, "numOfElements must not be negative"),
            ([1, 2], 3, "numOfElements must not be greater than the array length"),
        ],
    )
    def test_invalid_arguments(
        self, data: FuzzedDataProvider, values: list[int], count: int, message: str
    ) -> None:
        with pytest.raises(InvalidArgumentError, match=message):
            data.pick_values(values, count)
