"""Structured value decoder for raw fuzzer input.

FuzzedDataProvider turns one opaque byte string into booleans, integers,
floats, strings and collection picks with an exact, reproducible algorithm.

Architecture:
    The input is split between two movable boundaries:
    - Front offset: bulk data (arrays, byte blocks, strings) is read
      sequentially from the front in big-endian order.
    - Remaining count: scalars (booleans, integers, floats, probabilities,
      picks) are read from the back in little-endian order, shrinking the
      remaining count inward.

    Fuzzers mutate the start of an input far more aggressively than its end,
    so control values drawn from the tail stay stable while bulk data is
    mutated.

Exhaustion:
    Running out of input is never an error. Scalar reads fall back to a fixed
    value (0, False, or the range minimum) and front reads are truncated to
    the bytes that remain. Only malformed parameters raise
    InvalidArgumentError.

Thread Safety:
    Not thread-safe. Create one provider per fuzz input; never share one
    across iterations or threads.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

import codecs
import math
import struct
from typing import TYPE_CHECKING

from fuzzengine.constants import (
    MAX_DOUBLE,
    MAX_FLOAT,
    MAX_INTEGRAL_BYTES,
    MAX_SAFE_INTEGER,
    MIN_DOUBLE,
    MIN_FLOAT,
    PRINTABLE_COUNT,
    PRINTABLE_FIRST,
    UINT32_MAX,
    UINT64_MAX,
)
from fuzzengine.errors import InvalidArgumentError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

__all__ = ["FuzzedDataProvider"]

_DOUBLE_SIZE = 8
_ASCII_NAMES = frozenset({"ascii", "us-ascii", "646"})


def _require_length(value: object, name: str = "length") -> int:
    """Validate a length-like parameter and return it as int."""
    if not isinstance(value, int):
        msg = "length value must be an integer"
        raise InvalidArgumentError(msg)
    if value < 0:
        msg = f"{name} must be non-negative"
        raise InvalidArgumentError(msg)
    return value


def _require_bounds(min_value: object, max_value: object) -> None:
    if not isinstance(min_value, int) or not isinstance(max_value, int):
        msg = "range bounds must be integers"
        raise InvalidArgumentError(msg)
    if min_value > max_value:
        msg = "min must be less than or equal to max"
        raise InvalidArgumentError(msg)


def _require_float_bounds(min_value: float, max_value: float) -> None:
    if min_value > max_value:
        msg = "min must be less than or equal to max"
        raise InvalidArgumentError(msg)


class FuzzedDataProvider:
    """Reads typed values from a fuzzer-supplied byte string.

    Arrays are read from the beginning of the data, individual values from
    the end. All reads are deterministic: the same bytes and the same call
    sequence always yield the same values.

    Memory Optimization:
        Uses __slots__ for memory efficiency (one instance per input).

    Example:
        >>> provider = FuzzedDataProvider(b"\\x01\\x02\\x03hello")
        >>> provider.consume_string(3)
        '\\x01\\x02\\x03'
        >>> provider.consume_integral_in_range(0, 255)
        111
        >>> provider.remaining_bytes
        4
    """

    __slots__ = ("_data", "_data_ptr", "_remaining")

    MIN_FLOAT = MIN_FLOAT
    MAX_FLOAT = MAX_FLOAT
    MIN_DOUBLE = MIN_DOUBLE
    MAX_DOUBLE = MAX_DOUBLE

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        """Initialize provider over an immutable copy of ``data``.

        Args:
            data: Raw fuzzer input for one iteration
        """
        self._data = bytes(data)
        self._data_ptr = 0
        self._remaining = len(self._data)

    @property
    def remaining_bytes(self) -> int:
        """Number of input bytes not yet consumed from either end."""
        return self._remaining

    # ------------------------------------------------------------------
    # Scalars: read from the back of the input, little-endian
    # ------------------------------------------------------------------

    def consume_boolean(self) -> bool:
        """Consume one byte and return its least significant bit."""
        return (self.consume_integral(1) & 1) == 1

    def consume_integral(self, n_bytes: int, is_signed: bool = False) -> int:
        """Consume an integer of at most ``n_bytes`` bytes.

        Args:
            n_bytes: Width in bytes, 0 to 6. Use consume_big_integral for
                wider values.
            is_signed: Map onto the two's-complement range of that width

        Raises:
            InvalidArgumentError: If n_bytes is not an integer in [0, 6].
        """
        return self._consume_integral_le_or_be(n_bytes, is_signed, little_endian=True)

    def consume_integral_in_range(self, min_value: int, max_value: int) -> int:
        """Consume an integer in ``[min_value, max_value]``.

        The number of bytes consumed is ``ceil(bit_length(max - min) / 8)``,
        fewer if the input runs short. Returns ``min_value`` without
        consuming anything when the bounds are equal or the input is
        exhausted.

        Raises:
            InvalidArgumentError: If min_value > max_value, max_value exceeds
                2**53 - 1, or the draw would need more than 6 bytes.
        """
        return self._consume_integral_in_range_le_or_be(
            min_value, max_value, little_endian=True
        )

    def consume_big_integral(self, n_bytes: int, is_signed: bool = False) -> int:
        """Consume an integer of at most ``n_bytes`` bytes, any width.

        Raises:
            InvalidArgumentError: If n_bytes is not a non-negative integer.
        """
        return self._consume_big_integral_le_or_be(n_bytes, is_signed, little_endian=True)

    def consume_big_integral_in_range(self, min_value: int, max_value: int) -> int:
        """Consume an integer in ``[min_value, max_value]`` with no width cap.

        Bytes are accumulated one at a time until the range is covered or the
        input runs out.

        Raises:
            InvalidArgumentError: If min_value > max_value.
        """
        return self._consume_big_integral_in_range_le_or_be(
            min_value, max_value, little_endian=True
        )

    def consume_number(self) -> float:
        """Consume a raw IEEE-754 double (may be NaN or infinite).

        With fewer than 8 bytes left, the remaining bytes form the high end
        of a zero-filled double. Returns 0.0 on empty input.
        """
        if self._remaining == 0:
            return 0.0
        if self._remaining < _DOUBLE_SIZE:
            start = self._data_ptr
            chunk = bytes(_DOUBLE_SIZE - self._remaining) + self._data[
                start : start + self._remaining
            ]
            self._remaining = 0
            return struct.unpack("<d", chunk)[0]
        self._remaining -= _DOUBLE_SIZE
        start = self._data_ptr + self._remaining
        return struct.unpack("<d", self._data[start : start + _DOUBLE_SIZE])[0]

    def consume_float(self) -> float:
        """Consume a finite value in the float32 range."""
        return self.consume_float_in_range(MIN_FLOAT, MAX_FLOAT)

    def consume_float_in_range(self, min_value: float, max_value: float) -> float:
        """Consume a value in ``[min_value, max_value]`` from 4 bytes of probability.

        Raises:
            InvalidArgumentError: If min_value > max_value.
        """
        return self._consume_float_in_range(
            min_value, max_value, MAX_FLOAT, self.consume_probability_float
        )

    def consume_double(self) -> float:
        """Consume a finite value in the float64 range."""
        return self.consume_double_in_range(MIN_DOUBLE, MAX_DOUBLE)

    def consume_double_in_range(self, min_value: float, max_value: float) -> float:
        """Consume a value in ``[min_value, max_value]`` using at most 9 bytes.

        Raises:
            InvalidArgumentError: If min_value > max_value.
        """
        return self._consume_float_in_range(
            min_value, max_value, MAX_DOUBLE, self.consume_probability_double
        )

    consume_number_in_range = consume_double_in_range

    def consume_probability_float(self) -> float:
        """Consume 4 bytes as a probability in ``[0.0, 1.0]``."""
        return self.consume_integral(4) / UINT32_MAX

    def consume_probability_double(self) -> float:
        """Consume 8 bytes as a probability in ``[0.0, 1.0]``."""
        return float(self.consume_big_integral(8)) / float(UINT64_MAX)

    def pick_value[T](self, values: Sequence[T]) -> T:
        """Pick one element of ``values``.

        The distribution is not perfectly uniform.

        Raises:
            InvalidArgumentError: If values is empty.
        """
        if len(values) == 0:
            msg = "provided array is empty"
            raise InvalidArgumentError(msg)
        return values[self.consume_integral_in_range(0, len(values) - 1)]

    def pick_values[T](self, values: Sequence[T], num_of_elements: int) -> list[T]:
        """Pick ``num_of_elements`` distinct positions of ``values``.

        Each draw indexes into a shrinking working copy and removes the
        chosen element. Once the input is exhausted every draw returns index
        0, so the remaining elements come back in their original order.

        Raises:
            InvalidArgumentError: If values is empty, or num_of_elements is
                negative or larger than len(values).
        """
        if len(values) == 0:
            msg = "array must not be empty"
            raise InvalidArgumentError(msg)
        if not isinstance(num_of_elements, int):
            msg = "length value must be an integer"
            raise InvalidArgumentError(msg)
        if num_of_elements < 0:
            msg = "numOfElements must not be negative"
            raise InvalidArgumentError(msg)
        if num_of_elements > len(values):
            msg = "numOfElements must not be greater than the array length"
            raise InvalidArgumentError(msg)
        pool = list(values)
        result: list[T] = []
        for _ in range(num_of_elements):
            index = self.consume_integral_in_range(0, len(pool) - 1)
            result.append(pool.pop(index))
        return result

    # ------------------------------------------------------------------
    # Bulk data: read from the front of the input, big-endian
    # ------------------------------------------------------------------

    def consume_booleans(self, max_length: int) -> list[bool]:
        """Consume up to ``max_length`` bytes as booleans (LSB of each byte)."""
        count = min(self._remaining, _require_length(max_length))
        chunk = self._take_front(count)
        return [(byte & 1) == 1 for byte in chunk]

    def consume_integrals(
        self, max_length: int, n_bytes_per_integral: int, is_signed: bool = False
    ) -> list[int]:
        """Consume up to ``max_length`` integers of ``n_bytes_per_integral`` bytes.

        The last integer may be built from fewer bytes if the input runs
        short.

        Raises:
            InvalidArgumentError: If either length is not an integer, or the
                width is not in [1, 6].
        """
        count = self._front_item_count(max_length, n_bytes_per_integral)
        return [
            self._consume_integral_le_or_be(
                n_bytes_per_integral, is_signed, little_endian=False
            )
            for _ in range(count)
        ]

    def consume_big_integrals(
        self, max_length: int, n_bytes_per_integral: int, is_signed: bool = False
    ) -> list[int]:
        """Consume up to ``max_length`` integers of any width from the front."""
        count = self._front_item_count(max_length, n_bytes_per_integral)
        return [
            self._consume_big_integral_le_or_be(
                n_bytes_per_integral, is_signed, little_endian=False
            )
            for _ in range(count)
        ]

    def consume_numbers(self, max_length: int) -> list[float]:
        """Consume up to ``max_length`` raw big-endian doubles from the front."""
        count = self._front_item_count(max_length, _DOUBLE_SIZE)
        return [self._consume_number_be() for _ in range(count)]

    def consume_bytes(self, max_length: int) -> bytes:
        """Consume up to ``max_length`` bytes from the front."""
        return self._take_front(min(self._remaining, _require_length(max_length)))

    def consume_remaining_as_bytes(self) -> bytes:
        """Consume every remaining byte.

        Further reads return fixed fallback values only.
        """
        return self.consume_bytes(self._remaining)

    def consume_string(
        self, max_length: int, encoding: str = "ascii", printable: bool = False
    ) -> str:
        """Decode up to ``max_length`` front bytes as text.

        Args:
            max_length: Maximum number of bytes to consume
            encoding: Codec name. "ascii" clears the high bit of every byte;
                other codecs substitute U+FFFD for undecodable sequences.
            printable: Map every byte into the printable ASCII window
                (space to tilde), ignoring ``encoding``

        Raises:
            InvalidArgumentError: If max_length is not a non-negative integer
                or the encoding is unknown.
        """
        length = _require_length(max_length, "maxLength")
        codec = self._lookup_codec(encoding)
        raw = self._take_front(min(length, self._remaining))
        return self._decode(raw, codec, printable)

    def consume_remaining_as_string(
        self, encoding: str = "ascii", printable: bool = False
    ) -> str:
        """Decode every remaining byte as text."""
        return self.consume_string(self._remaining, encoding, printable)

    def consume_string_array(
        self,
        max_array_length: int,
        max_string_length: int,
        encoding: str = "ascii",
        printable: bool = False,
    ) -> list[str]:
        """Consume ``max_array_length`` strings of up to ``max_string_length`` bytes.

        Strings drawn after the input is exhausted are empty.
        """
        count = _require_length(max_array_length)
        _require_length(max_string_length)
        return [
            self.consume_string(max_string_length, encoding, printable)
            for _ in range(count)
        ]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _take_front(self, count: int) -> bytes:
        start = self._data_ptr
        self._data_ptr += count
        self._remaining -= count
        return self._data[start : start + count]

    def _front_item_count(self, max_length: int, item_size: int) -> int:
        _require_length(max_length)
        _require_length(item_size)
        if item_size == 0:
            msg = "bytes per element must be positive"
            raise InvalidArgumentError(msg)
        available = min(self._remaining, max_length * item_size)
        return math.ceil(available / item_size)

    def _consume_number_be(self) -> float:
        if self._remaining == 0:
            return 0.0
        if self._remaining < _DOUBLE_SIZE:
            chunk = self._take_front(self._remaining)
            return struct.unpack(">d", chunk + bytes(_DOUBLE_SIZE - len(chunk)))[0]
        return struct.unpack(">d", self._take_front(_DOUBLE_SIZE))[0]

    def _consume_float_in_range(
        self,
        min_value: float,
        max_value: float,
        type_max: float,
        probability: Callable[[], float],
    ) -> float:
        if min_value == max_value:
            return min_value
        _require_float_bounds(min_value, max_value)
        result = min_value
        # Split wide signed ranges in half so max - min cannot overflow.
        if min_value < 0.0 < max_value and max_value > min_value + type_max:
            span = max_value / 2.0 - min_value / 2.0
            if self.consume_boolean():
                result += span
        else:
            span = max_value - min_value
        return result + span * probability()

    def _consume_integral_le_or_be(
        self, n_bytes: int, is_signed: bool, *, little_endian: bool
    ) -> int:
        if not isinstance(n_bytes, int):
            msg = "length value must be an integer"
            raise InvalidArgumentError(msg)
        if not 0 <= n_bytes <= MAX_INTEGRAL_BYTES:
            msg = (
                f"nBytes must be between 0 and {MAX_INTEGRAL_BYTES}: "
                "use the corresponding big integral function instead"
            )
            raise InvalidArgumentError(msg)
        if n_bytes == 0:
            return 0
        bits = 8 * n_bytes
        if is_signed:
            min_value, max_value = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
        else:
            min_value, max_value = 0, (1 << bits) - 1
        return self._consume_integral_in_range_le_or_be(
            min_value, max_value, little_endian=little_endian
        )

    def _consume_integral_in_range_le_or_be(
        self, min_value: int, max_value: int, *, little_endian: bool
    ) -> int:
        _require_bounds(min_value, max_value)
        if min_value == max_value:
            return min_value
        if self._remaining == 0:
            return min_value
        if max_value > MAX_SAFE_INTEGER:
            msg = "max is too large: use the corresponding big integral function instead"
            raise InvalidArgumentError(msg)
        span = max_value - min_value
        n_bytes = (span.bit_length() + 7) // 8
        available = min(self._remaining, n_bytes)
        if available > MAX_INTEGRAL_BYTES:
            msg = (
                "requested range exceeds 2**48-1: "
                "use the corresponding big integral function instead"
            )
            raise InvalidArgumentError(msg)
        if little_endian:
            self._remaining -= available
            start = self._data_ptr + self._remaining
            value = int.from_bytes(self._data[start : start + available], "little")
        else:
            value = int.from_bytes(self._take_front(available), "big")
        return min_value + value % (span + 1)

    def _consume_big_integral_le_or_be(
        self, n_bytes: int, is_signed: bool, *, little_endian: bool
    ) -> int:
        _require_length(n_bytes, "nBytes")
        if n_bytes == 0:
            return 0
        bits = 8 * n_bytes
        if is_signed:
            min_value, max_value = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
        else:
            min_value, max_value = 0, (1 << bits) - 1
        return self._consume_big_integral_in_range_le_or_be(
            min_value, max_value, little_endian=little_endian
        )

    def _consume_big_integral_in_range_le_or_be(
        self, min_value: int, max_value: int, *, little_endian: bool
    ) -> int:
        _require_bounds(min_value, max_value)
        if min_value == max_value:
            return min_value
        span = max_value - min_value
        offset = 0
        result = 0
        while (span >> offset) > 0 and self._remaining > 0:
            self._remaining -= 1
            if little_endian:
                next_byte = self._data[self._data_ptr + self._remaining]
            else:
                next_byte = self._data[self._data_ptr]
                self._data_ptr += 1
            result = (result << 8) | next_byte
            offset += 8
        return result % (span + 1) + min_value

    @staticmethod
    def _lookup_codec(encoding: str) -> str:
        try:
            return codecs.lookup(encoding).name
        except LookupError as e:
            msg = f"unknown encoding: {encoding}"
            raise InvalidArgumentError(msg) from e

    @staticmethod
    def _decode(raw: bytes, codec: str, printable: bool) -> str:
        if printable:
            return "".join(chr(PRINTABLE_FIRST + byte % PRINTABLE_COUNT) for byte in raw)
        if codec in _ASCII_NAMES:
            return bytes(byte & 0x7F for byte in raw).decode("ascii")
        return raw.decode(codec, errors="replace")
