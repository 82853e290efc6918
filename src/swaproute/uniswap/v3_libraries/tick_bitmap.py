"""
Helpers for the tick initialization bitmap of a concentrated liquidity pool.

Ticks are compressed by the pool's tick spacing and grouped into 256-bit words. Bit `b` of word `w`
marks the tick `(256 * w + b) * tick_spacing` as initialized.

ref: https://github.com/Uniswap/v3-core/blob/main/contracts/libraries/TickBitmap.sol
"""

import functools

from swaproute.constants import MAX_UINT8
from swaproute.exceptions import SwaprouteValueError
from swaproute.uniswap.v3_libraries.bit_math import least_significant_bit, most_significant_bit
from swaproute.uniswap.v3_libraries.tick_math import MAX_TICK
from swaproute.uniswap.v3_types import BitmapAtWord, BitmapWord, Tick


@functools.cache
def position(tick: int) -> tuple[int, int]:
    """
    Computes the position in the tick initialization bitmap for the given tick.

    This function does not account for tick spacing, and ticks must be compressed.
    """
    return (
        tick >> 8,  # word_pos
        tick % 256,  # bit_pos
    )


@functools.cache
def get_word_range(tick_spacing: int) -> tuple[BitmapWord, BitmapWord]:
    """
    Get the lowest and highest bitmap words that can hold an initialized tick for the given tick
    spacing. The range is asymmetric because compressed ticks are floored into words.
    """

    if tick_spacing <= 0:
        raise SwaprouteValueError(message=f"Invalid tick spacing {tick_spacing}")

    max_compressed = MAX_TICK // tick_spacing
    min_word, _ = position(-max_compressed)
    max_word, _ = position(max_compressed)
    return min_word, max_word


def flip_tick(
    tick_bitmap: dict[BitmapWord, BitmapAtWord],
    tick: Tick,
    tick_spacing: int,
    update_block: int | None = None,
) -> None:
    """
    Toggle the initialized state of a tick in the bitmap. The mapping is modified in place and words
    with no initialized ticks are removed.
    """

    if tick % tick_spacing != 0:
        raise SwaprouteValueError(message="Tick not correctly spaced!")

    word_pos, bit_pos = position(tick // tick_spacing)
    current = tick_bitmap.get(word_pos)
    bitmap = (0 if current is None else current.bitmap) ^ (1 << bit_pos)

    if bitmap == 0:
        tick_bitmap.pop(word_pos, None)
    else:
        tick_bitmap[word_pos] = BitmapAtWord(
            bitmap=bitmap,
            block=update_block if update_block is not None else 0,
        )


def next_initialized_tick_within_one_word(
    tick_bitmap: dict[BitmapWord, BitmapAtWord],
    tick: Tick,
    tick_spacing: int,
    less_than_or_equal: bool,
) -> tuple[Tick, bool]:
    """
    Returns the next initialized tick contained in the same word as the tick that is either to the
    left (less than or equal to) or right (greater than) of the given tick. If no tick is
    initialized inside the word, the boundary tick of the word is returned with an initialized
    status of False.

    A word absent from the mapping holds no initialized ticks.
    """

    # Python rounds down to negative infinity, so use it directly instead of the abs and modulo
    # implementation of the Solidity contract
    compressed = tick // tick_spacing

    if less_than_or_equal:
        word_pos, bit_pos = position(compressed)
        word = tick_bitmap.get(word_pos)
        # all the 1s at or to the right of the current bit_pos
        masked = (0 if word is None else word.bitmap) & ((1 << (bit_pos + 1)) - 1)

        if masked:
            return (compressed - (bit_pos - most_significant_bit(masked))) * tick_spacing, True
        return (compressed - bit_pos) * tick_spacing, False

    # start from the word of the next tick, since the current tick state doesn't matter
    word_pos, bit_pos = position(compressed + 1)
    word = tick_bitmap.get(word_pos)
    # all the 1s at or to the left of the bit_pos
    masked = (0 if word is None else word.bitmap) & ~((1 << bit_pos) - 1)

    if masked:
        return (compressed + 1 + (least_significant_bit(masked) - bit_pos)) * tick_spacing, True
    return (compressed + 1 + (MAX_UINT8 - bit_pos)) * tick_spacing, False


def next_initialized_tick(
    tick_bitmap: dict[BitmapWord, BitmapAtWord],
    tick: Tick,
    tick_spacing: int,
    less_than_or_equal: bool,
) -> Tick | None:
    """
    Scan the bitmap word by word until an initialized tick is found. Searching toward lower ticks
    includes the starting tick, searching toward higher ticks excludes it.

    Returns None if the scan reaches the last word for this tick spacing without finding an
    initialized tick.
    """

    min_word, max_word = get_word_range(tick_spacing)

    while True:
        next_tick, initialized = next_initialized_tick_within_one_word(
            tick_bitmap=tick_bitmap,
            tick=tick,
            tick_spacing=tick_spacing,
            less_than_or_equal=less_than_or_equal,
        )
        if initialized:
            return next_tick

        word_pos, _ = position(next_tick // tick_spacing)
        if less_than_or_equal:
            if word_pos <= min_word:
                return None
            # continue from the highest tick of the word below
            tick = next_tick - 1
        else:
            if word_pos >= max_word:
                return None
            # the next search starts from the word above
            tick = next_tick


def decode_bitmap_word(word_pos: BitmapWord, bitmap: int, tick_spacing: int) -> list[Tick]:
    """
    List the initialized ticks marked in a single bitmap word, in ascending order.
    """

    ticks: list[Tick] = []
    while bitmap:
        lowest_bit = bitmap & -bitmap
        ticks.append((256 * word_pos + lowest_bit.bit_length() - 1) * tick_spacing)
        bitmap ^= lowest_bit
    return ticks
