Q96_RESOLUTION = 96
Q96 = 1 << Q96_RESOLUTION
Q192 = 1 << (2 * Q96_RESOLUTION)

# Pool fees are expressed in pips, hundredths of a basis point
FEE_DENOMINATOR = 1_000_000

V3_LIB_CACHE_SIZE = 4096
