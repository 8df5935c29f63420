"""Base-32 encoding in the store's own alphabet."""

# No "e", "o", "t" or "u": this is the store's fixed alphabet.
CHARSET = "0123456789abcdfghijklmnpqrsvwxyz"


def encoded_length(size: int) -> int:
    """Number of characters ``encode_base32`` produces for ``size`` bytes."""
    return (size * 8 + 4) // 5


def encode_base32(data: bytes) -> str:
    """Encode bytes using the store's base-32 scheme.
    
    The input is reversed, rendered as a big-endian bit string, and consumed
    in 5-bit groups from the front. A trailing group shorter than 5 bits is
    padded with zero bits on the low end.
    
    Args:
        data: Bytes to encode
    
    Returns:
        Encoded string of ``encoded_length(len(data))`` characters
    """
    bits = "".join(f"{byte:08b}" for byte in reversed(data))
    
    return "".join(
        CHARSET[int(bits[i:i + 5].ljust(5, "0"), 2)]
        for i in range(0, len(bits), 5)
    )
