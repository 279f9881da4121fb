# shared/config.py
from decimal import Decimal

# Fixed endpoint for both executables (no CLI flags).
HOST = "127.0.0.1"
PORT = 8080

# Read/write deadline in seconds for the framed channel.
#
# NOTE:
# -----
# The base design blocks indefinitely: a hung peer stalls the other side
# forever. Set this to a number of seconds for anything beyond a local demo;
# an expired deadline aborts the session with a TransportError.
SOCKET_TIMEOUT = None

# Largest frame length we are willing to allocate for. Galois keys for an
# 8192-degree ring are tens of megabytes, so this is generous; anything above
# it means the length prefix itself is garbage.
MAX_FRAME_SIZE = 1 << 30

# FHE (BFV via TenSEAL) parameters: keep deterministic values so client &
# server agree on the positional message layout (rotation keys or not).
#
# plain_modulus_bits=30 gives a batching prime of about 2**30, i.e. signed
# slot values up to ~5.3e8. With SCALE_FACTOR=100 that is ~5.3 million in
# money at scale order 1, and ~53,000 at scale order 2 (after multiplying by
# a scaled percentage).
FHE_PARAMS = {
    "poly_modulus_degree": 8192,
    "plain_modulus_bits": 30,
    "coeff_mod_bit_sizes": [],  # empty -> SEAL's BFVDefault chain
    "rotation_keys": True,
}

# Fixed-point scale: 100 -> two decimal places (cents).
SCALE_FACTOR = 100

# Share of total income the server sets aside homomorphically.
SAVINGS_RATE = Decimal("0.15")

LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
