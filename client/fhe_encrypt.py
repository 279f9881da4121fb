# client/fhe_encrypt.py
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

import numpy as np
import tenseal as ts
import tenseal.sealapi as sealapi

from shared.config import FHE_PARAMS
from shared.errors import ParameterError
from shared.fixed_point import ensure_fits
from shared.seal_io import seal_to_bytes

logger = logging.getLogger(__name__)


@dataclass
class KeyBundle:
    """Raw SEAL key objects. Only the client ever holds secret_key."""

    secret_key: Any
    public_key: Any
    relin_keys: Any
    galois_keys: Optional[Any] = None


class ClientCrypto:
    """Client-side BFV context, keys, encoder, encryptor and decryptor."""

    def __init__(self, ts_ctx, keys: KeyBundle, plain_modulus: int):
        self.ts_ctx = ts_ctx
        self.keys = keys
        self.plain_modulus = plain_modulus
        self.seal_context = ts_ctx.seal_context().data

        self.encoder = sealapi.BatchEncoder(self.seal_context)
        self.encryptor = sealapi.Encryptor(self.seal_context, keys.public_key)
        self.decryptor = sealapi.Decryptor(self.seal_context, keys.secret_key)
        self.slot_count = self.encoder.slot_count()

    @property
    def rotation_keys(self) -> bool:
        return self.keys.galois_keys is not None

    def encode(self, slot_values: List[int]):
        """Batch-encode scaled integers into a Plaintext, zero-filling unused slots."""
        if len(slot_values) > self.slot_count:
            raise ValueError(
                f"{len(slot_values)} values do not fit {self.slot_count} plaintext slots"
            )
        for v in slot_values:
            ensure_fits(int(v), self.plain_modulus, "slot value")
        vec = np.zeros(self.slot_count, dtype=np.int64)
        vec[: len(slot_values)] = slot_values
        pt = sealapi.Plaintext()
        self.encoder.encode(vec.tolist(), pt)
        return pt

    def encrypt(self, plaintext):
        ct = sealapi.Ciphertext()
        self.encryptor.encrypt(plaintext, ct)
        return ct

    def encrypt_slots(self, slot_values: List[int]):
        return self.encrypt(self.encode(slot_values))

    def decrypt(self, ciphertext) -> List[int]:
        """Decrypt and decode to signed slot integers."""
        pt = sealapi.Plaintext()
        self.decryptor.decrypt(ciphertext, pt)
        return list(self.encoder.decode_int64(pt))

    def broadcast(self, scaled: int) -> List[int]:
        return [scaled] * self.slot_count


def batching_plain_modulus(poly_modulus_degree: int, bits: int) -> int:
    """Prime plaintext modulus congruent to 1 mod 2N (required for batching)."""
    return sealapi.PlainModulus.Batching(poly_modulus_degree, bits).value()


def create_session(params: Optional[dict] = None) -> ClientCrypto:
    """
    Create a BFV context with secret key (client-side) and all evaluation keys.

    Invalid parameter sets are a programming error and raise ParameterError.
    """
    params = dict(FHE_PARAMS if params is None else params)
    degree = params["poly_modulus_degree"]
    try:
        plain_modulus = batching_plain_modulus(degree, params["plain_modulus_bits"])
        ctx = ts.context(
            ts.SCHEME_TYPE.BFV,
            poly_modulus_degree=degree,
            plain_modulus=plain_modulus,
            coeff_mod_bit_sizes=list(params.get("coeff_mod_bit_sizes") or []),
        )
        ctx.generate_relin_keys()
        if params.get("rotation_keys"):
            ctx.generate_galois_keys()
    except (ValueError, RuntimeError, TypeError) as e:
        raise ParameterError(f"invalid BFV parameters {params}: {e}") from e

    if not ctx.seal_context().data.parameters_set():
        raise ParameterError(f"BFV parameters {params} did not validate")

    keys = KeyBundle(
        secret_key=ctx.secret_key().data,
        public_key=ctx.public_key().data,
        relin_keys=ctx.relin_keys().data,
        galois_keys=ctx.galois_keys().data if params.get("rotation_keys") else None,
    )
    try:
        crypto = ClientCrypto(ctx, keys, plain_modulus)
    except (ValueError, RuntimeError) as e:
        # BatchEncoder refuses parameter sets that cannot batch
        raise ParameterError(f"BFV parameters {params} do not support batching: {e}") from e

    logger.info(
        "BFV context ready: degree=%d plain_modulus=%d slots=%d rotation_keys=%s",
        degree, plain_modulus, crypto.slot_count, crypto.rotation_keys,
    )
    return crypto


def serialize_parameters(crypto: ClientCrypto) -> bytes:
    """Serialize the encryption parameters only: no public, secret or evaluation keys."""
    return crypto.ts_ctx.serialize(
        save_public_key=False,
        save_secret_key=False,
        save_galois_keys=False,
        save_relin_keys=False,
    )


def serialize_public_keys(crypto: ClientCrypto) -> List[bytes]:
    """Public key, relinearization keys and (optionally) galois keys, in wire order."""
    blobs = [seal_to_bytes(crypto.keys.public_key), seal_to_bytes(crypto.keys.relin_keys)]
    if crypto.keys.galois_keys is not None:
        blobs.append(seal_to_bytes(crypto.keys.galois_keys))
    return blobs
