# shared/seal_io.py
"""
Byte (de)serialization for raw SEAL objects exposed by tenseal.sealapi.

sealapi only saves/loads through file paths, so objects go through a
short-lived temp file that is removed straight away. Only public material
(parameters, public/evaluation keys, ciphertexts, plaintexts) ever takes this
route; the secret key is never serialized.
"""

import logging
import os
import tempfile

from shared.errors import ContextMismatchError

logger = logging.getLogger(__name__)


def _get_seal_temp_path() -> str:
    # galois keys for degree 8192 are tens of megabytes, more than a
    # container's default /dev/shm holds, so stay on the regular temp dir
    fd, fname = tempfile.mkstemp(prefix="seal_", suffix=".bin")
    os.close(fd)
    return fname


def seal_to_bytes(obj) -> bytes:
    """Serialize any sealapi object with a ``save(path)`` method."""
    fname = _get_seal_temp_path()
    try:
        obj.save(fname)
        with open(fname, "rb") as f:
            return f.read()
    finally:
        if os.path.exists(fname):
            os.unlink(fname)


def seal_from_bytes(factory, seal_context, data: bytes, what: str):
    """
    Load a sealapi object of type ``factory`` validated against ``seal_context``.

    SEAL checks the loaded data against the context's parameter set (parms_id,
    coefficient count, moduli); any failure is raised as ContextMismatchError.
    """
    if not data:
        raise ContextMismatchError(f"empty {what} blob")
    obj = factory()
    fname = _get_seal_temp_path()
    try:
        with open(fname, "wb") as f:
            f.write(data)
        obj.load(seal_context, fname)
    except (ValueError, RuntimeError, TypeError, IndexError) as e:
        raise ContextMismatchError(f"{what} does not match the session context: {e}") from e
    finally:
        if os.path.exists(fname):
            os.unlink(fname)
    logger.debug("loaded %s (%d bytes)", what, len(data))
    return obj
