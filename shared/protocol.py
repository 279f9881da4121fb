# shared/protocol.py
"""
Positional message layout shared by client.py and server.py.

The order below *is* the wire contract: nothing on the wire says which blob
is which, both roles simply send/receive in this sequence.

    1. parameters        (TenSEAL context, no keys)
    2. public key
    3. relinearization keys
    4. galois keys       (only when FHE_PARAMS["rotation_keys"])
    5. INPUT_FIELDS      client -> server
    6. RESULT_FIELDS     server -> client
"""

from collections import namedtuple

InputField = namedtuple("InputField", ["name", "encrypted"])
ResultField = namedtuple("ResultField", ["name", "scale_order"])

INPUT_FIELDS = (
    InputField("income", True),
    InputField("essential", True),
    InputField("non_essential", True),
    # the goal threshold is not confidential: sent as an encoded plaintext
    InputField("savings_goal", False),
)

RESULT_FIELDS = (
    ResultField("total_income", 1),
    ResultField("total_expenses", 1),
    ResultField("net_income", 1),
    ResultField("goal_difference", 1),
    ResultField("savings_contribution", 2),
)


def key_blob_names(rotation_keys: bool):
    names = ["public_key", "relin_keys"]
    if rotation_keys:
        names.append("galois_keys")
    return names
