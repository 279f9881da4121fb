# client/compare_fhe_plain.py
from client.plain_budget import plain_values
from shared.config import SAVINGS_RATE, SCALE_FACTOR
from shared.protocol import RESULT_FIELDS

TOLERANCE = 0.01


def compare(report, inputs, scale_factor=SCALE_FACTOR, savings_rate=SAVINGS_RATE):
    """Return {field: (expected, decrypted, match)} for every result field."""
    expected = plain_values(inputs, scale_factor, savings_rate)
    rows = {}
    for field in RESULT_FIELDS:
        actual = getattr(report, field.name)
        rows[field.name] = (expected[field.name], actual, abs(expected[field.name] - actual) <= TOLERANCE)
    return rows


def print_verification(report, inputs, scale_factor=SCALE_FACTOR, savings_rate=SAVINGS_RATE):
    rows = compare(report, inputs, scale_factor, savings_rate)
    print("\n--- Verification against plaintext arithmetic ---")
    for name, (expected, actual, match) in rows.items():
        print(f"  {name:<22} expected {expected:>14,.4f}  decrypted {actual:>14,.4f}  {'OK' if match else 'MISMATCH'}")
    print("MATCH:", all(match for _, _, match in rows.values()))
