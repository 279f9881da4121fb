import socket
import threading

import pytest

from shared.config import FHE_PARAMS

# Same ring as production; rotation keys only where a test needs slot sums
# (galois keys for degree 8192 are large and slow to generate).
FAST_PARAMS = dict(FHE_PARAMS, rotation_keys=False)
ROTATION_PARAMS = dict(FHE_PARAMS, rotation_keys=True)


@pytest.fixture
def fast_params():
    return dict(FAST_PARAMS)


@pytest.fixture
def rotation_params():
    return dict(ROTATION_PARAMS)


@pytest.fixture(scope="session")
def crypto():
    pytest.importorskip("tenseal")
    from client.fhe_encrypt import create_session

    return create_session(FAST_PARAMS)


@pytest.fixture(scope="session")
def adopted(crypto):
    from client.fhe_encrypt import serialize_parameters, serialize_public_keys
    from server.fhe_logic import adopt_session

    return adopt_session(serialize_parameters(crypto), *serialize_public_keys(crypto))


def run_pair(client_target, server_target, timeout=300):
    """
    Run client_target(sock) on this thread and server_target(sock) on another,
    connected by a socketpair. Each side closes its socket when it returns or
    raises, like a process exiting. Returns a dict of results/errors.
    """
    client_sock, server_sock = socket.socketpair()
    outcome = {}

    def server_main():
        try:
            outcome["server"] = server_target(server_sock)
        except Exception as e:  # surfaced to the test through outcome
            outcome["server_error"] = e
        finally:
            server_sock.close()

    thread = threading.Thread(target=server_main, daemon=True)
    thread.start()
    try:
        outcome["client"] = client_target(client_sock)
    except Exception as e:
        outcome["client_error"] = e
    finally:
        client_sock.close()
    thread.join(timeout)
    assert not thread.is_alive(), "server side did not finish"
    return outcome
