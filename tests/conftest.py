import os
import shutil
import tempfile

import pytest

from .fakes import EICAR, FakeClamdTCP, FakeClamdUnix, serve


@pytest.fixture()
def socket_dir():
    # tmp_path may be too long for a Unix socket path
    path = tempfile.mkdtemp(prefix="clamd")
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture()
def fake_clamd(socket_dir):
    server = FakeClamdUnix(os.path.join(socket_dir, "clamd.sock"))
    serve(server)

    yield server

    server.shutdown()
    server.server_close()


@pytest.fixture()
def fake_clamd_tcp():
    server = FakeClamdTCP()
    serve(server)

    yield server

    server.shutdown()
    server.server_close()


@pytest.fixture(params=["unix", "tcp"])
def any_fake_clamd(request):
    """Fake clamd on both transports."""
    name = "fake_clamd" if request.param == "unix" else "fake_clamd_tcp"
    return request.getfixturevalue(name)


@pytest.fixture()
def eicar_bytes() -> bytes:
    """EICAR anti-malware test string (safe; every AV recognises it)."""
    return EICAR
