import os, sys

import pytest

# Ensure project root on sys.path so `import filedrop...` works uninstalled
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Fake credentials so boto3 never reaches for a real profile."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.delenv("AWS_PROFILE", raising=False)
    monkeypatch.delenv("FILEDROP_CONF", raising=False)


@pytest.fixture
def write_conf(tmp_path):
    """Write a conf file from KEY=value pairs and return its path."""
    def _write(**values) -> str:
        path = tmp_path / "filedrop.conf"
        lines = ["# filedrop test config", ""]
        lines += [f'{k}="{v}"' for k, v in values.items()]
        path.write_text("\n".join(lines) + "\n")
        return str(path)
    return _write
