import pytest

from seedguard.lib.command import CmdResult
from seedguard.lib.env import Paths


class FakeAgent:
    """Stands in for the cloud-init binary: records calls, returns canned output."""

    def __init__(self, stdout="status: done\n", returncode=0, stderr="", present=True):
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode
        self.present = present
        self.calls = []

    def which(self, name):
        return f"/usr/bin/{name}" if self.present else None

    def run(self, argv, check=True):
        from seedguard.errors import CommandError

        self.calls.append(list(argv))
        res = CmdResult(argv=list(argv), returncode=self.returncode, stdout=self.stdout, stderr=self.stderr)
        if check and self.returncode != 0:
            raise CommandError("Command failed", returncode=self.returncode, output=res.output)
        return res


@pytest.fixture
def paths(tmp_path):
    root = tmp_path / "root"
    root.mkdir()
    return Paths.at(root)


@pytest.fixture
def agent():
    return FakeAgent()


def write_status_json(paths, datasource):
    status = paths.status_file
    status.parent.mkdir(parents=True, exist_ok=True)
    status.write_text(
        '{"v1": {"datasource": %s, "errors": []}}\n' % ("null" if datasource is None else '"%s"' % datasource),
        encoding="utf-8",
    )
    return status


@pytest.fixture
def status_json(paths):
    """Write run/cloud-init/status.json naming the given datasource."""

    def _write(datasource):
        return write_status_json(paths, datasource)

    return _write


@pytest.fixture
def agent_script(tmp_path):
    """Write a real executable that prints ``payload`` (bytes) and exits."""

    def _write(payload, returncode=0, name="cloud-init"):
        script = tmp_path / "bin" / name
        script.parent.mkdir(exist_ok=True)
        escaped = "".join("\\%03o" % b for b in payload)
        script.write_text("#!/bin/sh\nprintf '%s'\nexit %d\n" % (escaped, returncode), encoding="ascii")
        script.chmod(0o755)
        return script

    return _write
