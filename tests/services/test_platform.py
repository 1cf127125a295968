import pytest

from paymentermgr.errors import InsufficientPrivilegesError, UnsupportedPlatformError
from paymentermgr.models import StepResult
from paymentermgr.services.platform import PlatformService, parse_os_release

SUPPORTED = {"ubuntu": ("20.04", "22.04"), "debian": ("10", "11")}


class DummyLogger:
    def info(self, *_args, **_kwargs):
        return None


class FakeRunner:
    def __init__(self, output, ok=True):
        self.output = output
        self.ok = ok

    def run(self, cmd, **_kwargs):
        assert cmd == ["ip", "-4", "addr", "show"]
        if not self.ok:
            return StepResult.failure("ip: command not found", exit_code=127)
        return StepResult.success(output=self.output)


def _os_release(tmp_path, content):
    path = tmp_path / "os-release"
    path.write_text(content, encoding="utf-8")
    return str(path)


def test_parse_os_release_strips_quotes_and_comments():
    values = parse_os_release('# comment\nNAME="Ubuntu"\nVERSION_ID="22.04"\nID=ubuntu\n')

    assert values == {"NAME": "Ubuntu", "VERSION_ID": "22.04", "ID": "ubuntu"}


def test_ensure_root_rejects_unprivileged_user():
    service = PlatformService(logger=DummyLogger(), geteuid=lambda: 1000)

    with pytest.raises(InsufficientPrivilegesError, match="must be run as root"):
        service.ensure_root()


def test_ensure_supported_accepts_listed_release(tmp_path):
    path = _os_release(tmp_path, 'NAME="Debian GNU/Linux"\nID=debian\nVERSION_ID="11"\n')
    service = PlatformService(logger=DummyLogger(), os_release_path=path, geteuid=lambda: 0)

    info = service.ensure_supported(SUPPORTED)

    assert info.id == "debian"
    assert info.version_id == "11"


def test_ensure_supported_rejects_unknown_release(tmp_path):
    path = _os_release(tmp_path, 'NAME="Ubuntu"\nID=ubuntu\nVERSION_ID="18.04"\n')
    service = PlatformService(logger=DummyLogger(), os_release_path=path)

    with pytest.raises(UnsupportedPlatformError, match="release 18.04"):
        service.ensure_supported(SUPPORTED)


def test_ensure_supported_rejects_other_distributions(tmp_path):
    path = _os_release(tmp_path, 'NAME="Fedora Linux"\nID=fedora\nVERSION_ID=39\n')
    service = PlatformService(logger=DummyLogger(), os_release_path=path)

    with pytest.raises(UnsupportedPlatformError, match="Fedora"):
        service.ensure_supported(SUPPORTED)


def test_detect_ipv4_skips_loopback():
    output = (
        "1: lo: <LOOPBACK,UP> mtu 65536\n    inet 127.0.0.1/8 scope host lo\n"
        "2: eth0: <BROADCAST,UP> mtu 1500\n    inet 203.0.113.7/24 brd 203.0.113.255 scope global eth0\n"
    )
    service = PlatformService(logger=DummyLogger())

    assert service.detect_ipv4(FakeRunner(output)) == "203.0.113.7"


def test_detect_ipv4_returns_none_without_address():
    service = PlatformService(logger=DummyLogger())

    assert service.detect_ipv4(FakeRunner("", ok=False)) is None
