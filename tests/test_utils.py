import re
import subprocess
from unittest.mock import patch

import pytest
import requests
import responses

from pyvulnscan.models import Dependency, ScanOptions
from pyvulnscan.utils import (
    PipCache,
    PipError,
    PypiError,
    SysInfo,
    VersionNotFoundError,
    check_pypi_status,
    choose_version,
    get_package_version_pypi,
    get_python_package_version,
    get_time,
    get_version,
    latest_version,
    parse_pip_list,
    pip_list,
    vecdep_to_dict,
)

PIP_LIST_OUTPUT = (
    "Package    Version\n"
    "---------- -------\n"
    "requests   2.31.0\n"
    "flask      2.0.1\n"
    "\n"
    "broken\n"
)


@pytest.fixture
def http():
    with responses.RequestsMock() as rsps:
        yield rsps


def _completed(stdout: bytes) -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=0, stdout=stdout, stderr=b"")


def _pypi_url(name: str) -> str:
    return f"https://pypi.org/pypi/{name}/json"


def test_get_time_format():
    value = get_time()
    match = re.fullmatch(r"(\d{2}):(\d{2}):(\d{2}) (AM|PM)", value)
    assert match is not None
    assert 1 <= int(match.group(1)) <= 12


def test_get_version():
    assert get_version() == "0.1.7"


def test_parse_pip_list_skips_header_and_short_lines():
    assert parse_pip_list(PIP_LIST_OUTPUT) == {"requests": "2.31.0", "flask": "2.0.1"}


def test_pip_list_runs_pip():
    with patch("pyvulnscan.utils.subprocess.run", return_value=_completed(PIP_LIST_OUTPUT.encode())) as run:
        result = pip_list()
    assert result["requests"] == "2.31.0"
    assert run.call_args.args[0] == ["pip", "list"]


def test_pip_list_missing_pip_raises():
    with patch("pyvulnscan.utils.subprocess.run", side_effect=FileNotFoundError("pip")):
        with pytest.raises(PipError, match="pip list"):
            pip_list()


def test_pip_list_invalid_utf8_raises():
    with patch("pyvulnscan.utils.subprocess.run", return_value=_completed(b"\xff\xfe\xfd")):
        with pytest.raises(PipError, match="UTF-8"):
            pip_list()


def test_pip_cache_lookup_and_clear():
    cache = PipCache(cache={"flask": "2.0.1"})
    assert cache.lookup("flask") == "2.0.1"
    cache.clear()
    with pytest.raises(PipError, match="Package not found in pip"):
        cache.lookup("flask")


def test_pip_cache_load():
    with patch("pyvulnscan.utils.subprocess.run", return_value=_completed(PIP_LIST_OUTPUT.encode())):
        cache = PipCache.load()
    assert cache.cached is True
    assert cache.lookup("flask") == "2.0.1"


def test_package_version_from_cache():
    cache = PipCache(cache={"requests": "2.31.0"})
    assert get_python_package_version("requests", cache) == "2.31.0"


def test_package_version_from_pip_show():
    output = b"Name: requests\nVersion: 2.31.0\nSummary: HTTP\n"
    with patch("pyvulnscan.utils.subprocess.run", return_value=_completed(output)) as run:
        assert get_python_package_version("requests") == "2.31.0"
    assert run.call_args.args[0] == ["pip", "show", "requests"]


def test_package_version_pip_show_without_version():
    with patch("pyvulnscan.utils.subprocess.run", return_value=_completed(b"WARNING: not found\n")):
        with pytest.raises(PipError):
            get_python_package_version("nothing")


def test_latest_version_picks_highest():
    assert latest_version(["1.0", "2.0.1", "1.10", "not a version"]) == "2.0.1"


def test_latest_version_result_is_member():
    versions = ["0.9", "0.10", "0.2"]
    assert latest_version(versions) in versions
    assert latest_version(versions) == "0.10"


def test_latest_version_empty_raises():
    with pytest.raises(PypiError):
        latest_version([])


def test_get_package_version_pypi(http):
    http.get(_pypi_url("flask"), json={"releases": {"1.0": [], "2.0.1": None, "1.1.4": []}})
    assert get_package_version_pypi("flask") == "2.0.1"


def test_get_package_version_pypi_not_found(http):
    http.get(_pypi_url("nosuchpkg"), status=404)
    with pytest.raises(PypiError, match="pypi.org error"):
        get_package_version_pypi("nosuchpkg")


def test_get_package_version_pypi_bad_json(http):
    http.get(_pypi_url("flask"), body="not json")
    with pytest.raises(PypiError):
        get_package_version_pypi("flask")


def test_vecdep_to_dict():
    deps = [Dependency("flask", "2.0.1"), Dependency("requests", "2.31.0")]
    assert vecdep_to_dict(deps) == {"flask": "2.0.1", "requests": "2.31.0"}


def test_vecdep_to_dict_requires_version():
    with pytest.raises(ValueError):
        vecdep_to_dict([Dependency("flask")])


def test_check_pypi_status_ok(http):
    http.get("https://pypi.org", status=200)
    assert check_pypi_status() is True


def test_check_pypi_status_server_error(http):
    http.get("https://pypi.org", status=500)
    assert check_pypi_status() is False


def test_check_pypi_status_connection_error(http):
    http.get("https://pypi.org", body=requests.ConnectionError("down"))
    assert check_pypi_status() is False


def test_sysinfo_detect(http):
    http.get("https://pypi.org", status=200)
    with patch("pyvulnscan.utils.subprocess.run", side_effect=FileNotFoundError("pip")):
        info = SysInfo.detect()
    assert info.pip_found is False
    assert info.pypi_found is True


def test_choose_version_prefers_source():
    cache = PipCache(cache={"flask": "1.0"})
    assert choose_version("flask", "2.0.1", ScanOptions(), cache) == "2.0.1"


def test_choose_version_pip_option_overrides_source():
    cache = PipCache(cache={"flask": "1.0"})
    assert choose_version("flask", "2.0.1", ScanOptions(pip=True), cache) == "1.0"


def test_choose_version_pypi_option(http):
    http.get(_pypi_url("flask"), json={"releases": {"3.0.0": []}})
    assert choose_version("flask", "2.0.1", ScanOptions(pypi=True)) == "3.0.0"


def test_choose_version_falls_back_to_pip(capsys):
    cache = PipCache(cache={"flask": "1.0"})
    assert choose_version("flask", None, ScanOptions(), cache) == "1.0"
    assert "retrieving version from pip" in capsys.readouterr().out


def test_choose_version_falls_back_to_pypi(http):
    http.get(_pypi_url("flask"), json={"releases": {"3.0.0": []}})
    assert choose_version("flask", None, ScanOptions(), PipCache()) == "3.0.0"


def test_choose_version_nothing_found(http):
    http.get(_pypi_url("ghost"), status=404)
    with pytest.raises(VersionNotFoundError, match="ghost"):
        choose_version("ghost", None, ScanOptions(), PipCache())